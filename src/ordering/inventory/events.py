"""Domain events for the Product stock ledger."""

from protean.fields import DateTime, Identifier, Integer

from ordering.domain import ordering


@ordering.event(part_of="Product")
class StockReserved:
    """Stock was taken out of a product for a newly placed order."""

    __version__ = 1

    product_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reserved_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockReleased:
    """Stock held by a cancelled order was returned to the product."""

    __version__ = 1

    product_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    released_at = DateTime(required=True)
