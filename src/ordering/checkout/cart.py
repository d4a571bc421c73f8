"""Cart lines as handed to checkout.

A cart line is transient: it lives for the duration of one placement call
and is copied into an ``OrderLine`` when its partition is placed.
"""

from protean.fields import Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.value_object
class CartLine:
    product_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    # Stock the storefront last showed the customer; informational only
    stock_snapshot = Integer(min_value=0)
    product_name = String(max_length=255)


def as_cart_line(line) -> CartLine:
    if isinstance(line, CartLine):
        return line
    return CartLine(**line)
