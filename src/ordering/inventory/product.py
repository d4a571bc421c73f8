"""Product aggregate — a seller's catalogue entry as seen by the stock ledger.

Stock is a non-negative count. Placement takes it down, cancellation puts it
back; nothing else in this domain writes it.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering
from ordering.errors import InsufficientStock
from ordering.inventory.events import StockReleased, StockReserved


@ordering.aggregate
class Product:
    seller_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    category = String(max_length=100)
    brand = String(max_length=100)
    price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    updated_at = DateTime()

    @classmethod
    def list_for_sale(cls, product_id, seller_id, name, stock, price=None, category=None, brand=None):
        """Register a seller's product with its opening stock."""
        return cls(
            id=product_id,
            seller_id=seller_id,
            name=name,
            stock=stock,
            price=price,
            category=category,
            brand=brand,
            updated_at=datetime.now(UTC),
        )

    def has_stock_for(self, quantity):
        return self.stock >= quantity

    def decrement_stock(self, quantity, order_id):
        if not self.has_stock_for(quantity):
            raise InsufficientStock(str(self.id), quantity, self.stock)

        now = datetime.now(UTC)
        previous = self.stock
        self.stock = previous - quantity
        self.updated_at = now

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                seller_id=str(self.seller_id),
                order_id=str(order_id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                reserved_at=now,
            )
        )

    def restock(self, quantity, order_id):
        now = datetime.now(UTC)
        previous = self.stock
        self.stock = previous + quantity
        self.updated_at = now

        self.raise_(
            StockReleased(
                product_id=str(self.id),
                seller_id=str(self.seller_id),
                order_id=str(order_id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                released_at=now,
            )
        )
