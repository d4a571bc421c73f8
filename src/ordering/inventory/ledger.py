"""Inventory ledger — applies stock deltas for placement and cancellation.

Both operations run inside a caller-supplied ``Transaction`` so they commit
together with the order write that caused them. Every product is loaded and
checked before the first decrement, which makes a reservation all-or-nothing
even before the transaction's own rollback comes into play.
"""

from collections import OrderedDict

import structlog
from protean.exceptions import ValidationError

from ordering.errors import InsufficientStock
from ordering.inventory.product import Product

logger = structlog.get_logger(__name__)


class InventoryLedger:
    def reserve(self, transaction, seller_id, lines, order_id):
        """Take each line's quantity out of its product's stock.

        The current stock is re-read inside the transaction; the snapshot the
        cart carried is only compared for logging. Raises ``InsufficientStock``
        for the first product that cannot cover its quantity, and
        ``ValidationError`` for unknown products or products belonging to a
        different seller. Nothing is decremented unless every line fits.
        """
        requested = OrderedDict()
        snapshots = {}
        for line in lines:
            product_id = str(line.product_id)
            requested[product_id] = requested.get(product_id, 0) + line.quantity
            snapshots.setdefault(product_id, line.stock_snapshot)

        checked = []
        for product_id, quantity in requested.items():
            product = transaction.find(Product, product_id)
            if product is None:
                raise ValidationError({"product_id": [f"Unknown product {product_id}"]})
            if str(product.seller_id) != str(seller_id):
                raise ValidationError({"seller_id": [f"Product {product_id} is not sold by seller {seller_id}"]})

            snapshot = snapshots.get(product_id)
            if snapshot is not None and snapshot != product.stock:
                logger.info(
                    "stock_snapshot_stale",
                    product_id=product_id,
                    snapshot=snapshot,
                    current=product.stock,
                )

            if not product.has_stock_for(quantity):
                raise InsufficientStock(product_id, quantity, product.stock)
            checked.append((product, quantity))

        for product, quantity in checked:
            product.decrement_stock(quantity, order_id=order_id)
            transaction.save(product)

        logger.debug("stock_reserved", seller_id=str(seller_id), order_id=str(order_id), products=len(checked))
        return [product for product, _ in checked]

    def release(self, transaction, order, performed_by, performed_by_role):
        """Return every line of ``order`` to stock, once.

        The order's ``restocked`` marker makes this idempotent: a second call
        for the same order is a no-op. The order itself is marked and staged
        here; committing the status change is the caller's job.
        """
        if order.restocked:
            logger.info("stock_already_released", order_id=str(order.id))
            return []

        quantities = OrderedDict()
        for line in order.items:
            product_id = str(line.product_id)
            quantities[product_id] = quantities.get(product_id, 0) + line.quantity

        products = []
        for product_id in quantities:
            product = transaction.find(Product, product_id)
            if product is None:
                raise ValidationError({"product_id": [f"Cannot restock unknown product {product_id}"]})
            products.append(product)

        for product in products:
            product.restock(quantities[str(product.id)], order_id=order.id)
            transaction.save(product)

        order.mark_restocked(performed_by, performed_by_role)
        logger.info("stock_released", order_id=str(order.id), products=len(products))
        return products
