"""Repository for the Order aggregate."""

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    def unnumbered(self, page_size: int = 500) -> list[Order]:
        """Orders without a number, oldest first."""
        found = []
        offset = 0
        while True:
            page = self._dao.query.order_by("created_at").offset(offset).limit(page_size).all()
            found.extend(order for order in page.items if not order.order_number)
            if not page.has_next:
                break
            offset += page_size
        return found
