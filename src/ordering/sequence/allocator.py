"""Order number allocation.

Numbers come from a read-increment-write of ``OrderSequence`` inside a
serialized ``Transaction``. Placement calls ``allocate()`` with the
transaction that also writes the order, so a partition that aborts never
consumes a number. ``next_order_number()`` is the standalone variant.
"""

import structlog

from ordering.sequence.sequence import OrderSequence, format_order_number
from ordering.settings import get_settings
from ordering.transaction import Transaction, retry_on_conflict

logger = structlog.get_logger(__name__)


class SequenceAllocator:
    def __init__(self, prefix: str | None = None, tag: str | None = None):
        settings = get_settings()
        self.prefix = prefix or settings.order_number_prefix
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag or get_settings().current_order_number_tag()

    def allocate(self, transaction: Transaction) -> str:
        """Take the next number within an already-active transaction."""
        sequence = transaction.find(OrderSequence, self.prefix)
        if sequence is None:
            sequence = OrderSequence(id=self.prefix)
            logger.info("order_sequence_created", prefix=self.prefix)

        number = sequence.advance()
        transaction.save(sequence)
        return format_order_number(self.prefix, self.tag, number)

    def next_order_number(self) -> str:
        """Allocate a number in a transaction of its own, retrying on contention.

        Raises ``ServiceUnavailable`` when the counter stays contended past the
        configured number of attempts.
        """

        def _attempt():
            with Transaction() as tx:
                return self.allocate(tx)

        order_number = retry_on_conflict(_attempt, resource=f"order sequence {self.prefix}")
        logger.debug("order_number_allocated", order_number=order_number)
        return order_number
