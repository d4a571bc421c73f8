"""OrderSequence aggregate — the shared counter behind order numbers.

There is one sequence per numbering scheme (``ORD`` by default). It is only
ever read and incremented through ``SequenceAllocator`` inside a
``Transaction``, so two orders can never be handed the same number.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from ordering.domain import ordering


def format_order_number(prefix: str, tag: str, number: int) -> str:
    """``ORD-2024-0001``: at least four digits, wider once the counter passes 9999."""
    return f"{prefix}-{tag}-{number:04d}"


@ordering.aggregate
class OrderSequence:
    id = String(identifier=True, max_length=20)
    last_number = Integer(default=0, min_value=0)

    @invariant.post
    def counter_is_not_negative(self):
        if self.last_number is not None and self.last_number < 0:
            raise ValidationError({"last_number": ["Sequence counter cannot go negative"]})

    def advance(self) -> int:
        self.last_number = (self.last_number or 0) + 1
        return self.last_number
