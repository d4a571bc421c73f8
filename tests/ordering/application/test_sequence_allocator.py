"""Application tests for order number allocation, including concurrent callers."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from ordering.domain import ordering
from ordering.errors import ServiceUnavailable
from ordering.sequence.allocator import SequenceAllocator
from ordering.sequence.sequence import OrderSequence
from ordering.settings import OrderingSettings, set_settings
from ordering.transaction import Transaction
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


def _number(order_number):
    return int(order_number.rsplit("-", 1)[1])


def _in_context(fn):
    def _run():
        with ordering.domain_context():
            return fn()

    return _run


@pytest.fixture(autouse=True)
def _fees(fee_settings):
    return fee_settings


class TestNextOrderNumber:
    def test_first_number(self):
        assert SequenceAllocator().next_order_number() == "ORD-2024-0001"

    def test_numbers_increase_by_one(self):
        allocator = SequenceAllocator()

        numbers = [allocator.next_order_number() for _ in range(3)]

        assert numbers == ["ORD-2024-0001", "ORD-2024-0002", "ORD-2024-0003"]

    def test_counter_is_persisted(self):
        SequenceAllocator().next_order_number()
        SequenceAllocator().next_order_number()

        assert current_domain.repository_for(OrderSequence).get("ORD").last_number == 2

    def test_prefixes_have_independent_counters(self):
        SequenceAllocator(prefix="ORD").next_order_number()

        assert SequenceAllocator(prefix="RET", tag="EU").next_order_number() == "RET-EU-0001"


class TestAllocateWithinTransaction:
    def test_aborted_transaction_consumes_no_number(self):
        allocator = SequenceAllocator()

        with pytest.raises(RuntimeError):
            with Transaction() as tx:
                allocator.allocate(tx)
                raise RuntimeError("placement failed")

        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(OrderSequence).get("ORD")
        assert allocator.next_order_number() == "ORD-2024-0001"


class TestConcurrentAllocation:
    def test_concurrent_callers_get_distinct_consecutive_numbers(self):
        allocator = SequenceAllocator()
        prior = [allocator.next_order_number() for _ in range(3)]
        callers = 20

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(_in_context(allocator.next_order_number)) for _ in range(callers)]
            numbers = [future.result() for future in futures]

        assert len(set(numbers)) == callers
        assert max(_number(n) for n in numbers) == max(_number(n) for n in prior) + callers
        assert sorted(_number(n) for n in numbers) == list(range(4, 4 + callers))

    def test_exhausted_retries_surface_as_service_unavailable(self):
        set_settings(
            OrderingSettings(order_number_tag="2024", lock_timeout=0.05, max_attempts=2, retry_backoff=0.0)
        )
        allocator = SequenceAllocator()

        blocker = Transaction().begin()
        try:
            with ThreadPoolExecutor(max_workers=1) as pool:
                future = pool.submit(_in_context(allocator.next_order_number))
                with pytest.raises(ServiceUnavailable):
                    future.result()
        finally:
            blocker.abort()

        assert allocator.next_order_number() == "ORD-2024-0001"
