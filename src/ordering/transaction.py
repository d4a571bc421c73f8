"""Explicit transaction boundary for multi-aggregate writes.

A ``Transaction`` ties together everything that must commit as one unit: an
Order and the stock decrements for its lines, a status change and the restock
it triggers, an order-number increment. It wraps a Protean ``UnitOfWork`` and
adds two guarantees the storage layer does not give on its own:

* Serializable commits. Transactions run one at a time behind a process-wide
  write lock acquired with a timeout. Aggregates read through ``load()`` are
  therefore current for the lifetime of the transaction.
* Optimistic concurrency. Protean versions every aggregate (``_version``) and
  refuses to persist one whose version no longer matches the stored copy,
  for instance because it was read outside this transaction and somebody
  committed since. That refusal surfaces as ``AllocationConflict`` so that
  ``retry_on_conflict`` can run the whole unit again against fresh state.

A failure anywhere rolls the UnitOfWork back, so an aborted transaction
leaves nothing behind.

Usage::

    with Transaction() as tx:
        product = tx.load(Product, product_id)
        product.decrement_stock(2, order_id=order.id)
        tx.save(product)
        tx.save(order)
"""

import threading
import time
from enum import Enum

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.errors import AllocationConflict, ServiceUnavailable
from ordering.settings import get_settings

logger = structlog.get_logger(__name__)

_write_lock = threading.Lock()
_local = threading.local()


class TransactionState(Enum):
    NEW = "new"
    ACTIVE = "active"
    COMMITTED = "committed"
    ABORTED = "aborted"


class Transaction:
    def __init__(self, timeout: float | None = None):
        self.timeout = get_settings().lock_timeout if timeout is None else timeout
        self.state = TransactionState.NEW
        self.events = []
        self._uow = None
        self._staged = {}

    # -------------------------------------------------------------------
    # Boundary
    # -------------------------------------------------------------------
    def begin(self) -> "Transaction":
        if self.state != TransactionState.NEW:
            raise RuntimeError(f"Transaction already {self.state.value}")
        if getattr(_local, "active", False):
            raise RuntimeError("Nested transactions are not supported; pass the active transaction instead")

        if not _write_lock.acquire(timeout=self.timeout):
            raise AllocationConflict(f"Timed out after {self.timeout}s waiting for the write lock")

        try:
            self._uow = UnitOfWork()
            self._uow.start()
        except Exception:
            _write_lock.release()
            raise

        _local.active = True
        self.state = TransactionState.ACTIVE
        return self

    def commit(self) -> None:
        self._require_active()
        try:
            for aggregate in self._staged.values():
                self.events.extend(aggregate._events)
                current_domain.repository_for(type(aggregate)).add(aggregate)
            self._uow.commit()
        except ExpectedVersionError as exc:
            self._fail()
            raise AllocationConflict(f"Stale write rejected: {exc}") from exc
        except Exception:
            self._fail()
            raise
        finally:
            self._release()

        self.state = TransactionState.COMMITTED
        logger.debug("transaction_committed", aggregates=len(self._staged), events=len(self.events))

    def abort(self) -> None:
        if self.state != TransactionState.ACTIVE:
            return
        try:
            self._rollback()
        finally:
            self._release()
            self.state = TransactionState.ABORTED

    def __enter__(self) -> "Transaction":
        return self.begin()

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.abort()
        elif self.state == TransactionState.ACTIVE:
            self.commit()
        return False

    # -------------------------------------------------------------------
    # Reads and writes
    # -------------------------------------------------------------------
    def load(self, aggregate_cls, identifier):
        """Read an aggregate through this transaction.

        Raises ``ObjectNotFoundError`` when no such aggregate exists.
        """
        self._require_active()
        return current_domain.repository_for(aggregate_cls).get(identifier)

    def find(self, aggregate_cls, identifier):
        """Like ``load()``, but returns None for a missing aggregate."""
        try:
            return self.load(aggregate_cls, identifier)
        except ObjectNotFoundError:
            return None

    def save(self, aggregate) -> None:
        """Stage an aggregate for commit. Saving it again in the same transaction is a no-op."""
        self._require_active()
        self._staged.setdefault((type(aggregate).__name__, str(aggregate.id)), aggregate)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _require_active(self):
        if self.state != TransactionState.ACTIVE:
            raise RuntimeError(f"Transaction is {self.state.value}, not active")

    def _fail(self):
        self._rollback()
        self.events = []
        self.state = TransactionState.ABORTED

    def _rollback(self):
        if self._uow is not None and self._uow.in_progress:
            self._uow.rollback()

    def _release(self):
        _local.active = False
        _write_lock.release()


def retry_on_conflict(operation, *, resource: str, attempts: int | None = None, backoff: float | None = None):
    """Run ``operation`` until it stops raising ``AllocationConflict``.

    Gives up after ``attempts`` tries (settings.max_attempts by default) and
    raises ``ServiceUnavailable`` naming the contended ``resource``. Any other
    exception propagates immediately.
    """
    settings = get_settings()
    attempts = attempts or settings.max_attempts
    backoff = settings.retry_backoff if backoff is None else backoff

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except AllocationConflict as exc:
            logger.warning("allocation_conflict", resource=resource, attempt=attempt, attempts=attempts, error=str(exc))
            if attempt == attempts:
                raise ServiceUnavailable(f"{resource} unavailable after {attempts} attempts") from exc
            time.sleep(backoff * attempt)
