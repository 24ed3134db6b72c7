"""
batches.py
Collection batch lifecycle: OPEN -> COUNTING -> FINALIZED -> SYNCED.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

import db
import reconcile
from errors import InvalidTransitionError, TitheError, UnbalancedBatchError
from models import ACTIVE_BATCH_STATUSES, Batch, BatchStatus, Transaction

logger = logging.getLogger(__name__)

NEXT_STATUS = {
    BatchStatus.OPEN.value: BatchStatus.COUNTING.value,
    BatchStatus.COUNTING.value: BatchStatus.FINALIZED.value,
    BatchStatus.FINALIZED.value: BatchStatus.SYNCED.value,
}


def new_batch_id(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"BATCH-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def get_batch(batch_id: str) -> Batch | None:
    row = db.fetch_one("SELECT * FROM batches WHERE id = ?", (batch_id,))
    return Batch.from_row(row) if row else None


def list_batches() -> list[Batch]:
    return [Batch.from_row(r) for r in db.fetch_all("SELECT * FROM batches ORDER BY date DESC, id DESC")]


def get_active_batch() -> Batch | None:
    row = db.fetch_one(
        "SELECT * FROM batches WHERE status IN (?, ?) ORDER BY date DESC LIMIT 1",
        ACTIVE_BATCH_STATUSES,
    )
    return Batch.from_row(row) if row else None


def ensure_active_batch(now: datetime | None = None) -> Batch:
    """The OPEN/COUNTING batch, creating an OPEN one if none exists."""
    batch = get_active_batch()
    if batch:
        return batch
    now = now or datetime.now()
    batch = Batch(id=new_batch_id(now), date=now.isoformat(timespec="seconds"))
    db.upsert_many("batches", [batch.to_row()])
    logger.info("Opened batch %s", batch.id)
    return batch


def batch_transactions(batch_id: str) -> list[Transaction]:
    rows = db.fetch_all("SELECT * FROM transactions WHERE batch_id = ? ORDER BY timestamp", (batch_id,))
    return [Transaction.from_row(r) for r in rows]


def _require(batch_id: str) -> Batch:
    batch = get_batch(batch_id)
    if not batch:
        raise TitheError(f"Batch {batch_id} does not exist.")
    return batch


def _check_transition(batch: Batch, target: str) -> None:
    if NEXT_STATUS.get(batch.status) != target:
        raise InvalidTransitionError(batch.id, batch.status, target)


def start_counting(batch_id: str) -> Batch:
    """Freeze entry; snapshot the recorded CASH total the count is checked against."""
    batch = _require(batch_id)
    _check_transition(batch, BatchStatus.COUNTING.value)
    total = reconcile.system_cash(batch_transactions(batch_id))
    db.execute(
        "UPDATE batches SET status = ?, total_system = ? WHERE id = ?",
        (BatchStatus.COUNTING.value, total, batch_id),
    )
    logger.info("Batch %s counting (system total %.2f)", batch_id, total)
    return _require(batch_id)


def finalize_batch(batch_id: str, counts: dict, finalized_by: str) -> tuple[Batch, reconcile.Reconciliation]:
    """
    Lock the batch if the cash count matches the recorded CASH total.
    Raises UnbalancedBatchError (with the reconciliation attached) otherwise.
    """
    batch = _require(batch_id)
    _check_transition(batch, BatchStatus.FINALIZED.value)
    txns = batch_transactions(batch_id)
    result = reconcile.reconcile(txns, counts)
    if not result.is_balanced:
        logger.warning("Batch %s not finalized: variance %.2f", batch_id, result.variance)
        raise UnbalancedBatchError(batch_id, result)
    db.execute(
        """
        UPDATE batches SET status = ?, total_system = ?, total_cash = ?, variance = ?, finalized_by = ?
        WHERE id = ?
        """,
        (
            BatchStatus.FINALIZED.value,
            result.system_cash,
            result.physical_cash,
            result.variance,
            finalized_by,
            batch_id,
        ),
    )
    logger.info("Batch %s finalized by %s", batch_id, finalized_by)
    return _require(batch_id), result


def mark_synced(batch_id: str) -> Batch:
    batch = _require(batch_id)
    _check_transition(batch, BatchStatus.SYNCED.value)
    db.execute("UPDATE batches SET status = ? WHERE id = ?", (BatchStatus.SYNCED.value, batch_id))
    logger.info("Batch %s synced", batch_id)
    return _require(batch_id)
