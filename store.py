"""
store.py
Application data state (members, transactions, batches) + write commands.

Every command updates the local copy first, then writes to SQLite. On a
database error the whole state is refetched and a failed Result is returned.
Multi-row changes (a transaction plus its member's YTD) are separate writes,
so the local copy may be stale until the next fetch().
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Callable

import batches
import config
import db
import utils
from errors import BatchLockedError, TitheError, ValidationError
from identity import plan_merge
from models import Batch, BatchStatus, Fellowship, Member, MemberStatus, Officer, PaymentMethod, Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result:
    success: bool
    error: str | None = None
    value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "Result":
        return cls(True, None, value)

    @classmethod
    def fail(cls, error: str) -> "Result":
        return cls(False, error, None)


def new_member_id() -> str:
    return f"MEM-{uuid.uuid4().hex[:12].upper()}"


def new_transaction_id() -> str:
    return f"TXN-{uuid.uuid4().hex[:12].upper()}"


def _chunks(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


def reassign_transaction(t: Transaction, member_id: str) -> Transaction:
    """Move a gift to another member; IMP- ids are rebuilt for the new owner."""
    prefix = f"IMP-{t.member_id}-"
    new_id = f"IMP-{member_id}-{t.id[len(prefix):]}" if t.id.startswith(prefix) else t.id
    return replace(t, id=new_id, member_id=member_id)


class DataStore:
    def __init__(self, fiscal_year: int | None = None):
        self.fiscal_year = fiscal_year or date.today().year
        self.members: dict[str, Member] = {}
        self.transactions: list[Transaction] = []  # newest first
        self.batches: list[Batch] = []
        self.loaded = False

    # ---------- lifecycle ----------

    def fetch(self) -> None:
        batches.ensure_active_batch()
        self.members = {
            r["id"]: Member.from_row(r)
            for r in db.fetch_all("SELECT * FROM members ORDER BY name COLLATE NOCASE ASC")
        }
        self.transactions = [
            Transaction.from_row(r) for r in db.fetch_all("SELECT * FROM transactions ORDER BY rowid DESC")
        ]
        self.batches = batches.list_batches()
        self.loaded = True

    def teardown(self) -> None:
        self.members = {}
        self.transactions = []
        self.batches = []
        self.loaded = False

    def _refetch_after_failure(self) -> None:
        try:
            self.fetch()
        except sqlite3.Error:
            logger.exception("Refetch after failed write also failed; local state is stale")

    def _run(self, what: str, fn: Callable[[], Any]) -> Result:
        try:
            return Result.ok(fn())
        except TitheError as e:
            return Result.fail(str(e))
        except sqlite3.Error as e:
            logger.exception("%s failed; refetching", what)
            self._refetch_after_failure()
            return Result.fail(str(e))

    # ---------- queries ----------

    @property
    def active_batch(self) -> Batch | None:
        return next((b for b in self.batches if b.is_active), None)

    def get_member(self, member_id: str) -> Member | None:
        return self.members.get(member_id)

    def search_members(self, term: str) -> list[Member]:
        term = (term or "").strip()
        if len(term) < 2:
            return []
        low = term.lower()
        return [m for m in self.members.values() if low in m.name.lower() or term in m.phone]

    def member_transactions(self, member_id: str) -> list[Transaction]:
        return [t for t in self.transactions if t.member_id == member_id]

    def batch_transactions(self, batch_id: str) -> list[Transaction]:
        return [t for t in self.transactions if t.batch_id == batch_id]

    def filter_transactions(
        self,
        method: str | None = None,
        fellowship: str | None = None,
        min_amount: float | None = None,
        max_amount: float | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[Transaction]:
        out = []
        for t in self.transactions:
            if method and t.method != method:
                continue
            if fellowship and t.fellowship != fellowship:
                continue
            if min_amount is not None and t.amount < min_amount:
                continue
            if max_amount is not None and t.amount > max_amount:
                continue
            if start_date and t.day < start_date:
                continue
            if end_date and t.day > end_date:
                continue
            out.append(t)
        return out

    # ---------- members ----------

    def add_member(self, name: str, phone: str, fellowship: str, status: str = MemberStatus.ACTIVE.value) -> Result:
        def _add():
            errors = utils.validate_member_inputs(name, phone, fellowship, status)
            if errors:
                raise ValidationError(" ".join(errors))
            member = Member(
                id=new_member_id(),
                name=name.strip(),
                phone=phone.strip(),
                fellowship=fellowship,
                status=status,
            )
            self.members[member.id] = member
            db.upsert_many("members", [member.to_row()])
            logger.info("Added member %s (%s)", member.id, member.fellowship)
            return member

        return self._run("add_member", _add)

    def quick_add_member(self, name: str, phone: str = "", fellowship: str = Fellowship.THYATIRA.value) -> Result:
        """Entry-screen shortcut: provisional until the profile is completed."""
        return self.add_member(name, phone or "", fellowship, status=MemberStatus.PROVISIONAL.value)

    def update_member(self, member_id: str, name: str, phone: str, fellowship: str, status: str) -> Result:
        def _update():
            existing = self.members.get(member_id)
            if not existing:
                raise ValidationError(f"Member {member_id} not found.")
            errors = utils.validate_member_inputs(name, phone, fellowship, status)
            if errors:
                raise ValidationError(" ".join(errors))
            member = replace(existing, name=name.strip(), phone=phone.strip(), fellowship=fellowship, status=status)
            self.members[member_id] = member
            db.execute(
                "UPDATE members SET name=?, phone=?, fellowship=?, status=? WHERE id=?",
                (member.name, member.phone, member.fellowship, member.status, member_id),
            )
            return member

        return self._run("update_member", _update)

    def delete_member(self, member_id: str) -> Result:
        def _delete():
            if member_id not in self.members:
                raise ValidationError(f"Member {member_id} not found.")
            self.members.pop(member_id)
            self.transactions = [t for t in self.transactions if t.member_id != member_id]
            db.execute("DELETE FROM transactions WHERE member_id = ?", (member_id,))
            db.execute("DELETE FROM members WHERE id = ?", (member_id,))
            logger.info("Deleted member %s and their transactions", member_id)
            return member_id

        return self._run("delete_member", _delete)

    # ---------- transactions ----------

    def _counts_toward_ytd(self, timestamp: str) -> bool:
        return timestamp[:4] == str(self.fiscal_year)

    def add_transaction(self, member_id: str | None, amount, method: str, timestamp: str, officer: Officer) -> Result:
        def _add():
            member = self.members.get(member_id) if member_id else None
            if not member:
                raise ValidationError("Select a member first.")
            value = utils.parse_amount(amount)
            if method not in {m.value for m in PaymentMethod}:
                raise ValidationError(f"Unknown payment method: {method}")
            batch = batches.ensure_active_batch()
            if batch.status != BatchStatus.OPEN.value:
                raise BatchLockedError(batch.id, batch.status)
            if not any(b.id == batch.id for b in self.batches):
                self.batches.insert(0, batch)

            txn = Transaction(
                id=new_transaction_id(),
                batch_id=batch.id,
                member_id=member.id,
                member_name=member.name,
                fellowship=member.fellowship,
                amount=value,
                method=method,
                timestamp=timestamp,
                officer_id=str(officer.id),
                officer_name=officer.name,
            )
            delta = value if self._counts_toward_ytd(timestamp) else 0.0
            self.transactions.insert(0, txn)
            self.members[member.id] = replace(
                member, ytd_total=member.ytd_total + delta, last_gift_date=timestamp
            )

            db.upsert_many("transactions", [txn.to_row()])
            db.execute(
                "UPDATE members SET ytd_total = ytd_total + ?, last_gift_date = ? WHERE id = ?",
                (delta, timestamp, member.id),
            )
            return txn

        return self._run("add_transaction", _add)

    def delete_transaction(self, txn_id: str) -> Result:
        def _delete():
            txn = next((t for t in self.transactions if t.id == txn_id), None)
            if not txn:
                raise ValidationError(f"Transaction {txn_id} not found.")
            batch = batches.get_batch(txn.batch_id)
            # import batches have no row and stay editable
            if batch and batch.status != BatchStatus.OPEN.value:
                raise BatchLockedError(batch.id, batch.status)

            delta = txn.amount if self._counts_toward_ytd(txn.timestamp) else 0.0
            self.transactions = [t for t in self.transactions if t.id != txn_id]
            member = self.members.get(txn.member_id)
            if member:
                self.members[member.id] = replace(member, ytd_total=max(member.ytd_total - delta, 0.0))

            db.execute("DELETE FROM transactions WHERE id = ?", (txn_id,))
            db.execute(
                "UPDATE members SET ytd_total = MAX(ytd_total - ?, 0) WHERE id = ?",
                (delta, txn.member_id),
            )
            return txn

        return self._run("delete_transaction", _delete)

    def undo_last_transaction(self) -> Result:
        batch = self.active_batch
        if not batch:
            return Result.fail("No active batch.")
        last = next((t for t in self.transactions if t.batch_id == batch.id), None)
        if not last:
            return Result.fail("Nothing to undo in the current batch.")
        return self.delete_transaction(last.id)

    def recompute_ytd(self, year: int | None = None) -> Result:
        """
        Rebuild every member's YTD total from stored transactions dated in
        `year` (default: the fiscal year); a given year becomes the fiscal
        year.
        """

        def _recompute():
            if year is not None:
                self.fiscal_year = int(year)
            rows = db.fetch_all(
                "SELECT member_id, SUM(amount) AS s FROM transactions WHERE substr(timestamp, 1, 4) = ? GROUP BY member_id",
                (str(self.fiscal_year),),
            )
            totals = {r["member_id"]: float(r["s"]) for r in rows}
            db.executemany(
                "UPDATE members SET ytd_total = ? WHERE id = ?",
                [(totals.get(mid, 0.0), mid) for mid in self.members],
            )
            self.fetch()
            logger.info("Recomputed YTD totals for %d members (%s)", len(self.members), self.fiscal_year)
            return totals

        return self._run("recompute_ytd", _recompute)

    # ---------- import ----------

    def import_data(self, members: list[Member], transactions: list[Transaction], chunk_size: int | None = None) -> Result:
        """
        Merge duplicate-named members, upsert members, then upsert transactions
        in chunks. Not atomic: a failing chunk stops the import and leaves the
        earlier chunks in place. Re-running is safe (deterministic ids).
        """
        chunk_size = chunk_size or config.IMPORT_CHUNK_SIZE
        state = {"written": 0}

        def _import():
            existing = [
                Member.from_row(r)
                for r in db.fetch_all("SELECT * FROM members ORDER BY created_at ASC, rowid ASC")
            ]
            plan = plan_merge(existing, members)
            for victim, survivor in plan.victims.items():
                moved = [
                    reassign_transaction(Transaction.from_row(r), survivor)
                    for r in db.fetch_all("SELECT * FROM transactions WHERE member_id = ?", (victim,))
                ]
                db.execute("DELETE FROM transactions WHERE member_id = ?", (victim,))
                if moved:
                    db.upsert_many("transactions", [t.to_row() for t in moved])
                db.execute("DELETE FROM members WHERE id = ?", (victim,))
                logger.info("Merged duplicate member %s into %s", victim, survivor)

            member_rows: dict[str, dict] = {}
            for m in members:
                row = replace(m, id=plan.remap.get(m.id, m.id)).to_row()
                row.pop("last_gift_date")
                member_rows[row["id"]] = row

            txn_rows: dict[str, dict] = {}
            for t in transactions:
                target = plan.remap.get(t.member_id)
                if target:
                    t = reassign_transaction(t, target)
                txn_rows[t.id] = t.to_row()

            for chunk in _chunks(list(member_rows.values()), chunk_size):
                db.upsert_many("members", chunk)

            rows = list(txn_rows.values())
            total_chunks = (len(rows) + chunk_size - 1) // chunk_size
            for n, chunk in enumerate(_chunks(rows, chunk_size), start=1):
                try:
                    db.upsert_many("transactions", chunk)
                except sqlite3.Error as e:
                    raise sqlite3.Error(
                        f"Import stopped at chunk {n}/{total_chunks} after {state['written']} transactions: {e}"
                    ) from e
                state["written"] += len(chunk)

            self.fetch()
            summary = {
                "members": len(member_rows),
                "transactions": state["written"],
                "merged": len(plan.victims),
            }
            logger.info("Import committed: %s", summary)
            return summary

        return self._run("import_data", _import)

    # ---------- batches ----------

    def _refresh_batches(self) -> None:
        self.batches = batches.list_batches()

    def _batch_command(self, what: str, fn: Callable[[], Any]) -> Result:
        def _do():
            value = fn()
            self._refresh_batches()
            return value

        return self._run(what, _do)

    def start_counting(self) -> Result:
        batch = self.active_batch
        if not batch:
            return Result.fail("No active batch.")
        return self._batch_command("start_counting", lambda: batches.start_counting(batch.id))

    def finalize_batch(self, counts: dict, officer: Officer) -> Result:
        """value is (batch, reconciliation); then a fresh OPEN batch exists."""
        batch = self.active_batch
        if not batch:
            return Result.fail("No active batch.")

        def _finalize():
            out = batches.finalize_batch(batch.id, counts, finalized_by=officer.name)
            batches.ensure_active_batch()
            return out

        return self._batch_command("finalize_batch", _finalize)

    def mark_synced(self, batch_id: str) -> Result:
        return self._batch_command("mark_synced", lambda: batches.mark_synced(batch_id))
