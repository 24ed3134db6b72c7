"""
models.py
Domain types (fellowships, members, transactions, batches) and the
row <-> model mapping used on every read/write.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Fellowship(str, Enum):
    THYATIRA = "Thyatira"
    PHILIPPI = "Philippi"
    LAODICEA = "Laodicea"
    BALANCE = "Balance"
    EPHESUS = "Ephesus"
    SMYRNA = "Smyrna"
    SARDIS = "Sardis"
    PERGAMOS = "Pergamos"
    BEREA = "Berea"
    PHILADELPHIA = "Philadelphia"


FELLOWSHIPS = [f.value for f in Fellowship]

FELLOWSHIP_PASTORS = {
    Fellowship.THYATIRA: "Ps Francis",
    Fellowship.PHILIPPI: "Ps Carismond",
    Fellowship.LAODICEA: "Ps Nathaniel",
    Fellowship.BALANCE: "Ps Brandon",
    Fellowship.EPHESUS: "Senior Prophet Moses",
    Fellowship.SMYRNA: "Ps Collins",
    Fellowship.SARDIS: "Ps Jamil",
    Fellowship.PERGAMOS: "Ps Daniel",
    Fellowship.BEREA: "Ps Dominic",
    Fellowship.PHILADELPHIA: "Ps Elisha",
}

FELLOWSHIP_COLORS = {
    Fellowship.THYATIRA: "#ef4444",
    Fellowship.PHILIPPI: "#3b82f6",
    Fellowship.LAODICEA: "#f97316",
    Fellowship.BALANCE: "#78716c",
    Fellowship.EPHESUS: "#10b981",
    Fellowship.SMYRNA: "#a855f7",
    Fellowship.SARDIS: "#ec4899",
    Fellowship.PERGAMOS: "#06b6d4",
    Fellowship.BEREA: "#f59e0b",
    Fellowship.PHILADELPHIA: "#6366f1",
}

DEFAULT_COLOR = "#94a3b8"


def fellowship_color(value: str) -> str:
    try:
        return FELLOWSHIP_COLORS[Fellowship(value)]
    except ValueError:
        return DEFAULT_COLOR


def fellowship_pastor(value: str) -> str | None:
    try:
        return FELLOWSHIP_PASTORS[Fellowship(value)]
    except ValueError:
        return None


class PaymentMethod(str, Enum):
    CASH = "CASH"
    MOMO = "MOMO"
    CHECK = "CHECK"


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PROVISIONAL = "PROVISIONAL"


class BatchStatus(str, Enum):
    OPEN = "OPEN"
    COUNTING = "COUNTING"
    FINALIZED = "FINALIZED"
    SYNCED = "SYNCED"


ACTIVE_BATCH_STATUSES = (BatchStatus.OPEN.value, BatchStatus.COUNTING.value)


class Role(str, Enum):
    OFFICER = "OFFICER"
    SUPERVISOR = "SUPERVISOR"


@dataclass(frozen=True)
class Member:
    id: str
    name: str
    phone: str
    fellowship: str
    status: str = MemberStatus.ACTIVE.value
    ytd_total: float = 0.0
    last_gift_date: str | None = None

    @classmethod
    def from_row(cls, row) -> "Member":
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            fellowship=row["fellowship"],
            status=row["status"],
            ytd_total=float(row["ytd_total"] or 0),
            last_gift_date=row["last_gift_date"],
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "fellowship": self.fellowship,
            "status": self.status,
            "ytd_total": self.ytd_total,
            "last_gift_date": self.last_gift_date,
        }


@dataclass(frozen=True)
class Transaction:
    id: str
    batch_id: str
    member_id: str
    member_name: str  # denormalized for display
    fellowship: str
    amount: float
    method: str
    timestamp: str  # ISO; its date part is the only period key
    officer_id: str
    officer_name: str | None = None

    @property
    def day(self) -> str:
        return self.timestamp[:10]

    @classmethod
    def from_row(cls, row) -> "Transaction":
        return cls(
            id=row["id"],
            batch_id=row["batch_id"],
            member_id=row["member_id"],
            member_name=row["member_name"],
            fellowship=row["fellowship"],
            amount=float(row["amount"]),
            method=row["method"],
            timestamp=row["timestamp"],
            officer_id=row["officer_id"],
            officer_name=row["officer_name"],
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "fellowship": self.fellowship,
            "amount": self.amount,
            "method": self.method,
            "timestamp": self.timestamp,
            "officer_id": self.officer_id,
            "officer_name": self.officer_name,
        }


@dataclass(frozen=True)
class Batch:
    id: str
    date: str
    status: str = BatchStatus.OPEN.value
    total_system: float = 0.0
    total_cash: float = 0.0
    variance: float = 0.0
    finalized_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BATCH_STATUSES

    @classmethod
    def from_row(cls, row) -> "Batch":
        return cls(
            id=row["id"],
            date=row["date"],
            status=row["status"],
            total_system=float(row["total_system"] or 0),
            total_cash=float(row["total_cash"] or 0),
            variance=float(row["variance"] or 0),
            finalized_by=row["finalized_by"],
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "status": self.status,
            "total_system": self.total_system,
            "total_cash": self.total_cash,
            "variance": self.variance,
            "finalized_by": self.finalized_by,
        }


@dataclass(frozen=True)
class Officer:
    id: int
    username: str
    name: str
    role: str  # OFFICER or SUPERVISOR

    @classmethod
    def from_row(cls, row) -> "Officer":
        return cls(id=row["id"], username=row["username"], name=row["name"], role=row["role"])
