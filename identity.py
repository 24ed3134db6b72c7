"""
identity.py
Deterministic member ids for imported names + duplicate-name merge planning.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field

from models import Member


def normalize_name(name: str) -> str:
    return str(name or "").strip().upper()


def _utf16_units(text: str):
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def name_hash(text: str) -> int:
    """
    h = h * 31 + unit over UTF-16 code units, wrapped to a signed 32-bit int.
    Not collision-free: two names sharing a hash get merged.
    """
    h = 0
    for unit in _utf16_units(text):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def derive_id(name: str) -> str:
    return f"GEN-{abs(name_hash(normalize_name(name)))}"


@dataclass
class MergePlan:
    """What import has to do to existing members before writing new rows."""

    # incoming member id -> survivor id (only where they differ)
    remap: dict[str, str] = field(default_factory=dict)
    # victim id -> survivor id
    victims: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.remap and not self.victims


def plan_merge(existing: list[Member], incoming: list[Member]) -> MergePlan:
    """
    Group existing members by normalized name (in the order given, first seen
    wins). For every incoming name that matches a group, the first existing
    record survives and every other record in that group becomes a victim.
    """
    groups: OrderedDict[str, list[Member]] = OrderedDict()
    for m in existing:
        groups.setdefault(normalize_name(m.name), []).append(m)

    plan = MergePlan()
    for m in incoming:
        group = groups.get(normalize_name(m.name))
        if not group:
            continue
        survivor = group[0]
        if m.id != survivor.id:
            plan.remap[m.id] = survivor.id
        for victim in group[1:]:
            plan.victims[victim.id] = survivor.id
    return plan
