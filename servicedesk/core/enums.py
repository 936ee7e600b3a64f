"""Enumerations shared by models, services and schemas.

Values are stored as their string names, so the database stays readable and
new members can be appended without renumbering.
"""

from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    ON_HOLD = "OnHold"
    RESOLVED = "Resolved"
    CLOSED = "Closed"

    @property
    def is_open_family(self) -> bool:
        return self in OPEN_FAMILY

    @property
    def is_finished(self) -> bool:
        return self in (TicketStatus.RESOLVED, TicketStatus.CLOSED)


# Dashboard label order; charts rely on it being fixed.
STATUS_ORDER: tuple[TicketStatus, ...] = (
    TicketStatus.OPEN,
    TicketStatus.IN_PROGRESS,
    TicketStatus.ON_HOLD,
    TicketStatus.RESOLVED,
    TicketStatus.CLOSED,
)

OPEN_FAMILY = frozenset(
    {TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.ON_HOLD}
)


class TicketPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TicketPriority.LOW: 1,
    TicketPriority.MEDIUM: 2,
    TicketPriority.HIGH: 3,
}


class TicketType(str, Enum):
    SOFTWARE = "Software"
    HARDWARE = "Hardware"
    SERVICE = "Service"


class RoleType(str, Enum):
    REGULAR = "Regular"
    SERVICE_DESK = "ServiceDesk"


class TicketScope(str, Enum):
    """Sub-scope a caller selects when listing or aggregating tickets."""

    MY = "my"
    ALL = "all"

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


__all__ = [
    "TicketStatus",
    "TicketPriority",
    "TicketType",
    "RoleType",
    "TicketScope",
    "STATUS_ORDER",
    "OPEN_FAMILY",
]
