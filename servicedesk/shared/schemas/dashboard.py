from pydantic import BaseModel

from servicedesk.core.enums import TicketScope


class StatusBreakdown(BaseModel):
    """Ticket counts per status, in the fixed dashboard order."""

    labels: list[str]
    counts: list[int]
    total: int


class OpenOverdue(BaseModel):
    total: int
    open: int
    overdue: int


class RollupBucket(BaseModel):
    count: int
    percentage: float


class RollupCounts(BaseModel):
    """Five statuses collapsed into open-family / resolved / closed."""

    total: int
    open: RollupBucket
    resolved: RollupBucket
    closed: RollupBucket


class DashboardSnapshot(BaseModel):
    scope: TicketScope
    status_breakdown: StatusBreakdown
    open_overdue: OpenOverdue
    rollup: RollupCounts
