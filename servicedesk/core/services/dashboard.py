"""Dashboard aggregation over a scoped ticket set.

The arithmetic lives in pure ``build_*``/``count_*`` helpers so that the
same rules apply whether counts come from a grouped query or from tickets
already in memory. The async functions only gather counts from the store.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.enums import OPEN_FAMILY, STATUS_ORDER, RoleType, TicketScope, TicketStatus
from servicedesk.core.repositories.models import Ticket
from servicedesk.shared.exceptions import DatabaseError
from servicedesk.shared.schemas.dashboard import (
    DashboardSnapshot,
    OpenOverdue,
    RollupBucket,
    RollupCounts,
    StatusBreakdown,
)
from servicedesk.shared.utils.date_format import utcnow

from .permissions import RequestContext
from .scope import ScopeFilter, coerce_scope, resolve_scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------
def _percentage(count: int, total: int) -> float:
    return 0.0 if total == 0 else count * 100.0 / total


def build_status_breakdown(counts: Mapping[TicketStatus | str, int]) -> StatusBreakdown:
    """Lay grouped counts out in the fixed status order, filling gaps with 0."""
    normalized: Dict[TicketStatus, int] = {}
    for key, value in counts.items():
        try:
            status = TicketStatus(key)
        except ValueError:
            logger.warning("Ignoring count for unknown status %r", key)
            continue
        normalized[status] = normalized.get(status, 0) + int(value)

    labels = [s.value for s in STATUS_ORDER]
    data = [normalized.get(s, 0) for s in STATUS_ORDER]
    return StatusBreakdown(labels=labels, counts=data, total=sum(data))


def build_rollup(breakdown: StatusBreakdown) -> RollupCounts:
    by_status = {TicketStatus(label): c for label, c in zip(breakdown.labels, breakdown.counts)}
    total = breakdown.total
    open_count = sum(c for s, c in by_status.items() if s in OPEN_FAMILY)
    resolved = by_status.get(TicketStatus.RESOLVED, 0)
    closed = by_status.get(TicketStatus.CLOSED, 0)
    return RollupCounts(
        total=total,
        open=RollupBucket(count=open_count, percentage=_percentage(open_count, total)),
        resolved=RollupBucket(count=resolved, percentage=_percentage(resolved, total)),
        closed=RollupBucket(count=closed, percentage=_percentage(closed, total)),
    )


def is_overdue(ticket: Any, now: datetime) -> bool:
    """An Open ticket with a deadline strictly before *now*."""
    deadline = getattr(ticket, "Deadline", None)
    return (
        getattr(ticket, "Status", None) == TicketStatus.OPEN
        and isinstance(deadline, datetime)
        and deadline < now
    )


def count_overdue(tickets: Iterable[Any], now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    return sum(1 for t in tickets if is_overdue(t, now))


def summarize_tickets(
    tickets: Iterable[Any],
    scope: ScopeFilter,
    now: Optional[datetime] = None,
) -> DashboardSnapshot:
    """Build a snapshot from tickets already loaded in memory."""
    now = now or utcnow()
    scoped = [t for t in tickets if scope.matches(t)]
    counts: Dict[TicketStatus, int] = {}
    for t in scoped:
        status = TicketStatus(t.Status)
        counts[status] = counts.get(status, 0) + 1
    breakdown = build_status_breakdown(counts)
    return DashboardSnapshot(
        scope=scope.scope,
        status_breakdown=breakdown,
        open_overdue=OpenOverdue(
            total=len(scoped),
            open=counts.get(TicketStatus.OPEN, 0),
            overdue=count_overdue(scoped, now),
        ),
        rollup=build_rollup(breakdown),
    )


# ---------------------------------------------------------------------------
# Store-backed aggregation
# ---------------------------------------------------------------------------
async def count_grouped_by_status(db: AsyncSession, scope: ScopeFilter) -> Dict[str, int]:
    try:
        result = await db.execute(
            select(Ticket.Status, func.count(Ticket.Ticket_ID))
            .where(scope.clause())
            .group_by(Ticket.Status)
        )
    except SQLAlchemyError as e:
        logger.exception("Grouped status count failed")
        raise DatabaseError("Failed to count tickets by status", details=str(e)) from e
    return {TicketStatus(row[0]).value: row[1] for row in result.all()}


async def count_where(db: AsyncSession, *conditions) -> int:
    try:
        return await db.scalar(select(func.count(Ticket.Ticket_ID)).where(*conditions)) or 0
    except SQLAlchemyError as e:
        logger.exception("Ticket count failed")
        raise DatabaseError("Failed to count tickets", details=str(e)) from e


async def count_overdue_where(db: AsyncSession, now: datetime, *conditions) -> int:
    """Count Open tickets matching *conditions* whose deadline has passed.

    Deadlines are read through the column type, so stored ISO-8601 values
    count and legacy free text reads as no deadline.
    """
    try:
        result = await db.execute(
            select(Ticket.Deadline).where(
                *conditions,
                Ticket.Status == TicketStatus.OPEN,
                Ticket.Deadline.is_not(None),
            )
        )
    except SQLAlchemyError as e:
        logger.exception("Overdue count failed")
        raise DatabaseError("Failed to count overdue tickets", details=str(e)) from e
    return sum(1 for deadline in result.scalars() if deadline is not None and deadline < now)


async def status_breakdown(db: AsyncSession, scope: ScopeFilter) -> StatusBreakdown:
    return build_status_breakdown(await count_grouped_by_status(db, scope))


async def open_and_overdue(
    db: AsyncSession, scope: ScopeFilter, now: Optional[datetime] = None
) -> OpenOverdue:
    """Total tickets in scope, how many are Open, and how many of those are overdue.

    Tickets without a usable deadline are never overdue.
    """
    now = now or utcnow()
    base = scope.clause()
    is_open = Ticket.Status == TicketStatus.OPEN
    total = await count_where(db, base)
    open_count = await count_where(db, base, is_open)
    overdue = await count_overdue_where(db, now, base)
    return OpenOverdue(total=total, open=open_count, overdue=overdue)


async def rollup_counts(db: AsyncSession, scope: ScopeFilter) -> RollupCounts:
    return build_rollup(await status_breakdown(db, scope))


def landing_scope(ctx: RequestContext, sub_scope: TicketScope | str | None = None) -> ScopeFilter:
    """Scope for the dashboard: service desk lands on every ticket, others on their own."""
    selected = coerce_scope(sub_scope)
    if selected is None:
        selected = TicketScope.ALL if ctx.role == RoleType.SERVICE_DESK else TicketScope.MY
    return resolve_scope(ctx.role, ctx.user_id, selected)


async def dashboard_snapshot(
    db: AsyncSession,
    ctx: RequestContext,
    sub_scope: TicketScope | str | None = None,
    now: Optional[datetime] = None,
) -> DashboardSnapshot:
    scope = landing_scope(ctx, sub_scope)
    breakdown = await status_breakdown(db, scope)
    snapshot = DashboardSnapshot(
        scope=scope.scope,
        status_breakdown=breakdown,
        open_overdue=await open_and_overdue(db, scope, now),
        rollup=build_rollup(breakdown),
    )
    logger.debug("Dashboard snapshot for %s (%s): %s", ctx.user_id, scope.scope.value, breakdown.counts)
    return snapshot


__all__ = [
    "build_status_breakdown",
    "build_rollup",
    "is_overdue",
    "count_overdue",
    "summarize_tickets",
    "count_overdue_where",
    "count_grouped_by_status",
    "count_where",
    "status_breakdown",
    "open_and_overdue",
    "rollup_counts",
    "landing_scope",
    "dashboard_snapshot",
]
