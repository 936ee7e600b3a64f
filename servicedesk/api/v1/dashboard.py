import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.enums import TicketScope
from servicedesk.core.services.dashboard import (
    dashboard_snapshot,
    landing_scope,
    open_and_overdue,
    rollup_counts,
    status_breakdown,
)
from servicedesk.core.services.permissions import RequestContext
from servicedesk.shared.schemas.dashboard import (
    DashboardSnapshot,
    OpenOverdue,
    RollupCounts,
    StatusBreakdown,
)

from .deps import get_db, get_request_context

logger = logging.getLogger(__name__)

# ─── Dashboard Router ─────────────────────────────────────────────────────────

dashboard_router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@dashboard_router.get(
    "",
    response_model=DashboardSnapshot,
    operation_id="dashboard_snapshot",
)
async def dashboard_endpoint(
    scope: Optional[TicketScope] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> DashboardSnapshot:
    return await dashboard_snapshot(db, ctx, scope)


@dashboard_router.get(
    "/status",
    response_model=StatusBreakdown,
    operation_id="dashboard_status_breakdown",
)
async def status_breakdown_endpoint(
    scope: Optional[TicketScope] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> StatusBreakdown:
    return await status_breakdown(db, landing_scope(ctx, scope))


@dashboard_router.get(
    "/open_overdue",
    response_model=OpenOverdue,
    operation_id="dashboard_open_overdue",
)
async def open_overdue_endpoint(
    scope: Optional[TicketScope] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> OpenOverdue:
    return await open_and_overdue(db, landing_scope(ctx, scope))


@dashboard_router.get(
    "/rollup",
    response_model=RollupCounts,
    operation_id="dashboard_rollup",
)
async def rollup_endpoint(
    scope: Optional[TicketScope] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> RollupCounts:
    return await rollup_counts(db, landing_scope(ctx, scope))


__all__ = ["dashboard_router"]
