from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.enums import TicketScope, TicketStatus
from servicedesk.core.services.permissions import RequestContext
from servicedesk.core.services.ticket_management import TicketManager
from servicedesk.shared.schemas import (
    AssignRequest,
    AssignToMeRequest,
    HandlingEntryOut,
    PaginatedResponse,
    TicketCreate,
    TicketListItem,
    TicketOut,
    TicketUpdate,
)

from .deps import get_db, get_request_context, unwrap

logger = logging.getLogger(__name__)

# ─── Tickets Router ───────────────────────────────────────────────────────────

ticket_router = APIRouter(prefix="/tickets", tags=["tickets"])


@ticket_router.get(
    "",
    response_model=PaginatedResponse[TicketListItem],
    operation_id="list_tickets",
)
async def list_tickets(
    scope: Optional[TicketScope] = Query(None),
    status: Optional[TicketStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> PaginatedResponse[TicketListItem]:
    items, total = unwrap(
        await TicketManager().list_tickets(db, ctx, scope, status=status, skip=skip, limit=limit)
    )
    return PaginatedResponse(items=items, total=total, skip=skip, limit=limit)


@ticket_router.get(
    "/search",
    response_model=List[TicketOut],
    operation_id="search_tickets",
)
async def search_tickets(
    q: str = Query("", max_length=500),
    scope: Optional[TicketScope] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> List[TicketOut]:
    logger.info("Searching tickets for '%s' (limit=%d)", q, limit)
    records = unwrap(await TicketManager().search_tickets(db, ctx, q, scope, limit=limit))
    return [TicketOut.model_validate(r) for r in records]


@ticket_router.get(
    "/{ticket_id}",
    response_model=TicketOut,
    operation_id="get_ticket",
)
async def get_ticket(
    ticket_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> TicketOut:
    ticket = unwrap(await TicketManager().get_ticket_for(db, ctx, ticket_id))
    return TicketOut.model_validate(ticket)


@ticket_router.get(
    "/{ticket_id}/history",
    response_model=List[HandlingEntryOut],
    operation_id="get_ticket_history",
)
async def get_ticket_history(
    ticket_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> List[HandlingEntryOut]:
    manager = TicketManager()
    unwrap(await manager.get_ticket_for(db, ctx, ticket_id))
    entries = await manager.get_handling_history(db, ticket_id)
    return [HandlingEntryOut.model_validate(e) for e in entries]


@ticket_router.post(
    "",
    response_model=TicketOut,
    status_code=201,
    operation_id="create_ticket",
)
async def create_ticket(
    payload: TicketCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> TicketOut:
    ticket = unwrap(await TicketManager().create_ticket(db, ctx, payload))
    return TicketOut.model_validate(ticket)


@ticket_router.put(
    "/{ticket_id}",
    response_model=TicketOut,
    operation_id="update_ticket",
)
async def update_ticket(
    ticket_id: str,
    updates: TicketUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> TicketOut:
    ticket = unwrap(await TicketManager().update_ticket(db, ctx, ticket_id, updates))
    return TicketOut.model_validate(ticket)


@ticket_router.delete(
    "/{ticket_id}",
    operation_id="delete_ticket",
)
async def delete_ticket(
    ticket_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    unwrap(await TicketManager().delete_ticket(db, ctx, ticket_id))
    return {"deleted": True}


@ticket_router.post(
    "/{ticket_id}/assign",
    response_model=TicketOut,
    operation_id="assign_ticket",
)
async def assign_ticket(
    ticket_id: str,
    payload: AssignRequest,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> TicketOut:
    ticket = unwrap(
        await TicketManager().assign_as(
            db, ctx, ticket_id, payload.assignee_id, payload.expected_version
        )
    )
    return TicketOut.model_validate(ticket)


@ticket_router.post(
    "/{ticket_id}/assign_to_me",
    response_model=TicketOut,
    operation_id="assign_ticket_to_me",
)
async def assign_ticket_to_me(
    ticket_id: str,
    payload: Optional[AssignToMeRequest] = None,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> TicketOut:
    expected = payload.expected_version if payload else None
    result = await TicketManager().assign_to_self(db, ctx, ticket_id, expected)
    if not result.success:
        logger.info("assign_to_me refused for %s on %s: %s", ctx.user_id, ticket_id, result.error)
    return TicketOut.model_validate(unwrap(result))


__all__ = ["ticket_router"]
