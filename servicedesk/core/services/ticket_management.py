"""Ticket lifecycle: create, edit, delete, assignment, scoped listing and search.

Every write that changes a ticket bumps its ``Version``; callers pass the
version they read and get ``ResultCode.CONFLICT`` when someone else got there
first. Outcomes come back as :class:`OperationResult`, never as HTTP errors.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from servicedesk.core.enums import TicketScope, TicketStatus
from servicedesk.core.repositories.models import Employee, HandlingEntry, Ticket
from servicedesk.shared.exceptions import DatabaseError, ValidationError
from servicedesk.shared.schemas.ticket import TicketCreate, TicketListItem, TicketUpdate
from servicedesk.shared.utils.date_format import utcnow

from .permissions import RequestContext
from .scope import ScopeFilter, coerce_scope, resolve_scope
from .system_utilities import OperationResult, ResultCode, parse_entity_id
from .ticket_search import build_search_clause

logger = logging.getLogger(__name__)

# Fields a caller may change through a generic edit; everything else
# (reporter, timestamps, version) is managed here.
_EDITABLE_FIELDS = frozenset(
    {"Title", "Description", "Ticket_Type", "Priority", "Deadline", "Status", "Assigned_To"}
)


def _validate_payload(model: type[BaseModel], payload: BaseModel | Dict[str, Any]) -> BaseModel:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__} payload", details=str(exc)) from exc


class TicketManager:
    """Handles ticket CRUD, assignment and scoped listing."""

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    async def get_ticket(self, db: AsyncSession, ticket_id: str) -> Ticket | None:
        tid = parse_entity_id(ticket_id, "ticket_id")
        return await db.get(Ticket, tid)

    async def get_ticket_for(
        self, db: AsyncSession, ctx: RequestContext, ticket_id: str
    ) -> OperationResult[Ticket]:
        ticket = await self.get_ticket(db, ticket_id)
        if not ticket:
            return OperationResult.fail(ResultCode.NOT_FOUND, "Ticket not found")
        if not ctx.policy.can_view(ctx.user_id, ticket):
            return OperationResult.fail(
                ResultCode.PERMISSION_DENIED, "You are not allowed to view this ticket"
            )
        return OperationResult.ok(ticket)

    async def _active_employee(self, db: AsyncSession, employee_id: str) -> Employee | None:
        employee = await db.get(Employee, employee_id)
        if employee is None or employee.Is_Disabled:
            return None
        return employee

    async def _reload(self, db: AsyncSession, ticket_id: str) -> Ticket | None:
        return await db.get(Ticket, ticket_id, populate_existing=True)

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------
    async def create_ticket(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        data: TicketCreate | Dict[str, Any],
    ) -> OperationResult[Ticket]:
        data = _validate_payload(TicketCreate, data)

        reporter_id = ctx.user_id
        if data.Reported_By and ctx.policy.can_report_for_others():
            reporter_id = parse_entity_id(data.Reported_By, "Reported_By")
            if reporter_id != ctx.user_id and not await self._active_employee(db, reporter_id):
                return OperationResult.fail(ResultCode.NOT_FOUND, "Reporter not found")

        now = utcnow()
        ticket = Ticket(
            Title=data.Title,
            Description=data.Description,
            Ticket_Type=data.Ticket_Type,
            Priority=data.Priority,
            Deadline=data.Deadline,
            Status=TicketStatus.OPEN,
            Reported_By=reporter_id,
            Version=1,
            Created_Date=now,
            LastModified=now,
            LastModifiedBy=ctx.user_id,
        )
        db.add(ticket)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to create ticket")
            raise DatabaseError("Failed to create ticket", details=str(e)) from e
        logger.info("Created ticket %s reported by %s", ticket.Ticket_ID, reporter_id)
        return OperationResult.ok(ticket)

    async def update_ticket(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        ticket_id: str,
        updates: TicketUpdate | Dict[str, Any],
    ) -> OperationResult[Ticket]:
        tid = parse_entity_id(ticket_id, "ticket_id")
        payload = _validate_payload(TicketUpdate, updates)
        values = payload.model_dump(exclude_unset=True)
        expected_version = values.pop("Version", None)
        values = {k: v for k, v in values.items() if k in _EDITABLE_FIELDS}

        if values.get("Assigned_To"):
            values["Assigned_To"] = parse_entity_id(values["Assigned_To"], "Assigned_To")

        ticket = await db.get(Ticket, tid)
        if not ticket:
            return OperationResult.fail(ResultCode.NOT_FOUND, "Ticket not found")
        if not ctx.policy.can_edit(ctx.user_id, ticket):
            return OperationResult.fail(
                ResultCode.PERMISSION_DENIED, "You are not allowed to edit this ticket"
            )
        if expected_version is not None and ticket.Version != expected_version:
            return OperationResult.fail(
                ResultCode.CONFLICT, "Ticket was modified by someone else"
            )

        changes = {k: v for k, v in values.items() if getattr(ticket, k) != v}
        if not changes:
            return OperationResult.ok(ticket)

        if "Assigned_To" in changes:
            if not ctx.policy.can_assign():
                return OperationResult.fail(
                    ResultCode.PERMISSION_DENIED, "Only the service desk may change the assignee"
                )
            new_assignee = changes["Assigned_To"]
            if new_assignee and not await self._active_employee(db, new_assignee):
                return OperationResult.fail(ResultCode.NOT_FOUND, "Assignee not found")

        now = utcnow()
        if "Status" in changes:
            new_status = TicketStatus(changes["Status"])
            if new_status.is_finished and not TicketStatus(ticket.Status).is_finished:
                changes["Closed_Date"] = now
            elif not new_status.is_finished:
                changes["Closed_Date"] = None

        try:
            applied = await self._compare_and_swap(
                db, tid, ticket.Version, changes, actor_id=ctx.user_id, now=now
            )
            if not applied:
                return OperationResult.fail(
                    ResultCode.CONFLICT, "Ticket was modified by someone else"
                )
            if changes.get("Assigned_To"):
                db.add(HandlingEntry(Ticket_ID=tid, Employee_ID=changes["Assigned_To"], Handled_Date=now))
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to update ticket %s", tid)
            raise DatabaseError("Failed to update ticket", details=str(e)) from e

        logger.info("Updated ticket %s fields %s", tid, sorted(changes))
        return OperationResult.ok(await self._reload(db, tid))

    async def delete_ticket(
        self, db: AsyncSession, ctx: RequestContext, ticket_id: str
    ) -> OperationResult[bool]:
        ticket = await self.get_ticket(db, ticket_id)
        if not ticket:
            return OperationResult.fail(ResultCode.NOT_FOUND, "Ticket not found")
        if not ctx.policy.can_delete(ctx.user_id, ticket):
            return OperationResult.fail(
                ResultCode.PERMISSION_DENIED, "You are not allowed to delete this ticket"
            )
        try:
            await db.execute(delete(HandlingEntry).where(HandlingEntry.Ticket_ID == ticket.Ticket_ID))
            await db.delete(ticket)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to delete ticket %s", ticket.Ticket_ID)
            raise DatabaseError("Failed to delete ticket", details=str(e)) from e
        logger.info("Deleted ticket %s", ticket.Ticket_ID)
        return OperationResult.ok(True)

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------
    async def _compare_and_swap(
        self,
        db: AsyncSession,
        ticket_id: str,
        expected_version: int,
        changes: Dict[str, Any],
        *,
        actor_id: Optional[str],
        now,
    ) -> bool:
        stmt = (
            update(Ticket)
            .where(Ticket.Ticket_ID == ticket_id, Ticket.Version == expected_version)
            .values(
                **changes,
                Version=Ticket.Version + 1,
                LastModified=now,
                LastModifiedBy=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def assign(
        self,
        db: AsyncSession,
        ticket_id: str,
        assignee_id: str,
        *,
        actor_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Ticket]:
        """Make *assignee_id* the current owner of a ticket.

        The assignee field and the handling history are written in the same
        transaction. The write only lands if the ticket is still at
        ``expected_version`` (defaults to the version read here); otherwise
        the result carries ``ResultCode.CONFLICT``.
        """
        tid = parse_entity_id(ticket_id, "ticket_id")
        aid = parse_entity_id(assignee_id, "assignee_id")

        ticket = await db.get(Ticket, tid)
        if not ticket:
            logger.info("Assign failed: ticket %s not found", tid)
            return OperationResult.fail(ResultCode.NOT_FOUND, "Ticket not found")
        if not await self._active_employee(db, aid):
            logger.info("Assign failed: employee %s not found or disabled", aid)
            return OperationResult.fail(ResultCode.NOT_FOUND, "Assignee not found")

        version = ticket.Version if expected_version is None else expected_version
        if ticket.Assigned_To == aid and ticket.Version == version:
            return OperationResult.ok(ticket)

        now = utcnow()
        try:
            applied = await self._compare_and_swap(
                db, tid, version, {"Assigned_To": aid}, actor_id=actor_id or aid, now=now
            )
            if not applied:
                logger.warning("Assign conflict on ticket %s (expected version %s)", tid, version)
                return OperationResult.fail(
                    ResultCode.CONFLICT, "Ticket was modified by someone else"
                )
            db.add(HandlingEntry(Ticket_ID=tid, Employee_ID=aid, Handled_Date=now))
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to assign ticket %s", tid)
            raise DatabaseError("Failed to assign ticket", details=str(e)) from e

        logger.info("Assigned ticket %s to %s", tid, aid)
        return OperationResult.ok(await self._reload(db, tid))

    async def assign_as(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        ticket_id: str,
        assignee_id: str,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Ticket]:
        parse_entity_id(ticket_id, "ticket_id")
        parse_entity_id(assignee_id, "assignee_id")
        if not ctx.policy.can_assign():
            return OperationResult.fail(
                ResultCode.PERMISSION_DENIED, "Only the service desk may assign tickets"
            )
        return await self.assign(
            db, ticket_id, assignee_id, actor_id=ctx.user_id, expected_version=expected_version
        )

    async def assign_to_self(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        ticket_id: str,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Ticket]:
        return await self.assign_as(db, ctx, ticket_id, ctx.user_id, expected_version)

    async def get_handling_history(
        self, db: AsyncSession, ticket_id: str
    ) -> List[HandlingEntry]:
        tid = parse_entity_id(ticket_id, "ticket_id")
        result = await db.execute(
            select(HandlingEntry)
            .filter(HandlingEntry.Ticket_ID == tid)
            .order_by(HandlingEntry.Handled_Date, HandlingEntry.ID)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Scoped listing and search
    # ------------------------------------------------------------------
    def _scope_for(
        self, ctx: RequestContext, sub_scope: TicketScope | str | None
    ) -> OperationResult[ScopeFilter]:
        selected = coerce_scope(sub_scope)
        if selected is TicketScope.ALL and not ctx.policy.can_view_all():
            return OperationResult.fail(
                ResultCode.PERMISSION_DENIED, "Only the service desk can view all tickets"
            )
        return OperationResult.ok(resolve_scope(ctx.role, ctx.user_id, selected))

    async def find_filtered(
        self,
        db: AsyncSession,
        scope: ScopeFilter,
        *,
        status: TicketStatus | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> Sequence[Ticket]:
        query = select(Ticket).where(scope.clause())
        if status is not None:
            query = query.where(Ticket.Status == status)
        query = query.order_by(Ticket.Created_Date.desc(), Ticket.Ticket_ID)
        if skip:
            query = query.offset(skip)
        if limit:
            query = query.limit(limit)
        result = await db.execute(query)
        return result.scalars().all()

    async def list_tickets(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        sub_scope: TicketScope | str | None = None,
        *,
        status: TicketStatus | str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> OperationResult[Tuple[List[TicketListItem], int]]:
        scoped = self._scope_for(ctx, sub_scope)
        if not scoped.success:
            return OperationResult.fail(scoped.code, scoped.error)
        scope = scoped.data

        reporter = aliased(Employee)
        assignee = aliased(Employee)
        conditions = [scope.clause()]
        if status is not None:
            try:
                conditions.append(Ticket.Status == TicketStatus(status))
            except ValueError as exc:
                raise ValidationError("Invalid status", details=repr(status)) from exc

        stmt = (
            select(Ticket, reporter, assignee)
            .outerjoin(reporter, reporter.Employee_ID == Ticket.Reported_By)
            .outerjoin(assignee, assignee.Employee_ID == Ticket.Assigned_To)
            .where(*conditions)
            .order_by(Ticket.Created_Date.desc(), Ticket.Ticket_ID)
        )
        count_stmt = select(func.count(Ticket.Ticket_ID)).where(*conditions)
        try:
            total = await db.scalar(count_stmt) or 0
            if skip:
                stmt = stmt.offset(skip)
            if limit:
                stmt = stmt.limit(limit)
            rows = (await db.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.exception("Failed to list tickets")
            raise DatabaseError("Failed to list tickets", details=str(e)) from e

        items = [
            TicketListItem(
                Ticket_ID=t.Ticket_ID,
                Title=t.Title,
                Status=t.Status,
                Priority=t.Priority,
                Deadline=t.Deadline,
                Reporter_Name=r.display_name if r else None,
                Assignee_Name=a.display_name if a else None,
                Is_Assigned_To_Current_User=bool(ctx.user_id) and t.Assigned_To == ctx.user_id,
                Version=t.Version,
            )
            for t, r, a in rows
        ]
        return OperationResult.ok((items, total))

    @staticmethod
    def _search_scope_clause(scope: ScopeFilter):
        """Search widens a service-desk "my" scope to tickets the caller has handled."""
        if scope.field != "Assigned_To" or not scope.user_id:
            return scope.clause()
        handled = exists().where(
            HandlingEntry.Ticket_ID == Ticket.Ticket_ID,
            HandlingEntry.Employee_ID == scope.user_id,
        )
        return or_(scope.clause(), handled)

    async def search_tickets(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        query: str | None,
        sub_scope: TicketScope | str | None = None,
        *,
        limit: int = 50,
    ) -> OperationResult[List[Ticket]]:
        """Search titles and descriptions within the caller's scope, newest first.

        For service-desk staff the default "my" scope covers tickets assigned
        to them and tickets they handled before being reassigned.
        """
        scoped = self._scope_for(ctx, sub_scope)
        if not scoped.success:
            return OperationResult.fail(scoped.code, scoped.error)
        if not query or not query.strip():
            return OperationResult.ok([])

        stmt = (
            select(Ticket)
            .where(self._search_scope_clause(scoped.data), build_search_clause(query))
            .order_by(Ticket.Created_Date.desc(), Ticket.Ticket_ID)
        )
        if limit:
            stmt = stmt.limit(limit)
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Ticket search failed for %r", query)
            raise DatabaseError("Ticket search failed", details=str(e)) from e
        return OperationResult.ok(list(result.scalars().all()))


__all__ = ["TicketManager"]
