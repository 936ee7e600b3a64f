import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.services.employee_directory import EmployeeDirectory
from servicedesk.core.services.permissions import RequestContext
from servicedesk.core.services.system_utilities import parse_entity_id
from servicedesk.shared.schemas.employee import (
    EmployeeCreate,
    EmployeeListItem,
    EmployeeOut,
    EmployeeUpdate,
    PasswordChange,
)

from .deps import get_db, get_request_context, require_service_desk, unwrap

logger = logging.getLogger(__name__)

# ─── Employee Directory Router ────────────────────────────────────────────────

employee_router = APIRouter(prefix="/employees", tags=["employees"])


def _ensure_self_or_service_desk(ctx: RequestContext, employee_id: str) -> None:
    if parse_entity_id(employee_id, "employee_id") != ctx.user_id and not ctx.policy.can_assign():
        raise HTTPException(status_code=403, detail="Not allowed to access this employee")


@employee_router.get(
    "",
    response_model=List[EmployeeListItem],
    operation_id="list_employees",
)
async def list_employees(
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(require_service_desk),
) -> List[EmployeeListItem]:
    return await EmployeeDirectory().list_employees(db)


@employee_router.post(
    "",
    response_model=EmployeeOut,
    status_code=201,
    operation_id="create_employee",
)
async def create_employee(
    payload: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(require_service_desk),
) -> EmployeeOut:
    employee = unwrap(await EmployeeDirectory().create_employee(db, payload))
    return EmployeeOut.model_validate(employee)


@employee_router.get(
    "/{employee_id}",
    response_model=EmployeeOut,
    operation_id="get_employee",
)
async def get_employee(
    employee_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> EmployeeOut:
    _ensure_self_or_service_desk(ctx, employee_id)
    employee = await EmployeeDirectory().find_by_id(db, employee_id)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return EmployeeOut.model_validate(employee)


@employee_router.put(
    "/{employee_id}",
    response_model=EmployeeOut,
    operation_id="update_employee",
)
async def update_employee(
    employee_id: str,
    updates: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(require_service_desk),
) -> EmployeeOut:
    employee = unwrap(await EmployeeDirectory().update_profile(db, employee_id, updates))
    return EmployeeOut.model_validate(employee)


@employee_router.put(
    "/{employee_id}/password",
    operation_id="change_employee_password",
)
async def change_password(
    employee_id: str,
    change: PasswordChange,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    _ensure_self_or_service_desk(ctx, employee_id)
    unwrap(await EmployeeDirectory().change_password(db, employee_id, change))
    return {"changed": True}


@employee_router.delete(
    "/{employee_id}",
    operation_id="delete_employee",
)
async def delete_employee(
    employee_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(require_service_desk),
) -> dict:
    unwrap(await EmployeeDirectory().delete_employee(db, employee_id))
    return {"deleted": True}


__all__ = ["employee_router"]
