import logging
from typing import AsyncGenerator, NoReturn

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.enums import RoleType
from servicedesk.core.services.employee_directory import EmployeeDirectory
from servicedesk.core.services.permissions import RequestContext
from servicedesk.core.services.system_utilities import OperationResult, ResultCode, is_valid_entity_id
from servicedesk.infrastructure.database import SessionLocal

logger = logging.getLogger(__name__)

_STATUS_FOR_CODE = {
    ResultCode.NOT_FOUND: 404,
    ResultCode.PERMISSION_DENIED: 403,
    ResultCode.CONFLICT: 409,
}


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a SQLAlchemy AsyncSession, committing when the request succeeds."""
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_request_context(
    x_employee_id: str | None = Header(None, alias="X-Employee-ID"),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """Resolve the calling employee from the ``X-Employee-ID`` header."""
    if not x_employee_id or not is_valid_entity_id(x_employee_id):
        raise HTTPException(status_code=401, detail="Missing or invalid X-Employee-ID header")
    employee = await EmployeeDirectory().find_by_id(db, x_employee_id)
    if employee is None or employee.Is_Disabled:
        logger.info("Rejected request from unknown or disabled employee %s", x_employee_id)
        raise HTTPException(status_code=401, detail="Unknown or disabled employee")
    return RequestContext(user_id=employee.Employee_ID, role=RoleType(employee.Role))


async def require_service_desk(
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    if not ctx.policy.can_assign():
        raise HTTPException(status_code=403, detail="Service desk role required")
    return ctx


def raise_for_result(result: OperationResult) -> NoReturn:
    """Translate a failed OperationResult into the matching HTTP error."""
    status = _STATUS_FOR_CODE.get(result.code, 500)
    raise HTTPException(status_code=status, detail=result.error or result.code.value)


def unwrap(result: OperationResult):
    if not result.success:
        raise_for_result(result)
    return result.data
