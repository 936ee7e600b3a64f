"""Employee lookup and account maintenance."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import exists, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.repositories.models import Employee, HandlingEntry, Ticket
from servicedesk.shared.exceptions import DatabaseError, ValidationError
from servicedesk.shared.schemas.employee import (
    EmployeeCreate,
    EmployeeListItem,
    EmployeeUpdate,
    PasswordChange,
)
from servicedesk.shared.utils.passwords import hash_password

from .system_utilities import OperationResult, ResultCode, parse_entity_id

logger = logging.getLogger(__name__)


def _validate(model: type[BaseModel], payload: BaseModel | Dict[str, Any]) -> Any:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__} payload", details=str(exc)) from exc


class EmployeeDirectory:
    """Handles employee lookup, profile updates and password changes."""

    async def find_by_id(self, db: AsyncSession, employee_id: str) -> Employee | None:
        eid = parse_entity_id(employee_id, "employee_id")
        return await db.get(Employee, eid)

    async def find_by_email(self, db: AsyncSession, email: str) -> Employee | None:
        if not email or not email.strip():
            raise ValidationError("Email is required")
        result = await db.execute(
            select(Employee).where(func.lower(Employee.Email) == email.strip().lower())
        )
        return result.scalars().first()

    async def list_employees(self, db: AsyncSession) -> List[EmployeeListItem]:
        reported = (
            select(Ticket.Reported_By, func.count(Ticket.Ticket_ID).label("reported"))
            .group_by(Ticket.Reported_By)
            .subquery()
        )
        stmt = (
            select(Employee, func.coalesce(reported.c.reported, 0))
            .outerjoin(reported, reported.c.Reported_By == Employee.Employee_ID)
            .order_by(Employee.Last_Name, Employee.First_Name, Employee.Email)
        )
        try:
            rows = (await db.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.exception("Failed to list employees")
            raise DatabaseError("Failed to list employees", details=str(e)) from e
        items: List[EmployeeListItem] = []
        for employee, count in rows:
            item = EmployeeListItem.model_validate(employee, from_attributes=True)
            item.Reported_Ticket_Count = count
            items.append(item)
        return items

    async def create_employee(
        self, db: AsyncSession, data: EmployeeCreate | Dict[str, Any]
    ) -> OperationResult[Employee]:
        data = _validate(EmployeeCreate, data)
        if await self.find_by_email(db, data.Email):
            return OperationResult.fail(ResultCode.CONFLICT, "Email already in use")

        employee = Employee(
            First_Name=data.First_Name,
            Last_Name=data.Last_Name,
            Role=data.Role,
            Email=str(data.Email).lower(),
            Phone=data.Phone,
            Location=data.Location,
            Is_Disabled=data.Is_Disabled,
            Password_Hash=hash_password(data.Password),
        )
        db.add(employee)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.warning("Duplicate employee email %s", data.Email)
            return OperationResult.fail(ResultCode.CONFLICT, "Email already in use")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to create employee")
            raise DatabaseError("Failed to create employee", details=str(e)) from e
        logger.info("Created employee %s (%s)", employee.Employee_ID, employee.Role)
        return OperationResult.ok(employee)

    async def update_profile(
        self,
        db: AsyncSession,
        employee_id: str,
        updates: EmployeeUpdate | Dict[str, Any],
    ) -> OperationResult[Employee]:
        eid = parse_entity_id(employee_id, "employee_id")
        values = _validate(EmployeeUpdate, updates).model_dump(exclude_unset=True)
        employee = await db.get(Employee, eid)
        if not employee:
            return OperationResult.fail(ResultCode.NOT_FOUND, "Employee not found")

        if "Email" in values:
            values["Email"] = str(values["Email"]).lower()
            other = await self.find_by_email(db, values["Email"])
            if other and other.Employee_ID != eid:
                return OperationResult.fail(ResultCode.CONFLICT, "Email already in use")

        for key, value in values.items():
            setattr(employee, key, value)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to update employee %s", eid)
            raise DatabaseError("Failed to update employee", details=str(e)) from e
        logger.info("Updated employee %s fields %s", eid, sorted(values))
        return OperationResult.ok(employee)

    async def change_password(
        self,
        db: AsyncSession,
        employee_id: str,
        change: PasswordChange | Dict[str, Any],
    ) -> OperationResult[bool]:
        eid = parse_entity_id(employee_id, "employee_id")
        change = _validate(PasswordChange, change)
        if change.New_Password != change.Confirm_New_Password:
            raise ValidationError("Password confirmation does not match")
        employee = await db.get(Employee, eid)
        if not employee:
            return OperationResult.fail(ResultCode.NOT_FOUND, "Employee not found")
        employee.Password_Hash = hash_password(change.New_Password)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to change password for %s", eid)
            raise DatabaseError("Failed to change password", details=str(e)) from e
        logger.info("Changed password for employee %s", eid)
        return OperationResult.ok(True)

    async def is_referenced(self, db: AsyncSession, employee_id: str) -> bool:
        """True while any ticket points at the employee as reporter, assignee or handler."""
        eid = parse_entity_id(employee_id, "employee_id")
        stmt = select(
            or_(
                exists().where(or_(Ticket.Reported_By == eid, Ticket.Assigned_To == eid)),
                exists().where(HandlingEntry.Employee_ID == eid),
            )
        )
        return bool(await db.scalar(stmt))

    async def delete_employee(self, db: AsyncSession, employee_id: str) -> OperationResult[bool]:
        """Delete an employee unless tickets still reference them."""
        eid = parse_entity_id(employee_id, "employee_id")
        employee = await db.get(Employee, eid)
        if not employee:
            return OperationResult.fail(ResultCode.NOT_FOUND, "Employee not found")
        if await self.is_referenced(db, eid):
            return OperationResult.fail(
                ResultCode.CONFLICT, "Employee is referenced by tickets; disable the account instead"
            )
        try:
            await db.delete(employee)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to delete employee %s", eid)
            raise DatabaseError("Failed to delete employee", details=str(e)) from e
        logger.info("Deleted employee %s", eid)
        return OperationResult.ok(True)


__all__ = ["EmployeeDirectory"]
