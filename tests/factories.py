"""Helpers that insert rows directly, bypassing the services under test."""

from datetime import timedelta
from uuid import uuid4

import bcrypt

from servicedesk.core.enums import RoleType, TicketStatus
from servicedesk.core.repositories.models import Employee, Ticket
from servicedesk.core.services.permissions import RequestContext
from servicedesk.shared.utils.date_format import utcnow

# Low cost factor keeps fixtures fast; production hashing uses the default.
PASSWORD = "correct-horse"
PASSWORD_HASH = bcrypt.hashpw(PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()


async def make_employee(
    db,
    role=RoleType.REGULAR,
    *,
    first="Test",
    last="User",
    email=None,
    disabled=False,
):
    employee = Employee(
        First_Name=first,
        Last_Name=last,
        Role=role,
        Email=email or f"{uuid4().hex[:10]}@example.com",
        Is_Disabled=disabled,
        Password_Hash=PASSWORD_HASH,
    )
    db.add(employee)
    await db.commit()
    return employee


_created_offset = 0


async def make_ticket(
    db,
    reporter,
    *,
    title="Printer jam",
    description="Paper stuck in tray 2",
    status=TicketStatus.OPEN,
    assignee=None,
    deadline=None,
):
    global _created_offset
    _created_offset += 1
    created = utcnow() - timedelta(days=1) + timedelta(seconds=_created_offset)
    ticket = Ticket(
        Title=title,
        Description=description,
        Status=status,
        Deadline=deadline,
        Reported_By=reporter.Employee_ID,
        Assigned_To=assignee.Employee_ID if assignee else None,
        Version=1,
        Created_Date=created,
        LastModified=created,
    )
    db.add(ticket)
    await db.commit()
    return ticket


def ctx_for(employee):
    return RequestContext(user_id=employee.Employee_ID, role=RoleType(employee.Role))


def headers_for(employee):
    return {"X-Employee-ID": employee.Employee_ID}
