import uuid

import pytest

from servicedesk.core.enums import RoleType, TicketStatus
from servicedesk.core.services.system_utilities import ResultCode
from servicedesk.core.services.ticket_management import TicketManager
from servicedesk.shared.exceptions import ValidationError

from tests.factories import ctx_for, headers_for, make_employee, make_ticket


@pytest.mark.asyncio
async def test_new_tickets_always_start_open(db):
    user = await make_employee(db)
    result = await TicketManager().create_ticket(
        db, ctx_for(user), {"Title": "VPN down", "Status": "Closed", "Priority": "High"}
    )
    await db.commit()
    assert result.success
    ticket = result.data
    assert ticket.Status == TicketStatus.OPEN
    assert ticket.Reported_By == user.Employee_ID
    assert ticket.Version == 1
    assert ticket.Assigned_To is None
    assert ticket.Created_Date is not None


@pytest.mark.asyncio
async def test_regular_user_cannot_report_for_someone_else(db):
    user = await make_employee(db)
    other = await make_employee(db)
    result = await TicketManager().create_ticket(
        db, ctx_for(user), {"Title": "Mouse", "Reported_By": other.Employee_ID}
    )
    assert result.data.Reported_By == user.Employee_ID


@pytest.mark.asyncio
async def test_service_desk_can_report_on_behalf(db):
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    caller = await make_employee(db)
    result = await TicketManager().create_ticket(
        db, ctx_for(desk), {"Title": "Phone call", "Reported_By": caller.Employee_ID}
    )
    assert result.data.Reported_By == caller.Employee_ID


@pytest.mark.asyncio
async def test_unparseable_deadline_becomes_no_deadline(db):
    user = await make_employee(db)
    result = await TicketManager().create_ticket(
        db, ctx_for(user), {"Title": "Legacy", "Deadline": "7 days"}
    )
    assert result.success
    assert result.data.Deadline is None


@pytest.mark.asyncio
async def test_version_increments_on_update(db):
    user = await make_employee(db)
    ticket = await make_ticket(db, user)
    result = await TicketManager().update_ticket(
        db, ctx_for(user), ticket.Ticket_ID, {"Title": "Updated"}
    )
    await db.commit()
    assert result.success
    assert result.data.Title == "Updated"
    assert result.data.Version == 2
    assert result.data.LastModifiedBy == user.Employee_ID


@pytest.mark.asyncio
async def test_version_unchanged_when_no_real_update(db):
    user = await make_employee(db)
    ticket = await make_ticket(db, user, title="Same")
    result = await TicketManager().update_ticket(
        db, ctx_for(user), ticket.Ticket_ID, {"Title": "Same"}
    )
    assert result.success
    assert result.data.Version == 1


@pytest.mark.asyncio
async def test_update_with_stale_version_conflicts(db):
    user = await make_employee(db)
    ticket = await make_ticket(db, user)
    manager = TicketManager()
    await manager.update_ticket(db, ctx_for(user), ticket.Ticket_ID, {"Title": "One", "Version": 1})
    await db.commit()
    result = await manager.update_ticket(
        db, ctx_for(user), ticket.Ticket_ID, {"Title": "Two", "Version": 1}
    )
    assert result.code is ResultCode.CONFLICT


@pytest.mark.asyncio
async def test_closing_sets_and_reopening_clears_closed_date(db):
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    user = await make_employee(db)
    ticket = await make_ticket(db, user)
    manager = TicketManager()

    closed = await manager.update_ticket(db, ctx_for(desk), ticket.Ticket_ID, {"Status": "Closed"})
    assert closed.data.Closed_Date is not None
    reopened = await manager.update_ticket(db, ctx_for(desk), ticket.Ticket_ID, {"Status": "Open"})
    assert reopened.data.Closed_Date is None
    assert reopened.data.Version == 3


@pytest.mark.asyncio
async def test_regular_user_cannot_edit_or_delete_others_ticket(db):
    owner = await make_employee(db)
    stranger = await make_employee(db)
    ticket = await make_ticket(db, owner)
    manager = TicketManager()

    edit = await manager.update_ticket(db, ctx_for(stranger), ticket.Ticket_ID, {"Title": "Mine"})
    assert edit.code is ResultCode.PERMISSION_DENIED
    removal = await manager.delete_ticket(db, ctx_for(stranger), ticket.Ticket_ID)
    assert removal.code is ResultCode.PERMISSION_DENIED
    view = await manager.get_ticket_for(db, ctx_for(stranger), ticket.Ticket_ID)
    assert view.code is ResultCode.PERMISSION_DENIED

    current = await manager.get_ticket(db, ticket.Ticket_ID)
    assert current.Title == "Printer jam"


@pytest.mark.asyncio
async def test_regular_user_cannot_change_assignee(db):
    owner = await make_employee(db)
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    ticket = await make_ticket(db, owner)
    result = await TicketManager().update_ticket(
        db, ctx_for(owner), ticket.Ticket_ID, {"Assigned_To": desk.Employee_ID}
    )
    assert result.code is ResultCode.PERMISSION_DENIED


@pytest.mark.asyncio
async def test_service_desk_edit_assignee_records_history(db):
    owner = await make_employee(db)
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    ticket = await make_ticket(db, owner)
    manager = TicketManager()
    result = await manager.update_ticket(
        db, ctx_for(desk), ticket.Ticket_ID, {"Assigned_To": desk.Employee_ID, "Status": "InProgress"}
    )
    await db.commit()
    assert result.data.Assigned_To == desk.Employee_ID
    assert result.data.Status == TicketStatus.IN_PROGRESS
    history = await manager.get_handling_history(db, ticket.Ticket_ID)
    assert [h.Employee_ID for h in history] == [desk.Employee_ID]


@pytest.mark.asyncio
async def test_delete_removes_ticket_and_history(db):
    owner = await make_employee(db)
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    ticket = await make_ticket(db, owner)
    manager = TicketManager()
    await manager.assign(db, ticket.Ticket_ID, desk.Employee_ID)
    result = await manager.delete_ticket(db, ctx_for(owner), ticket.Ticket_ID)
    await db.commit()
    assert result.success
    assert await manager.get_ticket(db, ticket.Ticket_ID) is None
    assert await manager.get_handling_history(db, ticket.Ticket_ID) == []


@pytest.mark.asyncio
async def test_missing_and_malformed_ticket_ids(db):
    user = await make_employee(db)
    manager = TicketManager()
    missing = await manager.update_ticket(db, ctx_for(user), uuid.uuid4().hex, {"Title": "x"})
    assert missing.code is ResultCode.NOT_FOUND
    with pytest.raises(ValidationError):
        await manager.delete_ticket(db, ctx_for(user), "ticket-1")


@pytest.mark.asyncio
async def test_ticket_full_lifecycle_over_http(client, db):
    owner = await make_employee(db)
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    stranger = await make_employee(db)

    resp = await client.post(
        "/tickets",
        json={"Title": "Laptop won't boot", "Ticket_Type": "Hardware", "Deadline": "2030-01-01"},
        headers=headers_for(owner),
    )
    assert resp.status_code == 201
    ticket = resp.json()
    tid = ticket["Ticket_ID"]
    assert ticket["Status"] == "Open"
    assert ticket["Deadline"].startswith("2030-01-01")

    resp = await client.put(f"/tickets/{tid}", json={"Title": "Hijack"}, headers=headers_for(stranger))
    assert resp.status_code == 403
    resp = await client.delete(f"/tickets/{tid}", headers=headers_for(stranger))
    assert resp.status_code == 403

    resp = await client.put(
        f"/tickets/{tid}", json={"Status": "Resolved", "Version": 1}, headers=headers_for(desk)
    )
    assert resp.status_code == 200
    assert resp.json()["Status"] == "Resolved"
    assert resp.json()["Closed_Date"] is not None

    resp = await client.put(
        f"/tickets/{tid}", json={"Title": "Late edit", "Version": 1}, headers=headers_for(owner)
    )
    assert resp.status_code == 409

    resp = await client.get(f"/tickets/{tid}", headers=headers_for(owner))
    assert resp.status_code == 200
    assert resp.json()["Version"] == 2

    resp = await client.delete(f"/tickets/{tid}", headers=headers_for(owner))
    assert resp.status_code == 200
    resp = await client.get(f"/tickets/{tid}", headers=headers_for(owner))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_requests_without_known_employee_are_unauthorized(client, db):
    disabled = await make_employee(db, disabled=True)
    assert (await client.get("/tickets")).status_code == 401
    assert (await client.get("/tickets", headers={"X-Employee-ID": "junk"})).status_code == 401
    assert (await client.get("/tickets", headers={"X-Employee-ID": uuid.uuid4().hex})).status_code == 401
    assert (await client.get("/tickets", headers=headers_for(disabled))).status_code == 401


@pytest.mark.asyncio
async def test_list_tickets_scopes(client, db):
    alice = await make_employee(db, first="Alice", last="Able")
    bob = await make_employee(db, first="Bob", last="Baker")
    desk = await make_employee(db, RoleType.SERVICE_DESK, first="Dana", last="Desk")
    await make_ticket(db, alice, title="A1", assignee=desk)
    await make_ticket(db, alice, title="A2", status=TicketStatus.CLOSED)
    await make_ticket(db, bob, title="B1")

    resp = await client.get("/tickets", headers=headers_for(alice))
    data = resp.json()
    assert data["total"] == 2
    assert [t["Title"] for t in data["items"]] == ["A2", "A1"]
    assert data["items"][1]["Assignee_Name"] == "Dana Desk"
    assert data["items"][1]["Reporter_Name"] == "Alice Able"

    resp = await client.get("/tickets", params={"scope": "all"}, headers=headers_for(alice))
    assert resp.status_code == 403

    resp = await client.get("/tickets", params={"scope": "all"}, headers=headers_for(desk))
    assert resp.json()["total"] == 3

    resp = await client.get("/tickets", headers=headers_for(desk))
    items = resp.json()["items"]
    assert [t["Title"] for t in items] == ["A1"]
    assert items[0]["Is_Assigned_To_Current_User"] is True

    resp = await client.get(
        "/tickets", params={"scope": "all", "status": "Closed"}, headers=headers_for(desk)
    )
    assert [t["Title"] for t in resp.json()["items"]] == ["A2"]

    resp = await client.get(
        "/tickets", params={"scope": "all", "skip": 1, "limit": 1}, headers=headers_for(desk)
    )
    body = resp.json()
    assert body["total"] == 3
    assert len(body["items"]) == 1
