from datetime import timedelta

import pytest

from servicedesk.core.enums import RoleType, TicketStatus
from servicedesk.shared.utils.date_format import utcnow

from tests.factories import headers_for, make_employee, make_ticket


@pytest.mark.asyncio
async def test_dashboard_for_service_desk_lands_on_all(client, db):
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    user = await make_employee(db)
    await make_ticket(db, user, deadline=utcnow() - timedelta(days=1))
    await make_ticket(db, user, status=TicketStatus.ON_HOLD, assignee=desk)

    resp = await client.get("/dashboard", headers=headers_for(desk))
    assert resp.status_code == 200
    data = resp.json()
    assert data["scope"] == "all"
    assert data["status_breakdown"]["labels"] == ["Open", "InProgress", "OnHold", "Resolved", "Closed"]
    assert data["status_breakdown"]["counts"] == [1, 0, 1, 0, 0]
    assert data["open_overdue"] == {"total": 2, "open": 1, "overdue": 1}
    assert data["rollup"]["open"] == {"count": 2, "percentage": 100.0}

    resp = await client.get("/dashboard", params={"scope": "my"}, headers=headers_for(desk))
    assert resp.json()["status_breakdown"]["counts"] == [0, 0, 1, 0, 0]


@pytest.mark.asyncio
async def test_dashboard_for_regular_user_is_own_tickets(client, db):
    alice = await make_employee(db)
    bob = await make_employee(db)
    await make_ticket(db, alice, status=TicketStatus.RESOLVED)
    await make_ticket(db, bob)

    resp = await client.get("/dashboard", params={"scope": "all"}, headers=headers_for(alice))
    data = resp.json()
    assert data["scope"] == "my"
    assert data["status_breakdown"]["total"] == 1
    assert data["rollup"]["resolved"]["percentage"] == 100.0


@pytest.mark.asyncio
async def test_dashboard_sub_views(client, db):
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    user = await make_employee(db)
    await make_ticket(db, user)
    await make_ticket(db, user, status=TicketStatus.CLOSED)
    headers = headers_for(desk)

    status = (await client.get("/dashboard/status", headers=headers)).json()
    assert status["counts"] == [1, 0, 0, 0, 1]

    overdue = (await client.get("/dashboard/open_overdue", headers=headers)).json()
    assert overdue == {"total": 2, "open": 1, "overdue": 0}

    rollup = (await client.get("/dashboard/rollup", headers=headers)).json()
    assert rollup["total"] == 2
    assert rollup["closed"] == {"count": 1, "percentage": 50.0}


@pytest.mark.asyncio
async def test_empty_dashboard(client, db):
    user = await make_employee(db)
    data = (await client.get("/dashboard", headers=headers_for(user))).json()
    assert data["status_breakdown"]["counts"] == [0, 0, 0, 0, 0]
    assert data["open_overdue"] == {"total": 0, "open": 0, "overdue": 0}
    assert data["rollup"]["open"]["percentage"] == 0.0
