import pytest

from servicedesk.core.enums import RoleType
from servicedesk.core.services.system_utilities import ResultCode
from servicedesk.core.services.ticket_management import TicketManager
from servicedesk.core.services.ticket_search import matches_query, normalize_query, parse_query

from tests.factories import ctx_for, headers_for, make_employee, make_ticket


@pytest.mark.parametrize(
    "query, expected",
    [
        ("printer", [["printer"]]),
        ("printer and jam", [["printer", "jam"]]),
        ("printer AND jam OR scanner", [["printer", "jam"], ["scanner"]]),
        ("  vpn   Or  wifi ", [["vpn"], ["wifi"]]),
        ("AND OR", []),
        ("", []),
        (None, []),
    ],
)
def test_parse_query(query, expected):
    assert parse_query(query) == expected


def test_keywords_inside_words_are_not_operators():
    assert normalize_query("brand order") == "brand order"
    assert parse_query("android or iOS") == [["android"], ["iOS"]]


def test_keywords_joined_by_punctuation_are_not_operators():
    assert parse_query("on-or-off switch") == [["on-or-off switch"]]
    assert parse_query("rock-and-roll or jazz") == [["rock-and-roll"], ["jazz"]]
    assert matches_query("on-or-off switch", "Broken on-or-off switch", None)
    assert not matches_query("on-or-off switch", "on", "off switch")


def test_matches_query_checks_title_and_description():
    assert matches_query("printer and jam", "Printer", "paper JAM in tray")
    assert not matches_query("printer and jam", "Printer", "out of toner")
    assert matches_query("scanner or toner", "Printer", "out of toner")
    assert not matches_query("", "anything", "at all")


@pytest.mark.asyncio
async def test_search_within_scope(db):
    alice = await make_employee(db)
    bob = await make_employee(db)
    desk = await make_employee(db, RoleType.SERVICE_DESK)
    await make_ticket(db, alice, title="Printer broken", description="Paper jam on floor 2")
    await make_ticket(db, alice, title="Printer toner", description="Running low")
    await make_ticket(db, bob, title="Printer jam", description="Same as Alice")
    manager = TicketManager()

    mine = await manager.search_tickets(db, ctx_for(alice), "printer AND jam")
    assert [t.Title for t in mine.data] == ["Printer broken"]

    everyone = await manager.search_tickets(db, ctx_for(desk), "printer AND jam", "all")
    assert [t.Title for t in everyone.data] == ["Printer jam", "Printer broken"]

    either = await manager.search_tickets(db, ctx_for(alice), "toner or jam")
    assert len(either.data) == 2

    denied = await manager.search_tickets(db, ctx_for(alice), "printer", "all")
    assert denied.code is ResultCode.PERMISSION_DENIED


@pytest.mark.asyncio
async def test_service_desk_search_includes_previously_handled_tickets(db):
    user = await make_employee(db)
    first = await make_employee(db, RoleType.SERVICE_DESK)
    second = await make_employee(db, RoleType.SERVICE_DESK)
    bystander = await make_employee(db, RoleType.SERVICE_DESK)
    ticket = await make_ticket(db, user, title="Printer offline")
    manager = TicketManager()

    assert (await manager.assign_to_self(db, ctx_for(first), ticket.Ticket_ID)).success
    assert (await manager.assign_as(db, ctx_for(first), ticket.Ticket_ID, second.Employee_ID)).success
    await db.commit()

    for desk in (first, second):
        found = await manager.search_tickets(db, ctx_for(desk), "printer")
        assert [t.Ticket_ID for t in found.data] == [ticket.Ticket_ID]

    assert (await manager.search_tickets(db, ctx_for(bystander), "printer")).data == []
    # Listing stays limited to the current assignee.
    listed = await manager.list_tickets(db, ctx_for(first))
    assert listed.data[1] == 0


@pytest.mark.asyncio
async def test_blank_query_returns_nothing(db):
    user = await make_employee(db)
    await make_ticket(db, user)
    result = await TicketManager().search_tickets(db, ctx_for(user), "   ")
    assert result.success
    assert result.data == []


@pytest.mark.asyncio
async def test_like_wildcards_are_literal(db):
    user = await make_employee(db)
    await make_ticket(db, user, title="Disk 100% full", description="")
    await make_ticket(db, user, title="Disk 1000 errors", description="")
    result = await TicketManager().search_tickets(db, ctx_for(user), "100%")
    assert [t.Title for t in result.data] == ["Disk 100% full"]


@pytest.mark.asyncio
async def test_search_endpoint(client, db):
    user = await make_employee(db)
    await make_ticket(db, user, title="Outlook crash", description="Crashes on start")
    resp = await client.get("/tickets/search", params={"q": "outlook"}, headers=headers_for(user))
    assert resp.status_code == 200
    assert [t["Title"] for t in resp.json()] == ["Outlook crash"]

    resp = await client.get("/tickets/search", params={"q": "nothing"}, headers=headers_for(user))
    assert resp.json() == []

    resp = await client.get(
        "/tickets/search", params={"q": "outlook", "scope": "sideways"}, headers=headers_for(user)
    )
    assert resp.status_code == 400
