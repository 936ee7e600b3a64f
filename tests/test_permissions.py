from types import SimpleNamespace

import pytest

from servicedesk.core.enums import RoleType
from servicedesk.core.services.permissions import (
    RequestContext,
    ServiceDeskPolicy,
    can_assign,
    can_delete,
    can_edit,
    can_view_all,
    policy_for,
)

TICKET = SimpleNamespace(Reported_By="alice", Assigned_To="desk")


@pytest.mark.parametrize(
    "role, user_id, expected",
    [
        (RoleType.REGULAR, "alice", True),
        (RoleType.REGULAR, "bob", False),
        (RoleType.REGULAR, "", False),
        (RoleType.REGULAR, None, False),
        (RoleType.SERVICE_DESK, "desk", True),
        (RoleType.SERVICE_DESK, "someone", True),
    ],
)
def test_edit_and_delete_follow_reporter(role, user_id, expected):
    assert can_edit(role, user_id, TICKET) is expected
    assert can_delete(role, user_id, TICKET) is expected


def test_only_service_desk_assigns_and_views_all():
    assert can_assign(RoleType.SERVICE_DESK)
    assert can_view_all("ServiceDesk")
    assert not can_assign(RoleType.REGULAR)
    assert not can_view_all("Regular")


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        policy_for("Admin")


def test_request_context_exposes_policy():
    ctx = RequestContext(user_id="desk", role=RoleType.SERVICE_DESK)
    assert isinstance(ctx.policy, ServiceDeskPolicy)
    assert ctx.policy.can_report_for_others()
    assert not RequestContext("alice", RoleType.REGULAR).policy.can_report_for_others()
