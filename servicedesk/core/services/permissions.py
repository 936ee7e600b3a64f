"""Role policies gating ticket mutations.

Every role check in the service goes through a :class:`RolePolicy`; callers
ask the policy rather than comparing role values themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from servicedesk.core.enums import RoleType


class _TicketLike(Protocol):
    Reported_By: Any
    Assigned_To: Any


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller, passed explicitly into every service call."""

    user_id: str
    role: RoleType

    @property
    def policy(self) -> "RolePolicy":
        return policy_for(self.role)


class RolePolicy:
    role: RoleType

    def can_view_all(self) -> bool:
        raise NotImplementedError

    def can_assign(self) -> bool:
        raise NotImplementedError

    def can_report_for_others(self) -> bool:
        return self.can_assign()

    def can_edit(self, user_id: str | None, ticket: _TicketLike) -> bool:
        raise NotImplementedError

    def can_delete(self, user_id: str | None, ticket: _TicketLike) -> bool:
        return self.can_edit(user_id, ticket)

    def can_view(self, user_id: str | None, ticket: _TicketLike) -> bool:
        return self.can_edit(user_id, ticket)


class RegularPolicy(RolePolicy):
    role = RoleType.REGULAR

    def can_view_all(self) -> bool:
        return False

    def can_assign(self) -> bool:
        return False

    def can_edit(self, user_id: str | None, ticket: _TicketLike) -> bool:
        return bool(user_id) and ticket.Reported_By == user_id


class ServiceDeskPolicy(RolePolicy):
    role = RoleType.SERVICE_DESK

    def can_view_all(self) -> bool:
        return True

    def can_assign(self) -> bool:
        return True

    def can_edit(self, user_id: str | None, ticket: _TicketLike) -> bool:
        return True


_POLICIES: dict[RoleType, RolePolicy] = {
    RoleType.REGULAR: RegularPolicy(),
    RoleType.SERVICE_DESK: ServiceDeskPolicy(),
}


def policy_for(role: RoleType | str) -> RolePolicy:
    return _POLICIES[RoleType(role)]


def can_edit(role: RoleType | str, user_id: str | None, ticket: _TicketLike) -> bool:
    return policy_for(role).can_edit(user_id, ticket)


def can_delete(role: RoleType | str, user_id: str | None, ticket: _TicketLike) -> bool:
    return policy_for(role).can_delete(user_id, ticket)


def can_assign(role: RoleType | str) -> bool:
    return policy_for(role).can_assign()


def can_view_all(role: RoleType | str) -> bool:
    return policy_for(role).can_view_all()


__all__ = [
    "RequestContext",
    "RolePolicy",
    "RegularPolicy",
    "ServiceDeskPolicy",
    "policy_for",
    "can_edit",
    "can_delete",
    "can_assign",
    "can_view_all",
]
