"""Resolve which tickets a caller may see.

A :class:`ScopeFilter` carries one predicate in two forms: a SQLAlchemy
where-clause for queries and ``matches`` for objects already in memory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import false, true
from sqlalchemy.sql.elements import ColumnElement

from servicedesk.core.enums import RoleType, TicketScope
from servicedesk.core.repositories.models import Ticket
from servicedesk.shared.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeFilter:
    """Ticket predicate: ``field == user_id``, or everything when ``field`` is None."""

    scope: TicketScope
    field: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def is_unrestricted(self) -> bool:
        return self.field is None

    def clause(self) -> ColumnElement[bool]:
        if self.field is None:
            return true()
        if not self.user_id:
            return false()
        return getattr(Ticket, self.field) == self.user_id

    def matches(self, ticket: Any) -> bool:
        if self.field is None:
            return True
        if not self.user_id:
            return False
        return getattr(ticket, self.field, None) == self.user_id


def coerce_scope(value: TicketScope | str | None) -> Optional[TicketScope]:
    if value is None or isinstance(value, TicketScope):
        return value
    try:
        return TicketScope(value)
    except ValueError as exc:
        raise ValidationError("Invalid scope", details=repr(value)) from exc


def resolve_scope(
    role: RoleType | str,
    user_id: Optional[str],
    sub_scope: TicketScope | str | None = None,
) -> ScopeFilter:
    """Map a caller's role and identity to the tickets they may see.

    Regular employees only ever see tickets they reported; ``sub_scope`` is
    ignored for them. Service-desk staff see tickets assigned to them
    (``my``, the default) or every ticket (``all``).
    """
    role = RoleType(role)
    selected = coerce_scope(sub_scope)

    if role is RoleType.REGULAR:
        return ScopeFilter(TicketScope.MY, "Reported_By", user_id or None)

    if selected is TicketScope.ALL:
        return ScopeFilter(TicketScope.ALL)
    return ScopeFilter(TicketScope.MY, "Assigned_To", user_id or None)


__all__ = ["ScopeFilter", "resolve_scope", "coerce_scope"]
