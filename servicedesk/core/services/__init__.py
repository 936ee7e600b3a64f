"""Core services for the service desk API."""

from .system_utilities import OperationResult, ResultCode, parse_entity_id
from .permissions import RequestContext, policy_for
from .scope import ScopeFilter, resolve_scope
from .ticket_management import TicketManager
from .employee_directory import EmployeeDirectory

__all__ = [
    "OperationResult",
    "ResultCode",
    "parse_entity_id",
    "RequestContext",
    "policy_for",
    "ScopeFilter",
    "resolve_scope",
    "TicketManager",
    "EmployeeDirectory",
]
