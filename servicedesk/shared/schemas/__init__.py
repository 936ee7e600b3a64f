
from .ticket import (
    TicketCreate,
    TicketUpdate,
    TicketOut,
    TicketListItem,
    HandlingEntryOut,
    AssignRequest,
    AssignToMeRequest,
)
from .dashboard import (
    StatusBreakdown,
    OpenOverdue,
    RollupBucket,
    RollupCounts,
    DashboardSnapshot,
)
from .employee import (
    EmployeeCreate,
    EmployeeUpdate,
    EmployeeOut,
    EmployeeListItem,
    PasswordChange,
)
from .paginated import PaginatedResponse

__all__ = [
    'TicketCreate',
    'TicketUpdate',
    'TicketOut',
    'TicketListItem',
    'HandlingEntryOut',
    'AssignRequest',
    'AssignToMeRequest',
    'StatusBreakdown',
    'OpenOverdue',
    'RollupBucket',
    'RollupCounts',
    'DashboardSnapshot',
    'EmployeeCreate',
    'EmployeeUpdate',
    'EmployeeOut',
    'EmployeeListItem',
    'PasswordChange',
    'PaginatedResponse',
]
