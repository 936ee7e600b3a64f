import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase

from servicedesk.core.enums import RoleType, TicketPriority, TicketStatus, TicketType
from servicedesk.shared.utils.date_format import FormattedDateTime

# ``FormattedDateTime`` stores UTC strings at millisecond precision and
# handles formatting transparently.


class Base(DeclarativeBase):
    pass


def new_id() -> str:
    return uuid.uuid4().hex


def _enum_column(enum_cls):
    """Persist an enum by its string value rather than its member name."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
        length=20,
    )


_NOW = text("(STRFTIME('%Y-%m-%d %H:%M:%f', 'now'))")


class Employee(Base):
    __tablename__ = "Employees"
    Employee_ID = Column(String(32), primary_key=True, default=new_id)
    First_Name = Column(String(100), nullable=False, default="")
    Last_Name = Column(String(100), nullable=False, default="")
    Role = Column(_enum_column(RoleType), nullable=False, default=RoleType.REGULAR)
    Email = Column(String(255), nullable=False, unique=True, index=True)
    Phone = Column(String(50), nullable=False, default="")
    Location = Column(String(255), nullable=False, default="")
    Is_Disabled = Column(Boolean, nullable=False, default=False)
    Password_Hash = Column(String(60), nullable=False)

    @property
    def display_name(self) -> str:
        full = f"{self.First_Name or ''} {self.Last_Name or ''}".strip()
        return full or self.Email


class Ticket(Base):
    __tablename__ = "Tickets"
    Ticket_ID = Column(String(32), primary_key=True, default=new_id)
    Title = Column(String(120), nullable=False)
    Description = Column(Text, nullable=False, default="")
    Ticket_Type = Column(_enum_column(TicketType), nullable=False, default=TicketType.SOFTWARE)
    Priority = Column(_enum_column(TicketPriority), nullable=False, default=TicketPriority.MEDIUM)
    Deadline = Column(FormattedDateTime(), nullable=True)
    Status = Column(_enum_column(TicketStatus), nullable=False, default=TicketStatus.OPEN)
    Reported_By = Column(String(32), ForeignKey("Employees.Employee_ID"), nullable=False)
    Assigned_To = Column(String(32), ForeignKey("Employees.Employee_ID"), nullable=True)
    Version = Column(Integer, default=1, nullable=False)

    Created_Date = Column(FormattedDateTime(), nullable=False, server_default=_NOW)
    LastModified = Column(FormattedDateTime(), nullable=False, server_default=_NOW)
    LastModifiedBy = Column(String(32), nullable=True)
    Closed_Date = Column(FormattedDateTime(), nullable=True)

    __table_args__ = (
        Index("ix_tickets_reported_by", "Reported_By"),
        Index("ix_tickets_assigned_to", "Assigned_To"),
        Index("ix_tickets_status", "Status"),
    )


class HandlingEntry(Base):
    """Append-only record of an employee taking on a ticket."""

    __tablename__ = "Ticket_Handling"
    ID = Column(Integer, primary_key=True, autoincrement=True)
    Ticket_ID = Column(String(32), ForeignKey("Tickets.Ticket_ID"), nullable=False, index=True)
    Employee_ID = Column(String(32), ForeignKey("Employees.Employee_ID"), nullable=False, index=True)
    Handled_Date = Column(FormattedDateTime(), nullable=False, server_default=_NOW)


__all__ = ["Base", "Employee", "Ticket", "HandlingEntry", "new_id"]
