from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Annotated, Optional, Any
from datetime import datetime

from config import DEFAULT_TIMEZONE
from servicedesk.core.enums import TicketPriority, TicketStatus, TicketType
from servicedesk.shared.utils.date_format import parse_deadline


def _coerce_deadline(v: Any) -> Optional[datetime]:
    return parse_deadline(v, DEFAULT_TIMEZONE)


class TicketCreate(BaseModel):
    """Schema used when reporting a new ticket.

    The status is not accepted here; new tickets always start ``Open``.
    """

    Title: Annotated[str, Field(min_length=1, max_length=120)]
    Description: Annotated[str, Field(max_length=2000)] = ""
    Ticket_Type: TicketType = TicketType.SOFTWARE
    Priority: TicketPriority = TicketPriority.MEDIUM
    Deadline: Optional[datetime] = None
    Reported_By: Optional[str] = None

    @field_validator("Title")
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title must not be blank")
        return v

    @field_validator("Deadline", mode="before")
    def _parse_deadline(cls, v: Any):
        return _coerce_deadline(v)

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "Title": "Printer not working",
                    "Description": "The office printer is jammed and displays error code 34.",
                    "Ticket_Type": "Hardware",
                    "Priority": "High",
                    "Deadline": "2025-11-01T12:00:00Z",
                },
            ]
        },
    )


class TicketUpdate(BaseModel):
    """Schema used when editing an existing ticket.

    ``Version`` is an optional precondition: when supplied, the update only
    applies if the stored ticket is still at that version.
    """

    Title: Optional[Annotated[str, Field(min_length=1, max_length=120)]] = None
    Description: Optional[Annotated[str, Field(max_length=2000)]] = None
    Ticket_Type: Optional[TicketType] = None
    Priority: Optional[TicketPriority] = None
    Deadline: Optional[datetime] = None
    Status: Optional[TicketStatus] = None
    Assigned_To: Optional[str] = None
    Version: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def _ensure_fields_present(self) -> "TicketUpdate":
        if not self.model_fields_set - {"Version"}:
            raise ValueError("At least one field must be supplied")
        return self

    @field_validator("Deadline", mode="before")
    def _parse_deadline(cls, v: Any):
        return _coerce_deadline(v)

    @field_validator("Assigned_To", mode="before")
    def _blank_assignee(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {"Title": "Updated"},
                {"Status": "InProgress", "Version": 2},
                {"Status": "Closed"},
            ]
        },
    )


class TicketOut(BaseModel):
    Ticket_ID: str
    Title: str
    Description: str
    Ticket_Type: TicketType
    Priority: TicketPriority
    Deadline: Optional[datetime] = None
    Status: TicketStatus
    Reported_By: str
    Assigned_To: Optional[str] = None
    Version: int
    Created_Date: Optional[datetime] = None
    LastModified: Optional[datetime] = None
    LastModifiedBy: Optional[str] = None
    Closed_Date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TicketListItem(BaseModel):
    """Row of a ticket list, with display names resolved."""

    Ticket_ID: str
    Title: str
    Status: TicketStatus
    Priority: TicketPriority
    Deadline: Optional[datetime] = None
    Reporter_Name: Optional[str] = None
    Assignee_Name: Optional[str] = None
    Is_Assigned_To_Current_User: bool = False
    Version: int


class HandlingEntryOut(BaseModel):
    ID: int
    Ticket_ID: str
    Employee_ID: str
    Handled_Date: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignRequest(BaseModel):
    assignee_id: Annotated[str, Field(min_length=1)]
    expected_version: Optional[int] = Field(None, ge=1)


class AssignToMeRequest(BaseModel):
    expected_version: Optional[int] = Field(None, ge=1)
