from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from servicedesk.core.enums import RoleType


class EmployeeBase(BaseModel):
    First_Name: Annotated[str, Field(max_length=100)] = ""
    Last_Name: Annotated[str, Field(max_length=100)] = ""
    Role: RoleType = RoleType.REGULAR
    Email: EmailStr
    Phone: Annotated[str, Field(max_length=50)] = ""
    Location: Annotated[str, Field(max_length=255)] = ""
    Is_Disabled: bool = False


class EmployeeCreate(EmployeeBase):
    Password: Annotated[str, Field(min_length=8, max_length=72)]


class EmployeeUpdate(BaseModel):
    """Profile fields an administrator may change; password is separate."""

    First_Name: Optional[Annotated[str, Field(max_length=100)]] = None
    Last_Name: Optional[Annotated[str, Field(max_length=100)]] = None
    Role: Optional[RoleType] = None
    Email: Optional[EmailStr] = None
    Phone: Optional[Annotated[str, Field(max_length=50)]] = None
    Location: Optional[Annotated[str, Field(max_length=255)]] = None
    Is_Disabled: Optional[bool] = None

    @model_validator(mode="after")
    def _ensure_fields_present(self) -> "EmployeeUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be supplied")
        return self

    model_config = ConfigDict(extra="forbid")


class PasswordChange(BaseModel):
    New_Password: Annotated[str, Field(min_length=8, max_length=72)]
    Confirm_New_Password: str


class EmployeeOut(EmployeeBase):
    Employee_ID: str
    Email: str

    model_config = ConfigDict(from_attributes=True)


class EmployeeListItem(EmployeeOut):
    Reported_Ticket_Count: int = 0
