"""Pydantic schemas for employee endpoints."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .models import Employee


class CreateEmployeeRequest(BaseModel):
    """Request to register an employee in the directory."""

    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    position: str | None = Field(None, max_length=100)
    is_lead: bool = False
    team_id: int | None = None


class EmployeeResponse(BaseModel):
    """Employee record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    position: str | None = None
    is_lead: bool = False
    status: str = "active"
    team_id: int | None = None

    @classmethod
    def from_entity(cls, entity: Employee) -> "EmployeeResponse":
        """Create response from entity."""
        return cls.model_validate(entity)


class SessionResponse(BaseModel):
    """The acting employee and what they may do in the academy."""

    user_id: str
    email: str
    employee: EmployeeResponse
    is_academy_admin: bool
