from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator, EmailStr

from maintbot.database.models import (
    Recurrence, TaskStatus, ComponentType, OccupantType, UserRole
)


class Schema(BaseModel):
    # Enum fields hold their plain string values, as stored in the database
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class BuildingCreate(Schema):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    image_url: Optional[str] = None

    @field_validator('name', 'address', mode='before')
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class UnitCreate(Schema):
    building_id: str
    unit_number: str = Field(min_length=1)
    occupant_name: Optional[str] = None
    occupant_type: Optional[OccupantType] = None
    occupant_start_date: Optional[date] = None
    occupant_end_date: Optional[date] = None

    @model_validator(mode='after')
    def check_occupant(self):
        if self.occupant_name and not (self.occupant_type and self.occupant_start_date):
            raise ValueError("Occupant needs a type and a start date")
        if self.occupant_end_date and self.occupant_start_date and self.occupant_end_date < self.occupant_start_date:
            raise ValueError("Occupant end date is before start date")
        return self


class ComponentCreate(Schema):
    building_id: str
    name: str = Field(min_length=1)
    type: ComponentType = ComponentType.building
    parent_category: str = ""
    sub_category: str = ""
    unit_id: Optional[str] = None
    location: Optional[str] = None
    brand: Optional[str] = None
    model_number: Optional[str] = None
    serial_number: Optional[str] = None
    installation_date: Optional[date] = None
    warranty_end_date: Optional[date] = None
    notes: Optional[str] = None


class TaskCreate(Schema):
    """
    One-time tasks need task_date; master recurring tasks need start_date and
    end_date. The other date fields are dropped so a record never carries both.
    """
    building_id: str
    name: str = Field(min_length=1)
    description: str = ""
    specialty: str = ""
    recurrence: Recurrence = Recurrence.one_time
    status: TaskStatus = TaskStatus.new
    cost: Optional[float] = Field(default=None, ge=0)
    provider_id: Optional[str] = None
    component_id: Optional[str] = None
    unit_id: Optional[str] = None
    task_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode='after')
    def check_dates(self):
        if self.recurrence == Recurrence.one_time:
            if not self.task_date:
                raise ValueError("One-time tasks need a task date")
            self.start_date = None
            self.end_date = None
        else:
            if not self.start_date or not self.end_date:
                raise ValueError("Recurring tasks need a start and an end date")
            self.task_date = None
        return self


class TaskUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    specialty: Optional[str] = None
    status: Optional[TaskStatus] = None
    cost: Optional[float] = Field(default=None, ge=0)
    provider_id: Optional[str] = None
    task_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ServiceRequestCreate(Schema):
    task_id: str
    provider_id: str
    specialty: Optional[str] = None
    notes: str = ""
    generated_email: str = ""
    scheduled_date: Optional[date] = None
    cost: Optional[float] = Field(default=None, ge=0)
    is_urgent: Optional[bool] = None


class ServiceRequestUpdate(Schema):
    """Only these fields may change after a request is sent."""
    notes: Optional[str] = None
    cost: Optional[float] = Field(default=None, ge=0)
    scheduled_date: Optional[date] = None
    provider_id: Optional[str] = None
    is_urgent: Optional[bool] = None


class ExpenseCreate(Schema):
    building_id: str
    component_id: str
    year: int = Field(ge=1900, le=2200)
    cost: float = Field(gt=0)


class ProviderCreate(Schema):
    name: str = Field(min_length=1)
    email: EmailStr
    specialty: str = Field(min_length=1)
    phone: Optional[str] = Field(default=None, pattern=r'^\+?[\d\s()-]{7,20}$')
    address: Optional[str] = None
    website: Optional[str] = None
    notes: Optional[str] = None
    business_owner: Optional[str] = None
    contact_person: Optional[str] = None
    logo_url: Optional[str] = None


class UserCreate(Schema):
    email: EmailStr
    username: str = Field(min_length=1)
    role: UserRole
    tg_id: Optional[int] = None
