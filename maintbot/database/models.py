import enum
import uuid
from datetime import datetime, date, timezone
from typing import Optional, List
from sqlalchemy import BigInteger, String, Boolean, ForeignKey, Integer, Numeric, Date, DateTime, JSON, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from maintbot.database.core import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# Enums
class UserRole(str, enum.Enum):
    super_admin = "Super Admin"
    admin = "Admin"
    property_manager = "Property Manager"
    service_provider = "Service Provider"

class Recurrence(str, enum.Enum):
    one_time = "One-Time"
    weekly = "Weekly"
    bi_weekly = "Bi-Weekly"
    monthly = "Monthly"
    quarterly = "Quarterly"
    semi_annually = "Semi-Annually"
    annually = "Annually"

# Task and request statuses share some values ("Sent", "Completed") but are
# never interchangeable.
class TaskStatus(str, enum.Enum):
    new = "New"
    sent = "Sent"
    on_hold = "On Hold"
    completed = "Completed"

class RequestStatus(str, enum.Enum):
    sent = "Sent"
    accepted = "Accepted"
    refused = "Refused"
    in_progress = "In Progress"
    completed = "Completed"

class ComponentType(str, enum.Enum):
    building = "Building"
    site = "Site"
    unit = "Unit"

class OccupantType(str, enum.Enum):
    owner = "Owner"
    renter = "Renter"


# 3.1 User
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    username: Mapped[str] = mapped_column(String)
    role: Mapped[UserRole] = mapped_column(String)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    tg_id: Mapped[Optional[int]] = mapped_column(BigInteger, unique=True, index=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# 3.2 Building
class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String)
    address: Mapped[str] = mapped_column(String)
    image_url: Mapped[Optional[str]] = mapped_column(String)
    created_by: Mapped[str] = mapped_column(String(36), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# 3.3 Unit
class Unit(Base):
    __tablename__ = "units"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    building_id: Mapped[str] = mapped_column(ForeignKey("buildings.id"), index=True)
    unit_number: Mapped[str] = mapped_column(String)

    # Occupant (flattened, all optional)
    occupant_name: Mapped[Optional[str]] = mapped_column(String)
    occupant_type: Mapped[Optional[OccupantType]] = mapped_column(String)
    occupant_start_date: Mapped[Optional[date]] = mapped_column(Date)
    occupant_end_date: Mapped[Optional[date]] = mapped_column(Date)

    images: Mapped[List[dict]] = mapped_column(JSON, default=list)  # [{id, url, caption, uploaded_at}]


# 3.4 Component
class Component(Base):
    __tablename__ = "components"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    building_id: Mapped[str] = mapped_column(ForeignKey("buildings.id"), index=True)
    unit_id: Mapped[Optional[str]] = mapped_column(ForeignKey("units.id"), nullable=True, index=True)
    unit_number: Mapped[Optional[str]] = mapped_column(String)

    name: Mapped[str] = mapped_column(String)
    type: Mapped[ComponentType] = mapped_column(String, default=ComponentType.building.value)
    parent_category: Mapped[str] = mapped_column(String, default="")
    sub_category: Mapped[str] = mapped_column(String, default="")
    location: Mapped[Optional[str]] = mapped_column(String)

    brand: Mapped[Optional[str]] = mapped_column(String)
    model_number: Mapped[Optional[str]] = mapped_column(String)
    serial_number: Mapped[Optional[str]] = mapped_column(String)
    installation_date: Mapped[Optional[date]] = mapped_column(Date)
    warranty_end_date: Mapped[Optional[date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    images: Mapped[List[dict]] = mapped_column(JSON, default=list)


# 3.5 MaintenanceTask
class MaintenanceTask(Base):
    __tablename__ = "maintenance_tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    building_id: Mapped[str] = mapped_column(ForeignKey("buildings.id"), index=True)
    component_id: Mapped[Optional[str]] = mapped_column(ForeignKey("components.id"), nullable=True, index=True)
    component_name: Mapped[Optional[str]] = mapped_column(String)
    unit_id: Mapped[Optional[str]] = mapped_column(ForeignKey("units.id"), nullable=True, index=True)
    unit_number: Mapped[Optional[str]] = mapped_column(String)

    name: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text, default="")
    specialty: Mapped[str] = mapped_column(String, default="")
    recurrence: Mapped[Recurrence] = mapped_column(String, default=Recurrence.one_time.value)
    status: Mapped[TaskStatus] = mapped_column(String, default=TaskStatus.new.value)
    cost: Mapped[Optional[float]] = mapped_column(Numeric(12, 2))
    provider_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # One-time tasks (and generated instances)
    task_date: Mapped[Optional[date]] = mapped_column(Date, index=True)
    # Master recurring tasks
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    recurring_task_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    __table_args__ = (
        Index('ix_tasks_building_status', 'building_id', 'status'),
    )

    @property
    def is_master(self) -> bool:
        return self.recurrence != Recurrence.one_time.value


# 3.6 ServiceProvider
class ServiceProvider(Base):
    __tablename__ = "service_providers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String)
    email: Mapped[str] = mapped_column(String)
    specialty: Mapped[str] = mapped_column(String)
    phone: Mapped[Optional[str]] = mapped_column(String)
    address: Mapped[Optional[str]] = mapped_column(String)
    website: Mapped[Optional[str]] = mapped_column(String)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    business_owner: Mapped[Optional[str]] = mapped_column(String)
    contact_person: Mapped[Optional[str]] = mapped_column(String)
    logo_url: Mapped[Optional[str]] = mapped_column(String)

    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)  # linked login
    created_by: Mapped[str] = mapped_column(String(36), index=True)


# 3.7 ServiceRequest
class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    task_id: Mapped[str] = mapped_column(String(36), index=True)
    provider_id: Mapped[str] = mapped_column(String(36), index=True)
    specialty: Mapped[str] = mapped_column(String)
    notes: Mapped[str] = mapped_column(Text, default="")
    generated_email: Mapped[str] = mapped_column(Text, default="")
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    status: Mapped[RequestStatus] = mapped_column(String, default=RequestStatus.sent.value)
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date)
    cost: Mapped[Optional[float]] = mapped_column(Numeric(12, 2))
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False)

    # Append-only logs
    status_history: Mapped[List[dict]] = mapped_column(JSON, default=list)  # [{status, changed_at, changed_by}]
    comments: Mapped[List[dict]] = mapped_column(JSON, default=list)  # [{id, author_id, author_name, text, created_at}]
    documents: Mapped[List[dict]] = mapped_column(JSON, default=list)  # [{id, name, url, uploaded_at, uploaded_by}]

    # Copied from the task at creation
    building_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    unit_id: Mapped[Optional[str]] = mapped_column(String(36))
    unit_number: Mapped[Optional[str]] = mapped_column(String)
    component_name: Mapped[Optional[str]] = mapped_column(String)


# 3.8 Expense
class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    building_id: Mapped[str] = mapped_column(ForeignKey("buildings.id"), index=True)
    building_name: Mapped[str] = mapped_column(String)
    component_id: Mapped[str] = mapped_column(String(36))
    component_name: Mapped[str] = mapped_column(String)
    year: Mapped[int] = mapped_column(Integer)
    cost: Mapped[float] = mapped_column(Numeric(12, 2))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# 3.9 ContingencyDocument
class ContingencyDocument(Base):
    __tablename__ = "contingency_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String)
    url: Mapped[str] = mapped_column(String)
    uploaded_by: Mapped[str] = mapped_column(String)  # display name of uploader
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# 3.10 Notification
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    title: Mapped[str] = mapped_column(String)
    message: Mapped[str] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    link_view: Mapped[Optional[str]] = mapped_column(String)
    link_id: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
