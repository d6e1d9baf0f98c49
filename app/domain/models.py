from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel

from app.domain.roles import Role


def now_utc() -> datetime:
    return datetime.now(UTC)


class EventRecord(SQLModel, table=True):
    __tablename__ = "events"

    event_id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    event_type: str = Field(index=True)
    ts: datetime = Field(default_factory=now_utc, index=True)
    actor_id: str | None = Field(default=None, index=True)
    correlation_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    actor_id: str | None = Field(default=None, index=True)
    actor_role: str | None = None
    action: str
    resource: str
    method: str
    status_code: int
    ts: datetime = Field(default_factory=now_utc, index=True)
    detail: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )


class Department(SQLModel, table=True):
    __tablename__ = "departments"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str | None = None
    created_at: datetime = Field(default_factory=now_utc, index=True)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str | None = None
    password_hash: str
    role: Role = Field(default=Role.EMPLOYEE, index=True)
    is_approved: bool = Field(default=True)
    department_id: str | None = Field(
        default=None,
        foreign_key="departments.id",
        index=True,
        ondelete="SET NULL",
    )
    created_at: datetime = Field(default_factory=now_utc, index=True)


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str | None = None
    created_at: datetime = Field(default_factory=now_utc, index=True)


class TeamMember(SQLModel, table=True):
    __tablename__ = "team_members"
    __table_args__ = (Index("ix_team_members_user", "user_id"),)

    team_id: str = Field(foreign_key="teams.id", primary_key=True, ondelete="CASCADE")
    user_id: str = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=now_utc)


class UserTag(SQLModel, table=True):
    __tablename__ = "user_tags"
    __table_args__ = (Index("ix_user_tags_key_value", "key", "value"),)

    user_id: str = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    key: str = Field(primary_key=True)
    value: str


class ManagerAssignment(SQLModel, table=True):
    __tablename__ = "manager_assignments"
    __table_args__ = (Index("ix_manager_assignments_employee", "employee_id"),)

    manager_id: str = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    employee_id: str = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=now_utc)


class AccessGrant(SQLModel, table=True):
    __tablename__ = "access_grants"

    user_id: str = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    domain: str = Field(primary_key=True)
    granted_by_id: str | None = None
    created_at: datetime = Field(default_factory=now_utc)


class AnnouncementPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Announcement(SQLModel, table=True):
    __tablename__ = "announcements"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str
    message: str
    priority: AnnouncementPriority = Field(default=AnnouncementPriority.NORMAL)
    category: str | None = None
    pinned: bool = Field(default=False, index=True)
    author_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=now_utc, index=True)
    updated_at: datetime = Field(default_factory=now_utc)


class SubmissionStatus(StrEnum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


class InventorySubmission(SQLModel, table=True):
    __tablename__ = "inventory_submissions"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    customer_name: str
    claim_number: str | None = None
    notes: str | None = None
    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING, index=True)
    assigned_to_id: str | None = Field(default=None, foreign_key="users.id", index=True)
    total_amount: float | None = None
    created_at: datetime = Field(default_factory=now_utc, index=True)
    completed_at: datetime | None = None


class TrainingStatus(StrEnum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TrainingAssignment(SQLModel, table=True):
    __tablename__ = "training_assignments"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    employee_id: str = Field(foreign_key="users.id", index=True)
    course_title: str
    status: TrainingStatus = Field(default=TrainingStatus.ASSIGNED, index=True)
    assigned_by_id: str = Field(foreign_key="users.id")
    due_date: date | None = None
    assigned_at: datetime = Field(default_factory=now_utc, index=True)
    completed_at: datetime | None = None


class EmployeeContact(SQLModel, table=True):
    __tablename__ = "employee_contacts"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    phone: str | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    updated_at: datetime = Field(default_factory=now_utc)


class ReviewStatus(StrEnum):
    PENDING = "pending"
    OK = "ok"
    NEEDS_FOLLOW_UP = "needs_follow_up"


class DailyCheckIn(SQLModel, table=True):
    __tablename__ = "daily_checkins"
    __table_args__ = (Index("ix_daily_checkins_user_date", "user_id", "check_in_date"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE")
    check_in_date: date = Field(index=True)
    note: str | None = None
    submitted_at: datetime = Field(default_factory=now_utc, index=True)
    is_on_time: bool = Field(default=True)
    review_status: ReviewStatus = Field(default=ReviewStatus.PENDING, index=True)
    review_note: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by_id: str | None = Field(default=None, foreign_key="users.id", ondelete="SET NULL")


class Contractor(SQLModel, table=True):
    __tablename__ = "contractors"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(index=True)
    email: str | None = None
    phone_number: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    company: str | None = None
    specialty: str | None = None
    notes: str | None = None
    created_by_id: str | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
        ondelete="SET NULL",
    )
    created_at: datetime = Field(default_factory=now_utc, index=True)
    updated_at: datetime = Field(default_factory=now_utc)


class EventEnvelope(BaseModel):
    event_id: str = PydanticField(default_factory=lambda: str(uuid4()))
    event_type: str
    ts: datetime = PydanticField(default_factory=now_utc)
    actor_id: str | None = None
    correlation_id: str | None = None
    payload: dict[str, Any]


class ORMReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SignupRequest(BaseModel):
    email: str
    password: str
    name: str | None = None
    role: Role = Role.EMPLOYEE


class DevLoginRequest(BaseModel):
    email: str
    password: str


class BootstrapAdminRequest(BaseModel):
    email: str
    password: str
    name: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role


class UserCreate(BaseModel):
    email: str
    password: str
    name: str | None = None
    role: Role = Role.EMPLOYEE
    department_id: str | None = None


class UserUpdate(BaseModel):
    name: str | None = None
    role: Role | None = None
    department_id: str | None = None
    is_approved: bool | None = None


class UserRead(ORMReadModel):
    id: str
    email: str
    name: str | None = None
    role: Role
    is_approved: bool
    department_id: str | None = None
    created_at: datetime


class UserSummaryRead(ORMReadModel):
    id: str
    name: str | None = None
    email: str
    department_id: str | None = None


class ApproveUsersRequest(BaseModel):
    user_ids: list[str]


class ApproveUsersRead(BaseModel):
    approved: int


class DepartmentCreate(BaseModel):
    name: str
    description: str | None = None


class DepartmentRead(ORMReadModel):
    id: str
    name: str
    description: str | None = None


class TeamCreate(BaseModel):
    name: str
    description: str | None = None
    member_ids: list[str] = PydanticField(default_factory=list)


class TeamUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    member_ids: list[str] | None = None


class TeamRead(BaseModel):
    id: str
    name: str
    description: str | None = None
    member_ids: list[str]


class TagPair(BaseModel):
    key: str
    value: str


class UserTagsUpdate(BaseModel):
    tags: list[TagPair]


class UserTagsRead(BaseModel):
    tags: list[TagPair]


class TagOptionsRead(BaseModel):
    keys: list[str] | None = None
    values: list[str] | None = None


class ManagerAssignmentUpdate(BaseModel):
    manager_id: str
    employee_id: str
    assigned: bool = True


class ManagerAssignmentEdge(ORMReadModel):
    manager_id: str
    employee_id: str


class ManagerAssignmentsRead(BaseModel):
    managers: list[UserSummaryRead]
    employees: list[UserSummaryRead]
    assignments: list[ManagerAssignmentEdge]


class HierarchyNodeRead(BaseModel):
    id: str
    name: str | None = None
    email: str
    role: Role
    children: list[HierarchyNodeRead] = PydanticField(default_factory=list)


class HierarchyRead(BaseModel):
    hierarchy: list[HierarchyNodeRead]


class AnnouncementCreate(BaseModel):
    title: str
    message: str
    priority: AnnouncementPriority = AnnouncementPriority.NORMAL
    category: str | None = None
    pinned: bool = False


class AnnouncementUpdate(BaseModel):
    title: str | None = None
    message: str | None = None
    priority: AnnouncementPriority | None = None
    category: str | None = None
    pinned: bool | None = None


class AnnouncementRead(ORMReadModel):
    id: str
    title: str
    message: str
    priority: AnnouncementPriority
    category: str | None = None
    pinned: bool
    author_id: str
    created_at: datetime
    updated_at: datetime


class SubmissionCreate(BaseModel):
    customer_name: str
    claim_number: str | None = None
    notes: str | None = None


class SubmissionAssignRequest(BaseModel):
    assignee_id: str | None = None


class SubmissionCompleteRequest(BaseModel):
    total_amount: float = PydanticField(ge=0)


class SubmissionRead(ORMReadModel):
    id: str
    user_id: str
    customer_name: str
    claim_number: str | None = None
    notes: str | None = None
    status: SubmissionStatus
    assigned_to_id: str | None = None
    total_amount: float | None = None
    created_at: datetime
    completed_at: datetime | None = None


class TrainingAssignmentCreate(BaseModel):
    employee_id: str
    course_title: str
    due_date: date | None = None


class TrainingStatusUpdate(BaseModel):
    status: TrainingStatus


class TrainingAssignmentRead(ORMReadModel):
    id: str
    employee_id: str
    course_title: str
    status: TrainingStatus
    assigned_by_id: str
    due_date: date | None = None
    assigned_at: datetime
    completed_at: datetime | None = None


class ContactUpsert(BaseModel):
    phone: str | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None


class ContactRead(ORMReadModel):
    id: str
    user_id: str
    phone: str | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    updated_at: datetime


class CheckInCreate(BaseModel):
    note: str | None = None


class CheckInReviewRequest(BaseModel):
    review_status: ReviewStatus
    review_note: str | None = None


class CheckInRead(ORMReadModel):
    id: str
    user_id: str
    check_in_date: date
    note: str | None = None
    submitted_at: datetime
    is_on_time: bool
    review_status: ReviewStatus
    review_note: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by_id: str | None = None


class MissingCheckInsRead(BaseModel):
    check_in_date: date
    workday: bool
    missing: list[UserSummaryRead]


class ContractorWrite(BaseModel):
    name: str
    email: str | None = None
    phone_number: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    company: str | None = None
    specialty: str | None = None
    notes: str | None = None


class ContractorRead(ORMReadModel):
    id: str
    name: str
    email: str | None = None
    phone_number: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    company: str | None = None
    specialty: str | None = None
    notes: str | None = None
    created_by_id: str | None = None
    created_at: datetime
    updated_at: datetime
