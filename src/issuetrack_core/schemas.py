"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, EmailStr

from .models import (
    Role,
    IssueStatus,
    IssuePriority,
    Environment,
    HowDiscovered,
    ClientStatus,
    DomainStatus,
    NotificationType,
)


# User Schemas

class UserSummary(BaseModel):
    """Lightweight user reference embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: Optional[str] = None
    email: str


class UserCreate(BaseModel):
    """Schema for creating a user."""

    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    image: Optional[str] = Field(None, max_length=500)
    role: Role = Role.USER


class UserUpdate(BaseModel):
    """Schema for updating a user. Only an admin may change ``role``."""

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    image: Optional[str] = Field(None, max_length=500)
    role: Optional[Role] = None


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: Role
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    """Schema for paginated user list."""

    items: list[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# Client Schemas

class ClientBase(BaseModel):
    """Base schema for client fields."""

    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    primary_contact: Optional[str] = Field(None, max_length=255)
    sla: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    manager_id: Optional[UUID] = None


class ClientCreate(ClientBase):
    """Schema for creating a client. The manager defaults to the caller."""

    name: str = Field(..., min_length=1, max_length=255)
    status: ClientStatus = ClientStatus.ACTIVE


class ClientUpdate(ClientBase):
    """Schema for updating a client. All fields optional."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[ClientStatus] = None


class ClientResponse(ClientBase):
    """Schema for client response."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    name: str
    email: Optional[str] = None
    status: ClientStatus
    manager: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class ClientListResponse(BaseModel):
    """Schema for paginated client list."""

    items: list[ClientResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# Domain Name Schemas

class DomainNameCreate(BaseModel):
    """Schema for adding a domain to a client."""

    name: str = Field(..., min_length=1, max_length=255)
    hosting_provider: Optional[str] = Field(None, max_length=255)
    domain_expiration: Optional[datetime] = None
    domain_status: Optional[DomainStatus] = DomainStatus.ACTIVE


class DomainNameUpdate(BaseModel):
    """Schema for updating a domain. All fields optional."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    hosting_provider: Optional[str] = Field(None, max_length=255)
    domain_expiration: Optional[datetime] = None
    domain_status: Optional[DomainStatus] = None


class DomainNameResponse(BaseModel):
    """Schema for domain response."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    client_id: UUID
    name: str
    hosting_provider: Optional[str] = None
    domain_expiration: Optional[datetime] = None
    domain_status: Optional[DomainStatus] = None
    created_at: datetime
    updated_at: datetime


class ExpiringDomainResponse(DomainNameResponse):
    """Domain close to expiry, with the owning client's name."""

    client_name: str


# Issue Schemas

class IssueDetails(BaseModel):
    """Bug report fields shared by create, update and response."""

    description: Optional[str] = None
    environment: Optional[Environment] = None
    how_discovered: Optional[HowDiscovered] = None
    steps_to_reproduce: Optional[str] = None
    expected_result: Optional[str] = None
    actual_result: Optional[str] = None
    impact: Optional[str] = None
    related_logs: Optional[str] = None
    workaround_available: Optional[bool] = None
    workaround_description: Optional[str] = None


class IssueCreate(IssueDetails):
    """
    Schema for creating an issue.

    New issues always start in NEW and are reported by the caller. When no due
    date is given the issue is due ten business days from now.
    """

    title: str = Field(..., min_length=1, max_length=255)
    priority: IssuePriority = IssuePriority.MEDIUM
    environment: Optional[Environment] = Environment.LOCAL
    client_id: Optional[UUID] = None
    assigned_to_id: Optional[UUID] = None
    due_date: Optional[datetime] = None


class IssueUpdate(IssueDetails):
    """
    Schema for updating an issue. All fields optional.

    ``status`` goes through the same checks as the status endpoint and
    ``due_date`` through the same checks as the due-date endpoint.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    priority: Optional[IssuePriority] = None
    status: Optional[IssueStatus] = None
    client_id: Optional[UUID] = None
    due_date: Optional[datetime] = None


class IssueStatusUpdate(BaseModel):
    """Schema for a status change."""

    status: IssueStatus


class IssueAssign(BaseModel):
    """Schema for (un)assigning an issue. ``None`` clears the assignee."""

    assigned_to_id: Optional[UUID] = None


class IssueDueDateUpdate(BaseModel):
    """Schema for changing a due date. ``None`` clears it."""

    due_date: Optional[datetime] = None


class IssueResponse(IssueDetails):
    """Schema for issue response."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    title: str
    status: IssueStatus
    priority: IssuePriority
    due_date: Optional[datetime] = None
    client_id: Optional[UUID] = None
    reported_by_id: UUID
    assigned_to_id: Optional[UUID] = None
    reported_by: Optional[UserSummary] = None
    assigned_to: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class IssueListResponse(BaseModel):
    """Schema for paginated issue list."""

    items: list[IssueResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class IssueHistoryResponse(BaseModel):
    """Schema for an issue history entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    issue_id: UUID
    change_type: str
    field_name: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: Optional[UUID] = None
    changed_by_email: Optional[str] = None
    changed_at: datetime


class DueSoonResponse(BaseModel):
    """Result of a due-soon reminder sweep."""

    issues_found: int
    notifications_sent: int


# Comment Schemas

class CommentCreate(BaseModel):
    """Schema for creating a comment."""

    text: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    """Schema for comment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    issue_id: UUID
    created_by_id: UUID
    created_by: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


# File Schemas

class FileResponse(BaseModel):
    """Schema for uploaded file metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    filename: str
    original_name: str
    mime_type: str
    size: int
    key: str
    url: str
    uploaded_by_id: UUID
    issue_id: Optional[UUID] = None
    created_at: datetime


# Notification Schemas

class IssueReference(BaseModel):
    """Issue id and title embedded in a notification."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    type: NotificationType
    message: str
    user_id: UUID
    issue_id: Optional[UUID] = None
    issue: Optional[IssueReference] = None
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    """Schema for paginated notification list."""

    items: list[NotificationResponse]
    total: int
    unread_count: int
    page: int
    page_size: int
    total_pages: int


class MarkAllReadResponse(BaseModel):
    updated: int
