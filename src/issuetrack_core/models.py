"""SQLAlchemy database models."""
from datetime import datetime
from uuid import uuid4
import enum

from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    Enum,
    Boolean,
    Uuid,
)
from sqlalchemy.orm import relationship, declarative_base

# Base class for all models
Base = declarative_base()


class Role(str, enum.Enum):
    """User role enum.

    Roles are a closed set; every authorization rule is written against
    these values.
    """

    ADMIN = "ADMIN"
    ACCOUNT_MANAGER = "ACCOUNT_MANAGER"
    DEVELOPER = "DEVELOPER"
    USER = "USER"
    CLIENT = "CLIENT"


class IssueStatus(str, enum.Enum):
    """Issue lifecycle status enum.

    Lifecycle: new -> assigned -> in_progress -> needs_review -> fixed -> closed
    CLOSED and WONT_FIX can be reopened to IN_PROGRESS.
    """

    NEW = "NEW"                     # Initial state
    ASSIGNED = "ASSIGNED"           # Someone owns it
    IN_PROGRESS = "IN_PROGRESS"     # Work has started
    PENDING = "PENDING"             # Waiting on client or third party
    NEEDS_REVIEW = "NEEDS_REVIEW"   # Fix ready for review
    FIXED = "FIXED"                 # Fix verified
    CLOSED = "CLOSED"               # Done
    WONT_FIX = "WONT_FIX"           # Rejected


class IssuePriority(str, enum.Enum):
    """Issue priority enum."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Environment(str, enum.Enum):
    """Environment an issue was observed in."""

    PRODUCTION = "PRODUCTION"
    STAGING = "STAGING"
    DEVELOPMENT = "DEVELOPMENT"
    TEST = "TEST"
    LOCAL = "LOCAL"


class HowDiscovered(str, enum.Enum):
    """How an issue was discovered."""

    AUTOMATED_TESTING = "AUTOMATED_TESTING"
    CLIENT_REFERRED = "CLIENT_REFERRED"
    MANUAL_TESTING = "MANUAL_TESTING"
    MONITORING_TOOL = "MONITORING_TOOL"
    OTHER = "OTHER"
    QA_TEAM = "QA_TEAM"
    REFERRAL = "REFERRAL"
    SELF_DISCOVERED = "SELF_DISCOVERED"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    WEB_SEARCH = "WEB_SEARCH"


class ClientStatus(str, enum.Enum):
    """Client relationship status enum."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"  # Also used for soft deletion
    LEAD = "LEAD"
    FORMER = "FORMER"


class DomainStatus(str, enum.Enum):
    """Domain registration status enum."""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class NotificationType(str, enum.Enum):
    """In-app notification type enum."""

    ISSUE_ASSIGNED = "ISSUE_ASSIGNED"
    COMMENT_ADDED = "COMMENT_ADDED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ISSUE_DUE_SOON = "ISSUE_DUE_SOON"


def _enum_column(enum_cls):
    return Enum(enum_cls, values_callable=lambda x: [e.value for e in x])


class User(Base):
    """
    User model.

    Users are authenticated by an upstream identity provider; this table
    only stores profile data and the role used for authorization.
    """

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255))
    image = Column(String(500))
    role = Column(_enum_column(Role), nullable=False, default=Role.USER, index=True)

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    managed_clients = relationship("Client", back_populates="manager")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"


class Client(Base):
    """
    Client model for customer accounts.

    Clients are never hard deleted; deletion moves them to INACTIVE.
    """

    __tablename__ = "clients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    website = Column(String(500))
    description = Column(Text)
    primary_contact = Column(String(255))
    sla = Column(String(255))
    notes = Column(Text)
    status = Column(_enum_column(ClientStatus), nullable=False, default=ClientStatus.ACTIVE, index=True)
    manager_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow, index=True)

    # Relationships
    manager = relationship("User", back_populates="managed_clients")
    issues = relationship("Issue", back_populates="client")
    domain_names = relationship("DomainName", back_populates="client", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Client {self.name} ({self.status.value})>"


class DomainName(Base):
    """Domain registered on behalf of a client."""

    __tablename__ = "domain_names"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    hosting_provider = Column(String(255))
    domain_expiration = Column(DateTime, nullable=True, index=True)
    domain_status = Column(_enum_column(DomainStatus), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client", back_populates="domain_names")

    def __repr__(self) -> str:
        return f"<DomainName {self.name}>"


class Issue(Base):
    """
    Issue model for tracked work reported against a client.

    Status changes must follow ALLOWED_STATUS_TRANSITIONS (see state_machine).
    """

    __tablename__ = "issues"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    # Core fields
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(_enum_column(IssueStatus), nullable=False, default=IssueStatus.NEW, index=True)
    priority = Column(_enum_column(IssuePriority), nullable=False, default=IssuePriority.MEDIUM, index=True)
    environment = Column(_enum_column(Environment), nullable=True, default=Environment.LOCAL)
    due_date = Column(DateTime, nullable=True, index=True)

    # Bug report details
    how_discovered = Column(_enum_column(HowDiscovered), nullable=True)
    steps_to_reproduce = Column(Text)
    expected_result = Column(Text)
    actual_result = Column(Text)
    impact = Column(Text)
    related_logs = Column(Text)
    workaround_available = Column(Boolean)
    workaround_description = Column(Text)

    # Ownership
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id", ondelete="RESTRICT"), nullable=True, index=True)
    reported_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    assigned_to_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow, index=True)

    # Relationships
    client = relationship("Client", back_populates="issues")
    reported_by = relationship("User", foreign_keys=[reported_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    comments = relationship("Comment", back_populates="issue", cascade="all, delete-orphan")
    files = relationship("File", back_populates="issue", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="issue", cascade="all, delete-orphan")
    history = relationship("IssueHistory", back_populates="issue", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Issue {self.id}: {self.status.value} - {self.title[:30]}>"


class IssueHistory(Base):
    """
    Issue change history for audit trail.

    Records status changes, assignments and due date changes.
    """

    __tablename__ = "issue_history"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    issue_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("issues.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Change details
    change_type = Column(String(50), nullable=False)  # created, status_changed, assigned, due_date_changed
    field_name = Column(String(100), nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)

    # Audit
    changed_by_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    changed_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    issue = relationship("Issue", back_populates="history")
    changed_by_user = relationship("User")

    def __repr__(self) -> str:
        return f"<IssueHistory {self.issue_id}: {self.change_type} at {self.changed_at}>"


class Comment(Base):
    """Comment left on an issue."""

    __tablename__ = "comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    text = Column(Text, nullable=False)
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    issue_id = Column(Uuid(as_uuid=True), ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    issue = relationship("Issue", back_populates="comments")
    created_by = relationship("User")

    def __repr__(self) -> str:
        return f"<Comment {self.id} on {self.issue_id}>"


class File(Base):
    """Metadata for an uploaded attachment. The bytes live in the object store."""

    __tablename__ = "files"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    filename = Column(String(500), nullable=False)
    original_name = Column(String(500), nullable=False)
    mime_type = Column(String(255), nullable=False)
    size = Column(Integer, nullable=False)
    key = Column(String(500), nullable=False, unique=True)
    url = Column(String(1000), nullable=False)
    uploaded_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    issue_id = Column(Uuid(as_uuid=True), ForeignKey("issues.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    issue = relationship("Issue", back_populates="files")
    uploaded_by = relationship("User")

    def __repr__(self) -> str:
        return f"<File {self.original_name} ({self.size} bytes)>"


class Notification(Base):
    """In-app notification for a single user."""

    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    type = Column(_enum_column(NotificationType), nullable=False, index=True)
    message = Column(Text, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    issue_id = Column(Uuid(as_uuid=True), ForeignKey("issues.id", ondelete="CASCADE"), nullable=True, index=True)
    read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="notifications")
    issue = relationship("Issue", back_populates="notifications")

    def __repr__(self) -> str:
        return f"<Notification {self.type.value} for {self.user_id}>"
