import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DDL,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Uuid,
    event,
)
from sqlalchemy.orm import relationship

from database import Base
from models.enums import (
    ProductType,
    ProjectCreateRequestStatus,
    ProjectRole,
    ScheduledSubscriptionAction,
    SubscriptionStatus,
    UsageType,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class User(Base):
    """Account owning projects and at most one active subscription."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    stripe_customer_id = Column(String, nullable=True, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------

class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    type = Column(Enum(ProductType, name="product_type"), nullable=False)
    stripe_product_id = Column(String, nullable=False, unique=True)

    prices = relationship("Price", back_populates="product")


class Price(Base):
    __tablename__ = "prices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    key = Column(String, nullable=False, unique=True)
    monthly_message_limit = Column(Integer, nullable=False)
    stripe_price_id = Column(String, nullable=False, unique=True)

    product = relationship("Product", back_populates="prices")


class Subscription(Base):
    """
    Local mirror of a Stripe subscription plus the projection of any change
    scheduled for the next billing period.

    The current period start/end pair is used to detect renewals: a renewal
    is observed when the provider reports a later period start.
    """
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "scheduled_action IS NULL OR scheduled_change_at IS NOT NULL",
            name="ck_subscriptions_scheduled_change_at",
        ),
        CheckConstraint(
            "scheduled_action IS NULL OR scheduled_action <> 'PRICE_CHANGE' "
            "OR scheduled_price_id IS NOT NULL",
            name="ck_subscriptions_scheduled_price",
        ),
        CheckConstraint(
            "stripe_current_period_end > stripe_current_period_start",
            name="ck_subscriptions_period_order",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Relationships
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    price_id = Column(Uuid, ForeignKey("prices.id"), nullable=False)

    # Metadata
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(SubscriptionStatus, name="subscription_status"),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
    )

    # Stripe
    stripe_customer_id = Column(String, nullable=False)
    stripe_subscription_id = Column(String, nullable=False, unique=True)
    stripe_subscription_item_id = Column(String, nullable=False, unique=True)
    stripe_subscription_schedule_id = Column(String, nullable=True)
    stripe_current_period_start = Column(DateTime(timezone=True), nullable=False)
    stripe_current_period_end = Column(DateTime(timezone=True), nullable=False)

    # Scheduled change
    scheduled_action = Column(
        Enum(ScheduledSubscriptionAction, name="scheduled_subscription_action"),
        nullable=True,
    )
    scheduled_price_id = Column(Uuid, ForeignKey("prices.id"), nullable=True)
    scheduled_change_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product")
    price = relationship("Price", foreign_keys=[price_id])
    scheduled_price = relationship("Price", foreign_keys=[scheduled_price_id])
    user = relationship("User")


# Row-level security is a PostgreSQL feature; other dialects skip it.
event.listen(
    Subscription.__table__,
    "after_create",
    DDL("ALTER TABLE subscriptions ENABLE ROW LEVEL SECURITY").execute_if(dialect="postgresql"),
)


class UsageRecord(Base):
    __tablename__ = "usage_records"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(UsageType, name="usage_type"), default=UsageType.MESSAGE, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class Project(Base):
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    sandbox_id = Column(String, nullable=False)
    sandbox_url = Column(String, nullable=False)
    preview_img_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    canvas = relationship("Canvas", back_populates="project", uselist=False)
    conversations = relationship("Conversation", back_populates="project")
    user_projects = relationship("UserProject", back_populates="project")


class UserProject(Base):
    __tablename__ = "user_projects"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True)
    role = Column(Enum(ProjectRole, name="project_role"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    project = relationship("Project", back_populates="user_projects")


class Canvas(Base):
    __tablename__ = "canvas"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, unique=True)

    project = relationship("Project", back_populates="canvas")
    frames = relationship("Frame", back_populates="canvas")
    user_canvases = relationship("UserCanvas", back_populates="canvas")


class UserCanvas(Base):
    __tablename__ = "user_canvases"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    canvas_id = Column(Uuid, ForeignKey("canvas.id", ondelete="CASCADE"), primary_key=True)
    scale = Column(Float, nullable=False)
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)

    canvas = relationship("Canvas", back_populates="user_canvases")


class Frame(Base):
    __tablename__ = "frames"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    canvas_id = Column(Uuid, ForeignKey("canvas.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String, nullable=False)
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)
    width = Column(Float, nullable=False)
    height = Column(Float, nullable=False)

    canvas = relationship("Canvas", back_populates="frames")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    display_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="conversations")


class ProjectCreateRequest(Base):
    __tablename__ = "project_create_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, unique=True)
    context = Column(JSON, nullable=False)
    status = Column(Enum(ProjectCreateRequestStatus, name="project_create_status"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
