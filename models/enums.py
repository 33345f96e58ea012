from enum import Enum


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"


class ScheduledSubscriptionAction(str, Enum):
    PRICE_CHANGE = "price_change"
    CANCELLATION = "cancellation"


class ProductType(str, Enum):
    FREE = "free"
    PRO = "pro"


class ProjectRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"


class ProjectCreateRequestStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class UsageType(str, Enum):
    MESSAGE = "message"


class UsagePeriod(str, Enum):
    DAY = "day"
    MONTH = "month"
