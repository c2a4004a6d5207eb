from enum import Enum


class UserStatus(str, Enum):
    """Lifecycle state of a user account."""

    PENDING = "pending"  # Registered, waiting for email verification
    ACTIVE = "active"
    INACTIVE = "inactive"  # Set by administrators only


class DispatchResult(str, Enum):
    """Outcome of handing a notification to the message broker."""

    ACCEPTED = "accepted"
    QUEUE_UNAVAILABLE = "queue_unavailable"
