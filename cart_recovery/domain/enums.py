# cart_recovery/domain/enums.py
import enum


class CartStatus(str, enum.Enum):
    active = "active"
    converted = "converted"


class AbandonedCartStatus(str, enum.Enum):
    abandoned = "abandoned"
    recovered = "recovered"
    expired = "expired"


class ReminderType(str, enum.Enum):
    first = "first"
    second = "second"
    final = "final"


class ReminderStatus(str, enum.Enum):
    pending = "pending"
    # Claimed by a dispatcher run; the send is in flight.
    sending = "sending"
    sent = "sent"
    failed = "failed"
    cancelled = "cancelled"
