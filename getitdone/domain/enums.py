"""Domain enumerations and state-transition rules."""

import enum


class ErrandStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
ERRAND_TRANSITIONS: dict[ErrandStatus, frozenset[ErrandStatus]] = {
    ErrandStatus.PENDING: frozenset({ErrandStatus.ACCEPTED, ErrandStatus.CANCELLED}),
    ErrandStatus.ACCEPTED: frozenset({ErrandStatus.IN_PROGRESS, ErrandStatus.CANCELLED}),
    ErrandStatus.IN_PROGRESS: frozenset({ErrandStatus.COMPLETED, ErrandStatus.CANCELLED}),
    ErrandStatus.COMPLETED: frozenset(),
    ErrandStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({ErrandStatus.COMPLETED, ErrandStatus.CANCELLED})


def is_valid_transition(current: ErrandStatus, new: ErrandStatus) -> bool:
    """True iff ``current -> new`` is listed in the transition table."""
    try:
        current, new = ErrandStatus(current), ErrandStatus(new)
    except ValueError:
        return False
    return new in ERRAND_TRANSITIONS[current]


class ErrandType(str, enum.Enum):
    DELIVERY = "delivery"
    SHOPPING = "shopping"
    DOCUMENT = "document"
    REPAIR = "repair"


class Priority(str, enum.Enum):
    NORMAL = "normal"
    PRIORITY = "priority"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    WALLET = "wallet"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    RUNNER = "runner"
    ADMIN = "admin"


class VehicleType(str, enum.Enum):
    BICYCLE = "bicycle"
    MOTORCYCLE = "motorcycle"
    CAR = "car"
    WALKING = "walking"
