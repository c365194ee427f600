"""Database models for the purchase ledger.

Cassandra table definitions for:
- Purchases: Main purchase table with a monotonic status
- Lookup tables: Purchases by course (earnings) and by user (history)

Status transitions are ``pending -> completed`` and ``pending -> failed`` only,
enforced with ``UPDATE ... IF status = 'pending'``.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any


class PurchaseStatus(str, Enum):
    """Purchase status."""

    PENDING = "pending"  # Checkout started, awaiting gateway notification
    COMPLETED = "completed"  # Paid; enrollment granted
    FAILED = "failed"  # Expired or payment failed


class GatewayOutcome(str, Enum):
    """Payment outcome carried by a gateway notification."""

    SUCCESS = "success"
    FAILURE = "failure"


class NotificationOutcome(str, Enum):
    """Result of applying a gateway notification."""

    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def compute_amount(
    price: Decimal, discount: int, minor_unit: Decimal = Decimal("0.01")
) -> Decimal:
    """Price after discount, rounded half-up to the currency minor unit.

    Examples:
        >>> compute_amount(Decimal("100"), 10)
        Decimal('90.00')
        >>> compute_amount(Decimal("19.99"), 15)
        Decimal('16.99')
    """
    raw = Decimal(price) * (Decimal(100) - Decimal(discount)) / Decimal(100)
    return raw.quantize(minor_unit, rounding=ROUND_HALF_UP)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

PURCHASE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases (
    purchase_id TEXT PRIMARY KEY,
    course_id TEXT,
    user_id TEXT,
    amount DECIMAL,
    currency TEXT,
    status TEXT,
    checkout_session_id TEXT,
    checkout_url TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lookup: compras por curso - ganhos do educador
PURCHASES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases_by_course (
    course_id TEXT,
    purchase_id TEXT,
    user_id TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, purchase_id)
)
"""

# Lookup: compras por usuario - historico
PURCHASES_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases_by_user (
    user_id TEXT,
    purchase_id TEXT,
    course_id TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY (user_id, purchase_id)
)
"""

# All CQL statements for table setup
PURCHASES_TABLES_CQL = [
    PURCHASE_TABLE_CQL,
    PURCHASES_BY_COURSE_TABLE_CQL,
    PURCHASES_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Purchase:
    """Purchase entity.

    Attributes:
        purchase_id: Purchase identifier
        course_id: Purchased course
        user_id: Buyer
        amount: Price after discount, fixed at creation
        currency: ISO 4217 currency code
        status: pending, completed or failed
        checkout_session_id: Gateway checkout session ID
        checkout_url: Hosted checkout page URL
        created_at: Creation timestamp
        updated_at: Last status change
    """

    def __init__(
        self,
        purchase_id: str,
        course_id: str,
        user_id: str,
        amount: Decimal,
        currency: str,
        status: str = PurchaseStatus.PENDING.value,
        checkout_session_id: str | None = None,
        checkout_url: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.purchase_id = purchase_id
        self.course_id = course_id
        self.user_id = user_id
        self.amount = amount
        self.currency = currency
        self.status = status
        self.checkout_session_id = checkout_session_id
        self.checkout_url = checkout_url
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @property
    def is_completed(self) -> bool:
        """Check if purchase is completed."""
        return self.status == PurchaseStatus.COMPLETED.value

    @classmethod
    def from_row(cls, row: Any) -> "Purchase":
        """Create Purchase instance from Cassandra row."""
        return cls(
            purchase_id=row.purchase_id,
            course_id=row.course_id,
            user_id=row.user_id,
            amount=row.amount,
            currency=row.currency,
            status=row.status or PurchaseStatus.PENDING.value,
            checkout_session_id=row.checkout_session_id,
            checkout_url=row.checkout_url,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Purchase {self.purchase_id} {self.status} {self.amount}>"


class NotificationResult:
    """Outcome of ``PurchaseService.apply_gateway_notification``."""

    def __init__(
        self,
        purchase_id: str,
        outcome: NotificationOutcome,
        status: PurchaseStatus,
        enrolled: bool = False,
    ):
        self.purchase_id = purchase_id
        self.outcome = outcome
        self.status = status
        self.enrolled = enrolled
