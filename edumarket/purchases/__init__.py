"""Purchase ledger module.

Provides:
- Pending purchases with an amount fixed at creation
- Stripe checkout sessions and webhook verification
- Exactly-once status transitions that grant the enrollment
"""

from .models import (
    PURCHASES_TABLES_CQL,
    GatewayOutcome,
    NotificationOutcome,
    NotificationResult,
    Purchase,
    PurchaseStatus,
    compute_amount,
)


__all__ = [
    "PURCHASES_TABLES_CQL",
    "GatewayOutcome",
    "NotificationOutcome",
    "NotificationResult",
    "Purchase",
    "PurchaseStatus",
    "compute_amount",
]
