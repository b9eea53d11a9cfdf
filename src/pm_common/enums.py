"""Global enums — must match DB CHECK constraints exactly.

DDL source: alembic/versions/002_create_markets.py … 005_create_token_transactions.py
"""

from enum import Enum


class MarketStatus(str, Enum):
    ACTIVE = "active"
    PENDING_RESOLUTION = "pending_resolution"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class CommitmentStatus(str, Enum):
    ACTIVE = "active"
    WON = "won"
    LOST = "lost"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class ResolutionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PayoutStatus(str, Enum):
    COMPLETED = "completed"


class EvidenceType(str, Enum):
    URL = "url"
    SCREENSHOT = "screenshot"
    DESCRIPTION = "description"


class TransactionType(str, Enum):
    ISSUANCE = "issuance"
    COMMITMENT = "commitment"
    PREDICTION_WIN = "prediction_win"
    CREATOR_FEE = "creator_fee"
    MARKET_CANCELLATION_REFUND = "market_cancellation_refund"


class ResolutionAction(str, Enum):
    """Audit trail actions recorded in resolution_logs."""
    RESOLUTION_STARTED = "resolution_started"
    EVIDENCE_VALIDATED = "evidence_validated"
    PAYOUTS_CALCULATED = "payouts_calculated"
    TOKENS_DISTRIBUTED = "tokens_distributed"
    RESOLUTION_COMPLETED = "resolution_completed"
    MARKET_CANCELLED = "market_cancelled"
