"""Data models for bank/app transactions and reconciliation records."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class TransactionType(Enum):
    """Transaction direction as reported by the bank."""

    CREDIT = "credit"  # Money in
    DEBIT = "debit"  # Money out


class TransactionStatus(Enum):
    """Settlement status of a bank transaction."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class MatchType(Enum):
    """How a reconciliation match was established."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    MANUAL = "manual"
    NONE = "none"


class MatchStatus(Enum):
    """Outcome of a reconciliation match."""

    MATCHED = "matched"
    UNMATCHED = "unmatched"
    CONFLICT = "conflict"
    DUPLICATE = "duplicate"


class ConflictType(Enum):
    """Field on which the two sides of a match disagree."""

    AMOUNT = "amount"
    DATE = "date"
    DESCRIPTION = "description"
    CATEGORY = "category"


class SuggestedResolution(Enum):
    """Resolution proposed by the engine for a conflict."""

    USE_BANK = "use_bank"
    USE_APP = "use_app"
    MERGE = "merge"
    MANUAL_REVIEW = "manual_review"


class ConflictResolution(Enum):
    """Resolution chosen by a reviewer for a conflict."""

    USE_BANK = "use_bank"
    USE_APP = "use_app"
    MERGE = "merge"
    IGNORE = "ignore"


class DuplicateType(Enum):
    """Strength of a duplicate grouping."""

    EXACT = "exact"
    SIMILAR = "similar"
    POTENTIAL = "potential"


class DuplicateAction(Enum):
    """Action suggested for a duplicate group."""

    KEEP_BANK = "keep_bank"
    KEEP_APP = "keep_app"
    MERGE = "merge"
    KEEP_ALL = "keep_all"


def normalize_datetime(value: datetime) -> datetime:
    """
    Return a naive datetime comparable with every other transaction date.

    Offset-aware values are converted to UTC and their tzinfo dropped; naive
    values are taken as already normalized.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """Accept a datetime or an ISO-8601 string."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return normalize_datetime(value)


def _optional_datetime(value: Optional[Union[str, datetime]]) -> Optional[datetime]:
    return parse_datetime(value) if value else None


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class BankTransaction:
    """
    Transaction reported by a bank connection.

    The engine treats these as read-only snapshots. The only field it ever
    writes is ``category``, when auto-categorization is confident enough.
    """

    id: str
    account_id: str
    amount: Decimal
    description: str
    date: datetime
    type: TransactionType
    currency: str = "BRL"
    merchant_name: Optional[str] = None
    category: Optional[str] = None
    reference: Optional[str] = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    metadata: dict[str, Any] = field(default_factory=dict)

    source = "bank"

    def __post_init__(self) -> None:
        self.date = normalize_datetime(self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "id": self.id,
            "account_id": self.account_id,
            "amount": str(self.amount),
            "description": self.description,
            "date": self.date.isoformat(),
            "type": self.type.value,
            "currency": self.currency,
            "merchant_name": self.merchant_name,
            "category": self.category,
            "reference": self.reference,
            "status": self.status.value,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BankTransaction":
        return cls(
            id=str(data["id"]),
            account_id=str(data.get("account_id", "")),
            amount=Decimal(str(data["amount"])),
            description=data.get("description") or "",
            date=parse_datetime(data["date"]),
            type=TransactionType(data["type"]),
            currency=data.get("currency") or "BRL",
            merchant_name=data.get("merchant_name"),
            category=data.get("category"),
            reference=data.get("reference"),
            status=TransactionStatus(data.get("status") or "completed"),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class AppTransaction:
    """Transaction recorded by the user in the application's own store."""

    id: str
    amount: Decimal
    description: str
    date: datetime
    type: TransactionType
    category: Optional[str] = None
    merchant_name: Optional[str] = None
    reference: Optional[str] = None

    source = "app"

    def __post_init__(self) -> None:
        self.date = normalize_datetime(self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "id": self.id,
            "amount": str(self.amount),
            "description": self.description,
            "date": self.date.isoformat(),
            "type": self.type.value,
            "category": self.category,
            "merchant_name": self.merchant_name,
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppTransaction":
        return cls(
            id=str(data["id"]),
            amount=Decimal(str(data["amount"])),
            description=data.get("description") or "",
            date=parse_datetime(data["date"]),
            type=TransactionType(data["type"]),
            category=data.get("category"),
            merchant_name=data.get("merchant_name"),
            reference=data.get("reference"),
        )


AnyTransaction = Union[BankTransaction, AppTransaction]


def transaction_from_dict(data: dict[str, Any]) -> AnyTransaction:
    """Rebuild a transaction from its ``to_dict`` form using the source tag."""
    if data.get("source") == "app":
        return AppTransaction.from_dict(data)
    return BankTransaction.from_dict(data)


@dataclass
class ReconciliationMatch:
    """Link between one bank transaction and at most one app transaction."""

    id: str
    bank_transaction: BankTransaction
    match_type: MatchType
    confidence: float
    status: MatchStatus
    app_transaction: Optional[AppTransaction] = None
    match_reasons: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    def __post_init__(self) -> None:
        if self.status == MatchStatus.MATCHED and self.app_transaction is None:
            raise ValueError("A match without an app transaction cannot be 'matched'")

    @property
    def is_reviewed(self) -> bool:
        return self.reviewed_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "bank_transaction": self.bank_transaction.to_dict(),
            "app_transaction": (
                self.app_transaction.to_dict() if self.app_transaction else None
            ),
            "match_type": self.match_type.value,
            "confidence": self.confidence,
            "match_reasons": list(self.match_reasons),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "reviewed_at": _format_datetime(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReconciliationMatch":
        app_data = data.get("app_transaction")
        return cls(
            id=data["id"],
            bank_transaction=BankTransaction.from_dict(data["bank_transaction"]),
            app_transaction=AppTransaction.from_dict(app_data) if app_data else None,
            match_type=MatchType(data["match_type"]),
            confidence=float(data["confidence"]),
            match_reasons=list(data.get("match_reasons") or []),
            status=MatchStatus(data["status"]),
            created_at=parse_datetime(data["created_at"]),
            reviewed_at=_optional_datetime(data.get("reviewed_at")),
            reviewed_by=data.get("reviewed_by"),
        )


@dataclass
class ReconciliationConflict:
    """Field-level disagreement between the two sides of a match."""

    id: str
    match_id: str
    bank_transaction_id: str
    app_transaction_id: str
    conflict_type: ConflictType
    bank_value: Any
    app_value: Any
    suggested_resolution: SuggestedResolution
    confidence: float
    created_at: datetime = field(default_factory=datetime.now)
    resolved_at: Optional[datetime] = None
    resolution: Optional[ConflictResolution] = None
    # Set when a resolved conflict already covered the same pair and field
    previously_resolved_id: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    @property
    def pair_key(self) -> tuple[str, str, str]:
        return (self.bank_transaction_id, self.app_transaction_id, self.conflict_type.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "match_id": self.match_id,
            "bank_transaction_id": self.bank_transaction_id,
            "app_transaction_id": self.app_transaction_id,
            "conflict_type": self.conflict_type.value,
            "bank_value": _serialize_value(self.bank_value),
            "app_value": _serialize_value(self.app_value),
            "suggested_resolution": self.suggested_resolution.value,
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat(),
            "resolved_at": _format_datetime(self.resolved_at),
            "resolution": self.resolution.value if self.resolution else None,
            "previously_resolved_id": self.previously_resolved_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReconciliationConflict":
        resolution = data.get("resolution")
        return cls(
            id=data["id"],
            match_id=data["match_id"],
            bank_transaction_id=data["bank_transaction_id"],
            app_transaction_id=data["app_transaction_id"],
            conflict_type=ConflictType(data["conflict_type"]),
            bank_value=data.get("bank_value"),
            app_value=data.get("app_value"),
            suggested_resolution=SuggestedResolution(data["suggested_resolution"]),
            confidence=float(data["confidence"]),
            created_at=parse_datetime(data["created_at"]),
            resolved_at=_optional_datetime(data.get("resolved_at")),
            resolution=ConflictResolution(resolution) if resolution else None,
            previously_resolved_id=data.get("previously_resolved_id"),
        )


@dataclass
class DuplicateGroup:
    """Cluster of two or more transactions that look like the same event."""

    id: str
    transactions: list[AnyTransaction]
    duplicate_type: DuplicateType
    confidence: float
    suggested_action: DuplicateAction
    created_at: datetime = field(default_factory=datetime.now)
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None

    def __post_init__(self) -> None:
        if len(self.transactions) < 2:
            raise ValueError("A duplicate group needs at least two transactions")

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    @property
    def transaction_ids(self) -> list[str]:
        return [t.id for t in self.transactions]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transactions": [t.to_dict() for t in self.transactions],
            "duplicate_type": self.duplicate_type.value,
            "confidence": self.confidence,
            "suggested_action": self.suggested_action.value,
            "created_at": self.created_at.isoformat(),
            "resolved_at": _format_datetime(self.resolved_at),
            "resolution": self.resolution,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DuplicateGroup":
        return cls(
            id=data["id"],
            transactions=[transaction_from_dict(t) for t in data["transactions"]],
            duplicate_type=DuplicateType(data["duplicate_type"]),
            confidence=float(data["confidence"]),
            suggested_action=DuplicateAction(data["suggested_action"]),
            created_at=parse_datetime(data["created_at"]),
            resolved_at=_optional_datetime(data.get("resolved_at")),
            resolution=data.get("resolution"),
        )


@dataclass
class ReconciliationSummary:
    """Snapshot of one reconciliation run. Derived, never persisted."""

    total_bank_transactions: int
    total_app_transactions: int
    matched: int
    unmatched: int
    conflicts: int
    duplicates: int
    accuracy: float
    last_reconciliation: datetime = field(default_factory=datetime.now)

    @property
    def accuracy_percent(self) -> float:
        return self.accuracy * 100


def _serialize_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value
