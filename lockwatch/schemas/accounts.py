"""
Hot-account data schemas using Pydantic for validation and serialization.
Both the push payload and the REST responses normalize into HotAccountRecord.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import (AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator,
                      model_validator)


class SnapshotSource(str, Enum):
    """Where a snapshot came from."""
    PUSH = "push"
    POLL = "poll"


class HotAccountRecord(BaseModel):
    """One ranked account. Immutable once received."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pubkey: str = Field(min_length=1, validation_alias=AliasChoices("pubkey", "account_pubkey"))
    lock_attempts: int = Field(ge=0)
    successful_locks: Optional[int] = Field(default=None, ge=0)
    success_rate: Optional[float] = Field(default=None, ge=0, le=100)  # percent
    avg_contention: float = Field(default=0.0, ge=0,
                                  validation_alias=AliasChoices("avg_contention", "contention_score"))
    max_contention: Optional[float] = Field(default=None, ge=0)
    avg_priority_fee: int = Field(default=0, ge=0)  # lamports
    max_priority_fee: Optional[int] = Field(default=None, ge=0)  # lamports

    @field_validator("avg_contention", mode="before")
    @classmethod
    def _null_contention(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("avg_priority_fee", "max_priority_fee", mode="before")
    @classmethod
    def _normalize_fee(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return 0 if info.field_name == "avg_priority_fee" else None
        # API averages fees as floats; the smallest fee unit is integral
        if isinstance(value, float):
            return int(value)
        return value

    @model_validator(mode="after")
    def _derive_success_rate(self) -> "HotAccountRecord":
        if self.success_rate is None and self.successful_locks is not None:
            rate = (self.successful_locks / self.lock_attempts * 100.0) if self.lock_attempts > 0 else 0.0
            object.__setattr__(self, "success_rate", min(rate, 100.0))
        return self


def rank_records(records: Iterable[HotAccountRecord]) -> Tuple[HotAccountRecord, ...]:
    """Dedupe by pubkey (later record wins) and order by descending contention.

    The sort is stable so server-ranked input keeps its tie order.
    """
    latest: Dict[str, HotAccountRecord] = {}
    for record in records:
        latest.pop(record.pubkey, None)
        latest[record.pubkey] = record
    return tuple(sorted(latest.values(), key=lambda r: r.avg_contention, reverse=True))


class RankedSnapshot(BaseModel):
    """An atomically delivered, ranked set of records from one channel."""

    model_config = ConfigDict(frozen=True)

    records: Tuple[HotAccountRecord, ...] = ()
    source: SnapshotSource
    retrieved_at: float  # epoch seconds

    @field_validator("records", mode="after")
    @classmethod
    def _rank(cls, value: Tuple[HotAccountRecord, ...]) -> Tuple[HotAccountRecord, ...]:
        return rank_records(value)

    @classmethod
    def from_records(cls, records: Iterable[HotAccountRecord], source: SnapshotSource,
                     retrieved_at: float) -> "RankedSnapshot":
        return cls(records=tuple(records), source=source, retrieved_at=retrieved_at)


class DashboardStats(BaseModel):
    """Aggregate dashboard totals (GET /api/stats)."""
    unique_accounts: int = 0
    total_events: int = 0
    high_contention_accounts: int = 0
    avg_success_rate: float = 0.0


class AccountStats(BaseModel):
    """Per-account detail (GET /api/accounts/{pubkey}/stats)."""
    pubkey: str
    total_lock_attempts: int
    successful_locks: int
    failed_locks: int
    success_rate: float
    avg_contention: float
    avg_priority_fee: int
    max_priority_fee: int


class LiveFeeEstimate(BaseModel):
    """Live fee recommendation (GET /api/accounts/{pubkey}/fee-now)."""
    account: str
    queue_depth: int
    p90_fee_lamports: int
    recommended_fee_lamports: int
    recommended_fee_sol: float
    avg_contention: float
    slots_observed: int
    freshness_seconds: float


class PriorityFeeEstimate(BaseModel):
    """Recommended fee for a set of accounts (POST /api/priority-fees/estimate)."""
    recommended_fee_lamports: int
    recommended_fee_sol: float


def parse_records(items: List[Dict[str, Any]]) -> List[HotAccountRecord]:
    """Validate a list of wire objects into records. Raises pydantic.ValidationError."""
    return [HotAccountRecord.model_validate(item) for item in items]
