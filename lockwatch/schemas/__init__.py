from lockwatch.schemas.accounts import (
    AccountStats,
    DashboardStats,
    HotAccountRecord,
    LiveFeeEstimate,
    PriorityFeeEstimate,
    RankedSnapshot,
    SnapshotSource,
)
from lockwatch.schemas.messages import (
    HOT_ACCOUNTS_CHANNEL,
    ConnectedMessage,
    ErrorMessage,
    HotAccountsUpdateMessage,
    SubscribeMessage,
)

__all__ = [
    "AccountStats",
    "DashboardStats",
    "HotAccountRecord",
    "LiveFeeEstimate",
    "PriorityFeeEstimate",
    "RankedSnapshot",
    "SnapshotSource",
    "HOT_ACCOUNTS_CHANNEL",
    "ConnectedMessage",
    "ErrorMessage",
    "HotAccountsUpdateMessage",
    "SubscribeMessage",
]
