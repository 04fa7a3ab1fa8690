import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ...core import config


class SyncMode(str, Enum):
    PUSH_THEN_PULL = "push-then-pull"
    PULL_FIRST = "pull-first"


class FailureKind(str, Enum):
    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    PARTIAL = "partial"
    UNEXPECTED = "unexpected"


class SyncSettings(BaseModel):
    """Configuration resolved once at the start of every reconciliation."""

    retention_days: int = Field(30, ge=0)
    gateway_timeout_seconds: float = Field(30.0, gt=0)
    auto_sync_enabled: bool = True
    auto_sync_interval_minutes: int = Field(15, ge=1)

    @property
    def retention(self) -> datetime.timedelta:
        return datetime.timedelta(days=self.retention_days)


def load_sync_settings() -> SyncSettings:
    return SyncSettings(
        retention_days=config.TOMBSTONE_RETENTION_DAYS,
        gateway_timeout_seconds=config.GATEWAY_TIMEOUT_SECONDS,
        auto_sync_enabled=config.AUTO_SYNC_ENABLED,
        auto_sync_interval_minutes=config.AUTO_SYNC_INTERVAL_MINUTES,
    )


class SyncResult(BaseModel):
    ok: bool
    mode: SyncMode
    message: str
    error: Optional[str] = None
    failure: Optional[FailureKind] = None
    push_failures: List[str] = Field(default_factory=list)
    counts: Dict[str, int] = Field(default_factory=dict, description="Collection sizes after the merge")
    filtered: Dict[str, int] = Field(default_factory=dict, description="Remote entities dropped by tombstones")
    pruned: bool = False
    started_at: datetime.datetime
    finished_at: Optional[datetime.datetime] = None


class SyncStatus(BaseModel):
    remote_configured: bool
    is_syncing: bool
    has_active_draft: bool
    last_synced_at: Optional[datetime.datetime] = None
    last_error: Optional[str] = None
    last_result: Optional[SyncResult] = None
