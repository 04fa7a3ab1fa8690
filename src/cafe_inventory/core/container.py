"""Process-wide wiring of the inventory core.

One AppContainer is built per process (FastAPI lifespan or CLI command) and
handed to every consumer, instead of module-level singletons.
"""

import datetime
import logging
from typing import Callable, Optional

from fastapi import Request

from ..common.models import utcnow
from ..common.snapshot import SnapshotStore
from ..features.counting.lifecycle import SessionLifecycle
from ..features.notifications.schemas import EmailSettings
from ..features.notifications.sender import EmailJSSender, NotificationSender
from ..features.notifications.settings import EmailSettingsRepository
from ..features.state.store import StateStore
from ..features.state.tombstones import TombstoneLedger
from ..features.sync.engine import ReconciliationEngine
from ..features.sync.gateway import RemoteGateway
from ..features.sync.scheduler import AutoSyncScheduler
from ..features.sync.schemas import load_sync_settings

logger = logging.getLogger(__name__)

SenderFactory = Callable[[EmailSettings], NotificationSender]


class AppContainer:
    def __init__(
        self,
        snapshot: SnapshotStore,
        gateway: Optional[RemoteGateway] = None,
        sender_factory: SenderFactory = EmailJSSender,
        seed_defaults: bool = False,
        clock: Callable[[], datetime.datetime] = utcnow,
    ):
        self.snapshot = snapshot
        self.ledger = TombstoneLedger(snapshot, clock=clock)
        self.store = StateStore.load(snapshot, self.ledger, seed_defaults=seed_defaults)
        self.email_settings = EmailSettingsRepository(snapshot)
        self.engine = ReconciliationEngine(self.store, gateway, self.email_settings, clock=clock)
        self.lifecycle = SessionLifecycle(self.store, clock=clock)
        self.scheduler = AutoSyncScheduler(self.engine, load_sync_settings().auto_sync_interval_minutes)
        self.sender_factory = sender_factory

    @property
    def gateway(self) -> Optional[RemoteGateway]:
        return self.engine.gateway

    def sender(self, settings: Optional[EmailSettings] = None) -> NotificationSender:
        return self.sender_factory(settings or self.email_settings.load())


def get_container(request: Request) -> AppContainer:
    """FastAPI dependency returning the container built in the app lifespan."""
    return request.app.state.container
