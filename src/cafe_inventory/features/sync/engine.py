"""
Reconciliation Engine

Merges the local dataset held by the StateStore with the remote copy behind a
RemoteGateway. Two modes:

- push-then-pull (default, used by every automatic trigger): upsert every
  local location, category, supplier, product and session, insert the order
  history, then pull.
- pull-first: pull only, for "get latest" without uploading local drafts.

The pull fetches all six collections concurrently, waits for every fetch,
drops tombstoned ids and publishes the result with a single ReplaceDataset
dispatch, so the store never sees a half-merged dataset. If anything fails
before that dispatch the store is left exactly as it was.

``reconcile`` never raises. Failures end up in the returned SyncResult and in
``status``; the explicit caller shows the message, automatic triggers only
log it.
"""

import asyncio
import datetime
import logging
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from pydantic import BaseModel

from ...common.errors import (
    ConfigurationError,
    ConnectivityError,
    InventoryError,
    PartialSyncFailure,
    RemoteNotConfiguredError,
)
from ...common.models import utcnow
from ..notifications.settings import EmailSettingsRepository
from ..state.actions import ReplaceDataset
from ..state.schemas import Collection, Dataset
from ..state.store import TOMBSTONED, StateStore
from ..state.tombstones import TombstoneKind
from .gateway import RemoteGateway
from .schemas import FailureKind, SyncMode, SyncResult, SyncSettings, SyncStatus, load_sync_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

PUSH_ORDER = (
    Collection.LOCATIONS,
    Collection.CATEGORIES,
    Collection.SUPPLIERS,
    Collection.PRODUCTS,
    Collection.SESSIONS,
)


def _entity_key(collection: Collection) -> Callable[[BaseModel], str]:
    if collection is Collection.ORDER_HISTORY:
        return lambda entity: entity.record_id
    return lambda entity: entity.id


class ReconciliationEngine:
    def __init__(
        self,
        store: StateStore,
        gateway: Optional[RemoteGateway],
        email_settings: Optional[EmailSettingsRepository] = None,
        settings_loader: Callable[[], SyncSettings] = load_sync_settings,
        clock: Callable[[], datetime.datetime] = utcnow,
    ):
        self.store = store
        self.gateway = gateway
        self.email_settings = email_settings
        self._settings_loader = settings_loader
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_synced_at: Optional[datetime.datetime] = None
        self._last_result: Optional[SyncResult] = None

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(
            remote_configured=self.gateway is not None,
            is_syncing=self.is_syncing,
            has_active_draft=self.store.state.has_active_draft,
            last_synced_at=self._last_synced_at,
            last_error=self._last_result.error if self._last_result else None,
            last_result=self._last_result,
        )

    # --- Triggers ---
    async def auto_sync(self, trigger: str) -> Optional[SyncResult]:
        """Periodic, foreground and startup entry point.

        Returns None without touching the gateway or the store when the sync is
        skipped: no remote configured, auto-sync disabled, a Draft session in
        progress, or another reconciliation already running.
        """
        if self.gateway is None:
            logger.debug("Skipping %s sync: remote store not configured", trigger)
            return None
        if not self._settings_loader().auto_sync_enabled:
            logger.debug("Skipping %s sync: auto-sync disabled", trigger)
            return None
        if self.store.state.has_active_draft:
            logger.info("Skipping %s sync: a counting session is in progress", trigger)
            return None
        if self.is_syncing:
            logger.info("Skipping %s sync: a sync is already running", trigger)
            return None

        result = await self.reconcile(pull_first=False)
        if not result.ok:
            logger.warning("Background %s sync failed: %s", trigger, result.error)
        return result

    async def reconcile(self, pull_first: bool = False) -> SyncResult:
        mode = SyncMode.PULL_FIRST if pull_first else SyncMode.PUSH_THEN_PULL
        started_at = self._clock()
        if self.gateway is None:
            return self._finish(self._failed(mode, started_at, RemoteNotConfiguredError()))

        async with self._lock:
            settings = self._settings_loader()
            logger.info("Starting %s sync", mode.value)
            try:
                result = await self._run(mode, settings, started_at)
            except InventoryError as e:
                logger.error("%s sync failed: %s", mode.value, e)
                result = self._failed(mode, started_at, e)
            except Exception as e:
                logger.exception("Unexpected error during %s sync", mode.value)
                result = self._failed(mode, started_at, e)
            return self._finish(result)

    # --- Phases ---
    async def _run(self, mode: SyncMode, settings: SyncSettings, started_at: datetime.datetime) -> SyncResult:
        gateway = self.gateway
        if not await self._call(gateway.test_connection(), "testing the connection", settings):
            raise ConnectivityError("Could not connect to the remote store")

        baseline = self.store.export_dataset()
        push_failures: List[str] = []
        if mode is SyncMode.PUSH_THEN_PULL:
            push_failures = await self._push(baseline, settings)

        dataset, remote_settings, filtered = await self._pull(settings)
        # No await between the overlay and the dispatch
        dataset = self._keep_local_changes(baseline, dataset)
        self.store.dispatch(ReplaceDataset(dataset=dataset))
        self._last_synced_at = self._clock()
        self._merge_remote_settings(remote_settings)

        pruned = False
        if mode is SyncMode.PUSH_THEN_PULL and not push_failures:
            self.store.ledger.prune_all(self._clock() - settings.retention)
            pruned = True

        counts = dataset.counts()
        if push_failures:
            partial = PartialSyncFailure(push_failures)
            logger.warning(str(partial))
            return SyncResult(
                ok=False,
                mode=mode,
                message=f"Sync finished with errors. {partial}",
                error=str(partial),
                failure=FailureKind.PARTIAL,
                push_failures=partial.failures,
                counts=counts,
                filtered=filtered,
                pruned=pruned,
                started_at=started_at,
            )
        return SyncResult(
            ok=True,
            mode=mode,
            message=f"Sync complete: {counts['locations']} locations, {counts['products']} products, "
            f"{counts['sessions']} sessions",
            counts=counts,
            filtered=filtered,
            pruned=pruned,
            started_at=started_at,
        )

    async def _push(self, dataset: Dataset, settings: SyncSettings) -> List[str]:
        failures: List[str] = []
        for collection in PUSH_ORDER:
            for entity in dataset.collection(collection):
                if not await self._push_one(
                    self.gateway.upsert(collection, entity), f"pushing {collection.value} {entity.id}", settings
                ):
                    failures.append(f"{collection.value}:{entity.id}")
            logger.debug("Pushed %d %s", len(dataset.collection(collection)), collection.value)

        if dataset.order_history:
            if not await self._push_one(
                self.gateway.add_order_history(dataset.order_history), "pushing order history", settings
            ):
                failures.append(Collection.ORDER_HISTORY.value)

        if self.email_settings is not None:
            for key, value in self.email_settings.load().as_remote_settings().items():
                if not await self._push_one(self.gateway.upsert_setting(key, value), f"pushing {key}", settings):
                    failures.append(f"settings:{key}")
        return failures

    async def _push_one(self, call: Awaitable[bool], what: str, settings: SyncSettings) -> bool:
        try:
            ok = await self._call(call, what, settings)
        except ConnectivityError as e:
            logger.error(str(e))
            return False
        if not ok:
            logger.error("Failed %s", what)
        return ok

    async def _pull(self, settings: SyncSettings):
        fetches = [self._call(self.gateway.fetch_all(c), f"fetching {c.value}", settings) for c in Collection]
        fetches.append(self._call(self.gateway.fetch_settings(), "fetching settings", settings))
        results = await asyncio.gather(*fetches, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

        remote: Dict[Collection, List[BaseModel]] = dict(zip(Collection, results[: len(Collection)]))
        remote_settings: Dict[str, str] = results[-1]
        filtered: Dict[str, int] = {}

        ledger = self.store.ledger
        deleted = {kind: ledger.deleted_ids(kind) for kind in TombstoneKind}
        for collection, kind in TOMBSTONED.items():
            kept = [entity for entity in remote[collection] if entity.id not in deleted[kind]]
            if len(kept) != len(remote[collection]):
                filtered[collection.value] = len(remote[collection]) - len(kept)
            remote[collection] = kept

        # References to tombstoned categories or suppliers may survive a failed remote cascade
        remote[Collection.PRODUCTS] = [
            self._strip_deleted_refs(p, deleted[TombstoneKind.CATEGORIES], deleted[TombstoneKind.SUPPLIERS])
            for p in remote[Collection.PRODUCTS]
        ]
        history = remote[Collection.ORDER_HISTORY]
        kept_history = [o for o in history if o.session_id not in deleted[TombstoneKind.SESSIONS]]
        if len(kept_history) != len(history):
            filtered[Collection.ORDER_HISTORY.value] = len(history) - len(kept_history)
        remote[Collection.ORDER_HISTORY] = kept_history

        if filtered:
            logger.debug("Dropped tombstoned remote entities: %s", filtered)
        dataset = Dataset(**{c.field: remote[c] for c in Collection})
        return dataset, remote_settings, filtered

    def _keep_local_changes(self, baseline: Dataset, pulled: Dataset) -> Dataset:
        """Lay local mutations made since ``baseline`` over the pulled dataset.

        Entities added or changed while the sync was awaiting the gateway win
        over their remote copy and go out with the next push. Entities removed
        locally in that window stay removed, as do tombstoned ids.
        """
        current = self.store.export_dataset()
        ledger = self.store.ledger
        update = {}
        kept = 0
        for collection in Collection:
            key = _entity_key(collection)
            before = {key(e): e for e in baseline.collection(collection)}
            now = {key(e): e for e in current.collection(collection)}
            changed = [e for k, e in now.items() if before.get(k) != e]
            removed = before.keys() - now.keys()
            if not changed and not removed:
                continue

            if collection is Collection.ORDER_HISTORY:
                deleted = ledger.deleted_ids(TombstoneKind.SESSIONS)
                changed = [e for e in changed if e.session_id not in deleted]
            elif collection in TOMBSTONED:
                deleted = ledger.deleted_ids(TOMBSTONED[collection])
                changed = [e for e in changed if e.id not in deleted]

            merged = {key(e): e for e in pulled.collection(collection) if key(e) not in removed}
            merged.update((key(e), e) for e in changed)
            update[collection.field] = list(merged.values())
            kept += len(changed)

        if not update:
            return pulled
        logger.info("Kept %d local change(s) made during the sync", kept)
        return pulled.model_copy(update=update)

    @staticmethod
    def _strip_deleted_refs(product, deleted_categories, deleted_suppliers):
        if not (set(product.categories) & deleted_categories or set(product.suppliers) & deleted_suppliers):
            return product
        return product.model_copy(
            update={
                "categories": [c for c in product.categories if c not in deleted_categories],
                "suppliers": [s for s in product.suppliers if s not in deleted_suppliers],
            }
        )

    def _merge_remote_settings(self, remote_settings: Dict[str, str]) -> None:
        if self.email_settings is None or not remote_settings:
            return
        current = self.email_settings.load()
        merged = current.merged_with_remote(remote_settings)
        if merged != current:
            try:
                self.email_settings.save(merged)
            except OSError:
                logger.error("Failed to store email settings pulled from the remote store", exc_info=True)

    async def _call(self, call: Awaitable[T], what: str, settings: SyncSettings) -> T:
        timeout = settings.gateway_timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectivityError(f"Timed out after {timeout:g}s {what}") from None

    # --- Results ---
    def _failed(self, mode: SyncMode, started_at: datetime.datetime, error: Exception) -> SyncResult:
        if isinstance(error, ConfigurationError):
            failure = FailureKind.CONFIGURATION
        elif isinstance(error, ConnectivityError):
            failure = FailureKind.CONNECTIVITY
        else:
            failure = FailureKind.UNEXPECTED
        return SyncResult(
            ok=False,
            mode=mode,
            message=f"Sync failed: {error}",
            error=str(error),
            failure=failure,
            started_at=started_at,
        )

    def _finish(self, result: SyncResult) -> SyncResult:
        result = result.model_copy(update={"finished_at": self._clock()})
        self._last_result = result
        return result
