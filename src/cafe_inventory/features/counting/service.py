import logging
from typing import Optional

from ...common.errors import NotificationFailedError, ValidationError
from ..notifications.schemas import EmailSettings
from ..notifications.sender import NotificationSender
from ..state.actions import DeleteEntity
from ..state.schemas import Collection
from ..state.store import StateStore
from ..sync.gateway import RemoteGateway, delete_remote
from .lifecycle import SessionLifecycle
from .schemas import InventorySession, ItemUpsertRequest, LastOrderInfo, SessionStartRequest

logger = logging.getLogger(__name__)


def require_current_session(store: StateStore) -> InventorySession:
    session = store.current_session
    if session is None:
        raise ValidationError("No counting session in progress")
    return session


def start_session(lifecycle: SessionLifecycle, request: SessionStartRequest) -> InventorySession:
    return lifecycle.start_session(request.location_id, request.user_name)


def update_current_item(
    lifecycle: SessionLifecycle, store: StateStore, product_id: str, request: ItemUpsertRequest
) -> InventorySession:
    session = require_current_session(store)
    return lifecycle.upsert_item(
        session,
        product_id,
        quantity=request.current_quantity,
        should_order=request.should_order,
    )


async def submit_order(
    lifecycle: SessionLifecycle,
    store: StateStore,
    email_settings: Optional[EmailSettings],
    sender: NotificationSender,
) -> InventorySession:
    """
    Submits the current session as an order.

    The order email goes out first. History rows are recorded and the session
    is marked submitted only once the sender reports success; a failed send
    leaves the session as a Draft so it can be retried. Item edits and a
    second submit are rejected until the send has finished.
    """
    session = require_current_session(store)
    with lifecycle.submitting(session.id):
        result = lifecycle.submit(session, email_settings)

        sent = await sender.send(result.order_summary)
        if not sent:
            logger.error("Order email for session %s was not sent; session left as draft", session.id)
            raise NotificationFailedError()

        return lifecycle.commit_submission(result)


def end_current_session(lifecycle: SessionLifecycle) -> None:
    lifecycle.end_session()


async def delete_session(store: StateStore, gateway: Optional[RemoteGateway], session_id: str) -> None:
    store.get(Collection.SESSIONS, session_id)
    store.dispatch(DeleteEntity(collection=Collection.SESSIONS, entity_id=session_id))
    logger.info("Deleted session %s", session_id)
    await delete_remote(gateway, Collection.SESSIONS, session_id)


def last_order(store: StateStore, product_id: str, location_id: str) -> Optional[LastOrderInfo]:
    return store.last_order_info(product_id, location_id)
