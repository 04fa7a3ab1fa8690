"""
Session Lifecycle Manager

Governs an inventory counting session from Draft to Submitted:

- ``start_session`` creates a Draft and makes it the current session.
- ``upsert_item`` records a count or order flag for one product, at most one
  item per product, and applies low-stock auto-flagging.
- ``submit`` builds the order summary and history rows without persisting
  anything, so the caller can send the notification first and only then
  ``commit_submission``. While that send is in flight the session is held
  by ``submitting``: a second submit and item edits are rejected.

Every change to a session goes through the store's ``UpdateSession`` intent,
which keeps ``current_session`` and its copy in ``sessions`` identical.
"""

import contextlib
import datetime
import logging
from typing import Callable, Iterator, List, Optional, Set

from ...common.errors import MissingNotificationConfigError, NoItemsToOrderError, ValidationError
from ...common.models import generate_ksuid, utcnow
from ..catalog.schemas import Product
from ..notifications.schemas import EmailSettings
from ..state.actions import AddOrderHistory, SetCurrentSession, UpdateSession
from ..state.schemas import Collection
from ..state.store import StateStore
from .schemas import (
    InventoryItem,
    InventorySession,
    OrderHistoryItem,
    OrderLine,
    OrderSummary,
    SubmissionResult,
)

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_LOCATION = "Unknown Location"
UNKNOWN_SUPPLIER = "Unknown Supplier"


def evaluate_auto_order(product: Product, location_id: str, current_quantity: Optional[int]) -> bool:
    """True when a quantity-tracked product has fallen below its minimum at this location.

    Only ever used to switch ordering on. Counting back up to or above the
    threshold does not clear a flag that is already set.
    """
    if not product.requires_quantity or current_quantity is None:
        return False
    return current_quantity < product.min_threshold_at(location_id)


class SessionLifecycle:
    def __init__(self, store: StateStore, clock: Callable[[], datetime.datetime] = utcnow):
        self._store = store
        self._clock = clock
        self._submitting: Set[str] = set()

    def start_session(self, location_id: str, user_name: str) -> InventorySession:
        if not user_name or not user_name.strip():
            raise ValidationError("Please enter your name")
        if not location_id or self._store.find(Collection.LOCATIONS, location_id) is None:
            raise ValidationError("Please select a known location")

        session = InventorySession(
            id=generate_ksuid(),
            location_id=location_id,
            user_name=user_name.strip(),
            start_date=self._clock(),
        )
        self._store.dispatch(SetCurrentSession(session=session))
        logger.info("Started session %s at location %s for %s", session.id, location_id, session.user_name)
        return session

    def end_session(self) -> None:
        self._store.dispatch(SetCurrentSession(session=None))

    def upsert_item(
        self,
        session: InventorySession,
        product_id: str,
        quantity: Optional[int] = None,
        should_order: Optional[bool] = None,
    ) -> InventorySession:
        """Replace or append the item for ``product_id`` and return the updated session.

        ``should_order=None`` keeps the flag the item already has.
        """
        if session.id in self._submitting:
            raise ValidationError("The order for this session is being sent")
        product: Product = self._store.find(Collection.PRODUCTS, product_id)
        if product is None:
            raise ValidationError(f"Unknown product {product_id}")

        existing = session.item_for(product_id)
        if quantity is not None:
            quantity = max(0, quantity)
        if not product.requires_quantity:
            quantity = None
        if should_order is None:
            should_order = existing.should_order if existing else False
        should_order = should_order or evaluate_auto_order(product, session.location_id, quantity)

        last_order = self._store.last_order_info(product_id, session.location_id, now=self._clock())
        item = InventoryItem(
            product_id=product_id,
            location_id=session.location_id,
            current_quantity=quantity,
            should_order=should_order,
            last_order_date=last_order.date if last_order else None,
        )
        if existing is not None:
            items = [item if i.product_id == product_id else i for i in session.items]
        else:
            items = session.items + [item]

        updated = session.model_copy(update={"items": items})
        self._store.dispatch(UpdateSession(session=updated))
        return updated

    def available_products(self, location_id: str) -> List[Product]:
        return [p for p in self._store.state.products if p.is_available_at(location_id)]

    @contextlib.contextmanager
    def submitting(self, session_id: str) -> Iterator[None]:
        if session_id in self._submitting:
            raise ValidationError("Session is already being submitted")
        self._submitting.add(session_id)
        try:
            yield
        finally:
            self._submitting.discard(session_id)

    def submit(self, session: InventorySession, email_settings: Optional[EmailSettings]) -> SubmissionResult:
        if session.is_submitted:
            raise ValidationError("Session already submitted")
        items_to_order = session.items_to_order()
        if not items_to_order:
            raise NoItemsToOrderError()
        if email_settings is None or not email_settings.is_complete:
            raise MissingNotificationConfigError()

        state = self._store.state
        submitted_at = self._clock()
        location = self._store.find(Collection.LOCATIONS, session.location_id)
        supplier_names = {s.id: s.name for s in state.suppliers}

        lines = []
        history = []
        for item in items_to_order:
            product: Optional[Product] = self._store.find(Collection.PRODUCTS, item.product_id)
            suppliers = [supplier_names[s] for s in (product.suppliers if product else []) if s in supplier_names]
            suppliers = suppliers or [UNKNOWN_SUPPLIER]
            lines.append(
                OrderLine(
                    product_name=product.name if product else UNKNOWN_PRODUCT,
                    quantity=item.current_quantity,
                    suppliers=suppliers,
                )
            )
            history.append(
                OrderHistoryItem(
                    product_id=item.product_id,
                    location_id=item.location_id,
                    order_date=submitted_at,
                    quantity_ordered=item.current_quantity,
                    session_id=session.id,
                    suppliers=list(suppliers),
                    category_ids=list(product.categories) if product else [],
                )
            )

        summary = OrderSummary(
            session_id=session.id,
            location_name=location.name if location else UNKNOWN_LOCATION,
            user_name=session.user_name,
            order_date=submitted_at,
            items=lines,
        )
        submitted = session.model_copy(update={"end_date": submitted_at, "is_submitted": True})
        return SubmissionResult(order_summary=summary, history_items=history, submitted_session=submitted)

    def commit_submission(self, result: SubmissionResult) -> InventorySession:
        """Record the history rows and mark the stored copy of the session submitted.

        The stored copy is re-read so that changes made while the email was
        out, such as a product deletion stripping its item, are kept.
        """
        session_id = result.submitted_session.id
        current = self._store.current_session
        if current is not None and current.id == session_id:
            stored = current
        else:
            stored = self._store.find(Collection.SESSIONS, session_id)
        if stored is None:
            logger.warning("Session %s was deleted while its order was being sent; nothing recorded", session_id)
            raise ValidationError(f"Session {session_id} was deleted while its order was being sent")
        if stored.is_submitted:
            raise ValidationError("Session already submitted")

        submitted = stored.model_copy(
            update={"end_date": result.submitted_session.end_date, "is_submitted": True}
        )
        self._store.dispatch(AddOrderHistory(items=result.history_items))
        self._store.dispatch(UpdateSession(session=submitted))
        logger.info("Session %s submitted with %d item(s) to order", session_id, len(result.history_items))
        return submitted
