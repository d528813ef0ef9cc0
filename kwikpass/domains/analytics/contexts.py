"""
Analytics event contexts
Builds the device, user, product, cart and structured contexts attached to
outbound events and hands events to the configured sink

Analytics must never break the login flow: every builder and emit() catch
and log their own errors.
"""
import asyncio
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from kwikpass.core import keys
from kwikpass.core.config import resolve
from kwikpass.core.parsing import parse_stored_blob
from kwikpass.domains.auth.cache import KeyValueStore

from .schemas import AnalyticsEvent, ContextKind, EventContext, ProductFields, Scalar
from .sink import EventSink

logger = logging.getLogger(__name__)

SCHEMA_PATHS = {
    ContextKind.DEVICE: "user_device/jsonschema/1-0-0",
    ContextKind.USER: "user/jsonschema/1-0-0",
    ContextKind.PRODUCT: "product/jsonschema/1-1-0",
    ContextKind.CART: "cart/jsonschema/1-0-0",
    ContextKind.STRUCTURED: "structured/jsonschema/1-0-0",
}

CART_GID_PREFIX = "gid://shopify/Cart/"
STRUCTURED_INT_FIELDS = {"value", "value_1", "value_2", "value_3", "value_4", "value_5"}


def normalize_phone(phone: Optional[str]) -> str:
    """
    Reduce a phone number to its national digits

    "+91 9876543210" -> "9876543210". Other "+"-prefixed numbers longer
    than ten digits keep their last ten digits.
    """
    value = (phone or "").strip()
    international = value.startswith("+")
    value = re.sub(r"^\+91", "", value)
    digits = re.sub(r"\D", "", value)
    if international and len(digits) > 10:
        digits = digits[-10:]
    return digits


def trim_cart_id(cart_id: str) -> str:
    """gid://shopify/Cart/<id> -> <id>"""
    value = cart_id.strip()
    if value.startswith(CART_GID_PREFIX):
        value = value[len(CART_GID_PREFIX):]
    return value


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def filter_structured_values(event: Dict[str, Any]) -> Dict[str, Scalar]:
    """Coerce value fields to int and everything else to str"""
    filtered: Dict[str, Scalar] = {}
    for key, value in event.items():
        if value is None:
            continue
        if key in STRUCTURED_INT_FIELDS:
            filtered[key] = _as_int(value)
        else:
            filtered[key] = str(value)
    return filtered


class EventContextBuilder:
    """
    Assembles enrichment contexts from the key-value store and emits events

    Contexts are built even when tracking is disabled so they can be
    inspected; only the sink call is skipped.
    """

    def __init__(
        self,
        store: KeyValueStore,
        sink: Optional[EventSink] = None,
        platform: str = "android"
    ):
        self.store = store
        self.sink = sink
        self.platform = platform
        self._pending: Set[asyncio.Task] = set()

    def schema_for(self, kind: ContextKind) -> str:
        environment = self.store.get(keys.GK_ENVIRONMENT) or "sandbox"
        vendor = resolve(environment).schema_vendor
        return f"iglu:{vendor}/{SCHEMA_PATHS[kind]}"

    def _context(self, kind: ContextKind, data: Dict[str, Scalar]) -> EventContext:
        return EventContext(kind=kind, schema_uri=self.schema_for(kind), data=data)

    def tracking_enabled(self) -> bool:
        return self.store.get_bool(keys.IS_SNOWPLOW_TRACKING_ENABLED)

    # Context builders

    def build_device_context(self) -> Optional[EventContext]:
        try:
            info = parse_stored_blob(self.store.get(keys.GK_DEVICE_INFO))
            ad_id = str(info.get(keys.GK_GOOGLE_AD_ID) or "")
            return self._context(ContextKind.DEVICE, {
                "device_id": str(info.get(keys.GK_DEVICE_UNIQUE_ID) or ""),
                "android_ad_id": ad_id if self.platform == "android" else "",
                "ios_ad_id": ad_id if self.platform == "ios" else "",
                "fcm_token": self.store.get(keys.GK_NOTIFICATION_TOKEN) or "",
                "app_domain": str(info.get(keys.GK_APP_DOMAIN) or ""),
                "device_type": self.platform,
                "app_version": str(info.get(keys.GK_APP_VERSION) or ""),
            })
        except Exception:
            logger.exception("Could not build device context")
            return None

    def build_user_context(self) -> Optional[EventContext]:
        """User context, or None when neither phone nor email is known"""
        try:
            user = parse_stored_blob(self.store.get(keys.GK_VERIFIED_USER))
            phone = normalize_phone(str(user.get("phone") or ""))
            email = str(user.get("email") or "").strip()
            if not phone and not email:
                return None
            return self._context(ContextKind.USER, {"phone": phone, "email": email})
        except Exception:
            logger.exception("Could not build user context")
            return None

    def build_product_context(
        self,
        fields: Union[ProductFields, Dict[str, Any]]
    ) -> Optional[EventContext]:
        try:
            if not isinstance(fields, ProductFields):
                fields = ProductFields.model_validate(fields)
            return self._context(ContextKind.PRODUCT, {
                "product_id": fields.product_id,
                "img_url": fields.img_url or "",
                "variant_id": fields.variant_id or "",
                "product_name": fields.name or "",
                "product_price": fields.price or "",
                "product_handle": fields.handle or "",
                "type": "product",
            })
        except Exception:
            logger.exception("Could not build product context")
            return None

    def build_cart_context(self, cart_id: str) -> Optional[EventContext]:
        try:
            trimmed = trim_cart_id(cart_id)
            return self._context(ContextKind.CART, {"id": trimmed, "token": trimmed})
        except Exception:
            logger.exception("Could not build cart context")
            return None

    def build_structured_context(self, event: Dict[str, Any]) -> Optional[EventContext]:
        try:
            return self._context(ContextKind.STRUCTURED, filter_structured_values(event))
        except Exception:
            logger.exception("Could not build structured context")
            return None

    def enrichment_contexts(self) -> List[EventContext]:
        """User (when known) and device contexts"""
        return [c for c in (self.build_user_context(), self.build_device_context()) if c]

    # Emission

    async def emit(
        self,
        event: AnalyticsEvent,
        contexts: Iterable[Optional[EventContext]] = ()
    ) -> bool:
        """
        Send event with its contexts to the sink

        Returns:
            True if the sink accepted the event
        """
        try:
            attached = [c for c in contexts if c is not None]
            if not self.tracking_enabled():
                logger.debug("Tracking disabled, dropping %s event", event.kind.value)
                return False
            if self.sink is None:
                logger.debug("No analytics sink configured")
                return False
            await self.sink.track(event, attached)
            return True
        except Exception:
            logger.exception("Analytics emit failed for %s event", event.kind.value)
            return False

    def dispatch(
        self,
        event: AnalyticsEvent,
        contexts: Iterable[Optional[EventContext]] = ()
    ) -> Optional[asyncio.Task]:
        """Schedule emit() without waiting for it"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, %s event not dispatched", event.kind.value)
            return None

        task = loop.create_task(self.emit(event, list(contexts)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for dispatched events to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
