"""
Storefront tracking helpers
Page views for product, cart, collection and other screens plus custom
structured events, each enriched with user and device contexts
"""
import logging
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from kwikpass.core import keys

from .contexts import EventContextBuilder
from .schemas import (
    AnalyticsEvent,
    EventKind,
    ProductFields,
    StructuredEventProps,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _coerce(model: Type[ModelT], value: Any) -> Optional[ModelT]:
    """Validate tracking input; malformed input is logged and dropped"""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as e:
        logger.warning("Dropping %s event with invalid fields: %s", model.__name__, e)
        return None


class AnalyticsTracker:
    """High-level tracking API over EventContextBuilder"""

    def __init__(self, builder: EventContextBuilder):
        self.builder = builder
        self.store = builder.store

    def _merchant_url(self) -> str:
        return self.store.get(keys.GK_MERCHANT_URL) or ""

    def _page_view(self, url: str, title: str) -> AnalyticsEvent:
        return AnalyticsEvent(kind=EventKind.PAGE_VIEW, page_url=url, page_title=title)

    async def track_product_event(self, product: Union[ProductFields, Dict[str, Any]]) -> bool:
        product = _coerce(ProductFields, product)
        if product is None:
            return False
        contexts = [self.builder.build_product_context(product), *self.builder.enrichment_contexts()]
        event = self._page_view(product.page_url, product.name or "")
        return await self.builder.emit(event, contexts)

    async def track_cart_event(self, cart_id: str) -> bool:
        merchant = self._merchant_url()
        contexts = [self.builder.build_cart_context(cart_id), *self.builder.enrichment_contexts()]
        event = self._page_view(f"https://{merchant}/cart" if merchant else "", "Cart")
        return await self.builder.emit(event, contexts)

    async def track_collections_event(
        self,
        collection_id: str,
        name: str,
        handle: Optional[str] = None,
        cart_id: Optional[str] = None
    ) -> bool:
        merchant = self._merchant_url()
        url = f"https://{merchant}/collections/{handle}" if merchant and handle else ""
        contexts = []
        if cart_id:
            contexts.append(self.builder.build_cart_context(cart_id))
        contexts.extend(self.builder.enrichment_contexts())
        logger.debug("Collection page view for %s", collection_id)
        return await self.builder.emit(self._page_view(url, name), contexts)

    async def track_other_event(self, cart_id: Optional[str] = None) -> bool:
        merchant = self._merchant_url()
        contexts = []
        if cart_id:
            contexts.append(self.builder.build_cart_context(cart_id))
        contexts.extend(self.builder.enrichment_contexts())
        event = self._page_view(f"https://{merchant}/cart" if merchant else "", "Other")
        return await self.builder.emit(event, contexts)

    async def track_structured_event(
        self,
        props: Union[StructuredEventProps, Dict[str, Any]]
    ) -> bool:
        """Classic category/action/label/property/value event"""
        props = _coerce(StructuredEventProps, props)
        if props is None:
            return False
        event = AnalyticsEvent(kind=EventKind.STRUCTURED, structured=props.model_dump(exclude_none=True))
        return await self.builder.emit(event, self.builder.enrichment_contexts())

    def _custom_event(self, event: Dict[str, Any]) -> Optional[AnalyticsEvent]:
        payload = self.builder.build_structured_context(event)
        if payload is None:
            return None
        return AnalyticsEvent(kind=EventKind.SELF_DESCRIBING, payload=payload)

    async def send_custom_event(self, event: Dict[str, Any]) -> bool:
        """Self-describing event against the structured schema"""
        outbound = self._custom_event(event)
        if outbound is None:
            return False
        return await self.builder.emit(outbound, self.builder.enrichment_contexts())

    def dispatch_custom_event(self, event: Dict[str, Any]) -> None:
        """Fire-and-forget variant of send_custom_event"""
        outbound = self._custom_event(event)
        if outbound is None:
            return
        self.builder.dispatch(outbound, self.builder.enrichment_contexts())
