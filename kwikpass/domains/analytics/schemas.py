"""
Analytics domain schemas
"""
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

Scalar = Union[str, int, float, bool, None]


class ContextKind(str, Enum):
    DEVICE = "device"
    USER = "user"
    PRODUCT = "product"
    CART = "cart"
    STRUCTURED = "structured"


class EventContext(BaseModel):
    """Self-describing context: schema URI plus a flat payload"""
    kind: ContextKind
    schema_uri: str
    data: Dict[str, Scalar] = Field(default_factory=dict)

    def to_self_describing(self) -> Dict[str, Any]:
        return {"schema": self.schema_uri, "data": dict(self.data)}


class EventKind(str, Enum):
    PAGE_VIEW = "page_view"
    STRUCTURED = "structured"
    SELF_DESCRIBING = "self_describing"


class AnalyticsEvent(BaseModel):
    """
    Outbound event

    page_url/page_title apply to page views, payload to self-describing
    events and structured to structured (category/action/...) events.
    """
    kind: EventKind
    page_url: Optional[str] = None
    page_title: Optional[str] = None
    payload: Optional[EventContext] = None
    structured: Dict[str, Scalar] = Field(default_factory=dict)


class ProductFields(BaseModel):
    product_id: str
    page_url: str = ""
    variant_id: Optional[str] = None
    img_url: Optional[str] = None
    name: Optional[str] = None
    price: Optional[str] = None
    handle: Optional[str] = None


class StructuredEventProps(BaseModel):
    category: str
    action: str
    label: Optional[str] = None
    property: Optional[str] = None
    value: Optional[float] = None
