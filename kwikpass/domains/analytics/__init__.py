"""
Analytics domain
Event contexts, sinks and storefront tracking helpers
"""
from .contexts import EventContextBuilder, filter_structured_values, normalize_phone
from .schemas import (
    AnalyticsEvent,
    ContextKind,
    EventContext,
    EventKind,
    ProductFields,
    StructuredEventProps,
)
from .sink import EventSink, RecordingSink, SnowplowCollectorSink
from .tracker import AnalyticsTracker

__all__ = [
    # Schemas
    "AnalyticsEvent",
    "ContextKind",
    "EventContext",
    "EventKind",
    "ProductFields",
    "StructuredEventProps",
    # Contexts
    "EventContextBuilder",
    "filter_structured_values",
    "normalize_phone",
    # Sinks
    "EventSink",
    "RecordingSink",
    "SnowplowCollectorSink",
    # Tracker
    "AnalyticsTracker",
]
