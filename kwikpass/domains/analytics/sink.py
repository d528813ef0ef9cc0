"""
Analytics sinks
Where emitted events go: a Snowplow collector over HTTP, or an in-memory
recorder for hosts and tests that inspect events themselves
"""
import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx

from .schemas import AnalyticsEvent, EventContext, EventKind

logger = logging.getLogger(__name__)

TP2_PATH = "com.snowplowanalytics.snowplow/tp2"
PAYLOAD_DATA_SCHEMA = "iglu:com.snowplowanalytics.snowplow/payload_data/jsonschema/1-0-4"
CONTEXTS_SCHEMA = "iglu:com.snowplowanalytics.snowplow/contexts/jsonschema/1-0-1"
UNSTRUCT_EVENT_SCHEMA = "iglu:com.snowplowanalytics.snowplow/unstruct_event/jsonschema/1-0-0"
TRACKER_VERSION = "py-kwikpass-1.0"

_EVENT_CODES = {
    EventKind.PAGE_VIEW: "pv",
    EventKind.STRUCTURED: "se",
    EventKind.SELF_DESCRIBING: "ue",
}

_STRUCTURED_FIELDS = {
    "category": "se_ca",
    "action": "se_ac",
    "label": "se_la",
    "property": "se_pr",
    "value": "se_va",
}


class EventSink(Protocol):
    async def track(self, event: AnalyticsEvent, contexts: Sequence[EventContext]) -> None: ...

    async def close(self) -> None: ...


class RecordingSink:
    """Keeps every event in memory"""

    def __init__(self):
        self.events: List[Tuple[AnalyticsEvent, List[EventContext]]] = []

    async def track(self, event: AnalyticsEvent, contexts: Sequence[EventContext]) -> None:
        self.events.append((event, list(contexts)))

    async def close(self) -> None:
        pass

    def of_kind(self, kind: EventKind) -> List[Tuple[AnalyticsEvent, List[EventContext]]]:
        return [entry for entry in self.events if entry[0].kind == kind]


class SnowplowCollectorSink:
    """
    Posts events to a Snowplow collector using the tp2 JSON protocol

    Non-2xx responses raise httpx.HTTPStatusError; EventContextBuilder.emit
    catches and logs it.
    """

    def __init__(
        self,
        collector_url: str,
        app_id: str,
        platform: str = "mob",
        user_id_provider=None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.endpoint = f"{collector_url.rstrip('/')}/{TP2_PATH}"
        self.app_id = app_id
        self.platform = platform
        self.user_id_provider = user_id_provider
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def build_payload(
        self,
        event: AnalyticsEvent,
        contexts: Sequence[EventContext],
        now: Optional[float] = None
    ) -> Dict[str, Any]:
        timestamp = str(int((now if now is not None else time.time()) * 1000))
        data: Dict[str, Any] = {
            "e": _EVENT_CODES[event.kind],
            "eid": str(uuid.uuid4()),
            "aid": self.app_id,
            "p": self.platform,
            "tv": TRACKER_VERSION,
            "dtm": timestamp,
            "stm": timestamp,
        }

        user_id = self.user_id_provider() if self.user_id_provider else None
        if user_id:
            data["uid"] = user_id

        if event.kind == EventKind.PAGE_VIEW:
            data["url"] = event.page_url or ""
            data["page"] = event.page_title or ""
        elif event.kind == EventKind.STRUCTURED:
            for name, field in _STRUCTURED_FIELDS.items():
                value = event.structured.get(name)
                if value is not None:
                    data[field] = str(value)
        elif event.payload is not None:
            data["ue_pr"] = json.dumps({
                "schema": UNSTRUCT_EVENT_SCHEMA,
                "data": event.payload.to_self_describing(),
            })

        if contexts:
            data["co"] = json.dumps({
                "schema": CONTEXTS_SCHEMA,
                "data": [context.to_self_describing() for context in contexts],
            })

        return {"schema": PAYLOAD_DATA_SCHEMA, "data": [data]}

    async def track(self, event: AnalyticsEvent, contexts: Sequence[EventContext]) -> None:
        payload = self.build_payload(event, contexts)
        response = await self._client.post(self.endpoint, json=payload)
        response.raise_for_status()
        logger.debug("Sent %s event to collector (%s)", event.kind.value, response.status_code)

    async def close(self) -> None:
        await self._client.aclose()
