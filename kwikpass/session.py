"""
KwikPass session
Wires the store, API client, analytics and verification machines for one
merchant session and owns their lifecycle
"""
import json
import logging
from typing import List, Optional

from kwikpass.core import keys
from kwikpass.core.audit import configure_audit_file
from kwikpass.core.config import Settings, resolve
from kwikpass.core.parsing import parse_stored_blob
from kwikpass.core.verification_code import VerificationStateMachine
from kwikpass.device import DeviceInfoProvider, HostDeviceInfoProvider
from kwikpass.domains.analytics import (
    AnalyticsTracker,
    EventContextBuilder,
    EventSink,
    SnowplowCollectorSink,
)
from kwikpass.domains.auth import (
    AuthResult,
    AuthSessionManager,
    DurableStore,
    HttpApiClient,
    KeyValueStore,
    KwikPassApiClient,
    MemoryDurableStore,
    RedisDurableStore,
    SessionRecord,
    TokenRepository,
)

logger = logging.getLogger(__name__)


class KwikPassSession:
    """
    One merchant session

    Construct it, await initialize(), pass it (or its auth/tracker members)
    to callers, and await close() when done. Also usable as an async
    context manager.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        durable: Optional[DurableStore] = None,
        api_client: Optional[KwikPassApiClient] = None,
        sink: Optional[EventSink] = None,
        device_provider: Optional[DeviceInfoProvider] = None
    ):
        self.settings = settings or Settings()
        config = self.settings.environment_config

        if durable is None:
            if self.settings.REDIS_URL:
                durable = RedisDurableStore.from_url(
                    self.settings.REDIS_URL,
                    namespace=self.settings.STORAGE_NAMESPACE
                )
            else:
                durable = MemoryDurableStore()
        self.store = KeyValueStore(durable, max_entries=self.settings.MEMORY_CACHE_SIZE)
        self.tokens = TokenRepository(self.store)

        self.api = api_client or HttpApiClient(
            base_url=config.base_url,
            merchant_id=self.settings.MERCHANT_ID,
            headers_provider=self.tokens.session_headers,
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            app_platform=self.settings.APP_PLATFORM,
            app_version=self.settings.APP_VERSION
        )

        if sink is None and self.settings.SNOWPLOW_TRACKING_ENABLED:
            sink = SnowplowCollectorSink(
                config.collector_url,
                app_id=self.settings.MERCHANT_ID or "kwikpass",
                user_id_provider=self.store.get_snowplow_user_id,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS
            )
        self.sink = sink
        self.contexts = EventContextBuilder(self.store, sink, platform=self.settings.APP_PLATFORM)
        self.tracker = AnalyticsTracker(self.contexts)
        self.auth = AuthSessionManager(self.store, self.api, tracker=self.tracker)

        self.device_provider = device_provider or HostDeviceInfoProvider(
            app_version=self.settings.APP_VERSION
        )
        self._machines: List[VerificationStateMachine] = []

        configure_audit_file(self.settings.AUDIT_LOG_FILE)

    async def __aenter__(self) -> "KwikPassSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def initialize(self) -> AuthResult:
        """Warm the store, record device info and run the auth initialization"""
        loaded = self.store.warm()
        logger.debug("Warmed %d stored entries", loaded)

        try:
            device_info = self.device_provider.collect()
        except Exception:
            logger.exception("Device info provider failed")
            device_info = {}
        self.store.set(keys.GK_DEVICE_INFO, json.dumps(device_info))

        return await self.auth.initialize(
            self.settings.MERCHANT_ID,
            self.settings.environment.value,
            self.settings.SNOWPLOW_TRACKING_ENABLED
        )

    def record(self) -> SessionRecord:
        """Current session state as held in the store"""
        environment = self.store.get(keys.GK_ENVIRONMENT) or self.settings.ENVIRONMENT
        device_info = parse_stored_blob(self.store.get(keys.GK_DEVICE_INFO))
        return SessionRecord(
            merchant_id=self.store.get(keys.GK_MERCHANT_ID) or self.settings.MERCHANT_ID,
            environment=resolve(environment).environment,
            snowplow_enabled=self.store.get_bool(keys.IS_SNOWPLOW_TRACKING_ENABLED),
            access_token=self.store.get(keys.GK_ACCESS_TOKEN),
            checkout_access_token=self.store.get(keys.CHECKOUT_ACCESS_TOKEN),
            request_id=self.store.get(keys.GK_REQUEST_ID),
            device_info={k: "" if v is None else str(v) for k, v in device_info.items()}
        )

    def new_verification(self, tick_interval: float = 1.0) -> VerificationStateMachine:
        """State machine for one OTP screen, closed with the session"""
        machine = VerificationStateMachine(
            max_attempts=self.settings.OTP_MAX_ATTEMPTS,
            resend_seconds=self.settings.RESEND_COOLDOWN_SECONDS,
            tick_interval=tick_interval
        )
        self._machines.append(machine)
        return machine

    async def close(self) -> None:
        for machine in self._machines:
            machine.close()
        self._machines.clear()
        await self.contexts.drain()
        await self.api.close()
        if self.sink is not None:
            await self.sink.close()
