"""
Tests for the session object wiring everything together
"""
import asyncio

from kwikpass.core import keys
from kwikpass.core.config import Environment, Settings
from kwikpass.device import HostDeviceInfoProvider, StaticDeviceInfoProvider
from kwikpass.domains.analytics import EventKind, RecordingSink, SnowplowCollectorSink
from kwikpass.domains.auth import HttpApiClient, MemoryDurableStore
from kwikpass.session import KwikPassSession
from kwikpass.tests.utils.auth import FakeApiClient

DEVICE_INFO = {
    keys.GK_DEVICE_UNIQUE_ID: "device-1",
    keys.GK_APP_DOMAIN: "com.example.shop",
    keys.GK_APP_VERSION: "2.1.0",
}


def make_session(**overrides) -> KwikPassSession:
    settings = Settings(_env_file=None, MERCHANT_ID="m-1", ENVIRONMENT="sandbox", **overrides)
    return KwikPassSession(
        settings=settings,
        durable=MemoryDurableStore(),
        api_client=FakeApiClient(),
        sink=RecordingSink(),
        device_provider=StaticDeviceInfoProvider(DEVICE_INFO)
    )


class TestKwikPassSession:
    """Test session lifecycle"""

    def test_initialize_and_record(self):
        session = make_session()

        result = asyncio.run(session.initialize())
        record = session.record()

        assert result.ok
        assert record.merchant_id == "m-1"
        assert record.environment == Environment.SANDBOX
        assert record.snowplow_enabled is True
        assert record.request_id == "req-1"
        assert record.access_token is None
        assert record.device_info[keys.GK_DEVICE_UNIQUE_ID] == "device-1"

    def test_login_emits_analytics(self):
        """Test that a verified login reaches the sink with user and device contexts"""
        session = make_session()

        async def run():
            async with session:
                await session.initialize()
                result = await session.auth.verify_otp("+91 9876543210", "1234")
                await session.contexts.drain()
                return result

        result = asyncio.run(run())

        assert result.ok
        event, contexts = session.sink.of_kind(EventKind.SELF_DESCRIBING)[0]
        assert event.payload.data["label"] == "otp_verified"
        user = next(c for c in contexts if c.kind.value == "user")
        assert user.data["phone"] == "9876543210"
        assert session.record().access_token == "access-1"

    def test_tracking_disabled_by_settings(self):
        session = make_session(SNOWPLOW_TRACKING_ENABLED=False)

        async def run():
            await session.initialize()
            await session.auth.verify_otp("9876543210", "1234")
            await session.contexts.drain()

        asyncio.run(run())

        assert session.sink.events == []

    def test_close_releases_resources(self):
        session = make_session()
        machine = session.new_verification(tick_interval=10)

        async def run():
            machine.start_resend_timer()
            await asyncio.sleep(0)
            await session.close()

        asyncio.run(run())

        assert session.api.closed is True
        assert machine.state.is_resend_disabled is False

    def test_verification_uses_settings(self):
        session = make_session(OTP_MAX_ATTEMPTS=2, RESEND_COOLDOWN_SECONDS=10)

        machine = session.new_verification()

        assert machine.state.max_attempts == 2
        assert machine.state.resend_seconds == 10

    def test_default_collaborators(self):
        settings = Settings(_env_file=None, MERCHANT_ID="m-1", ENVIRONMENT="production")
        session = KwikPassSession(settings=settings)

        assert isinstance(session.api, HttpApiClient)
        assert isinstance(session.sink, SnowplowCollectorSink)
        assert session.sink.endpoint == "https://sp-kf-collector-prod.gokwik.io/com.snowplowanalytics.snowplow/tp2"
        assert isinstance(session.store.durable, MemoryDurableStore)
        assert isinstance(session.device_provider, HostDeviceInfoProvider)

        asyncio.run(session.close())


class TestDeviceInfo:
    """Test device info providers"""

    def test_static_provider(self):
        provider = StaticDeviceInfoProvider(DEVICE_INFO, **{keys.GK_GOOGLE_AD_ID: "ad-1"})

        info = provider.collect()

        assert info[keys.GK_DEVICE_UNIQUE_ID] == "device-1"
        assert info[keys.GK_GOOGLE_AD_ID] == "ad-1"

    def test_host_provider_is_stable(self):
        provider = HostDeviceInfoProvider(app_domain="com.example.shop", app_version="2.1.0")

        first = provider.collect()

        assert first[keys.GK_DEVICE_UNIQUE_ID] == provider.collect()[keys.GK_DEVICE_UNIQUE_ID]
        assert first[keys.GK_APP_VERSION] == "2.1.0"
        assert HostDeviceInfoProvider(device_id="fixed").collect()[keys.GK_DEVICE_UNIQUE_ID] == "fixed"
