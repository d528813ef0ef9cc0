from collections.abc import Generator

import pytest

from kwikpass.core import keys
from kwikpass.domains.analytics import EventContextBuilder, RecordingSink
from kwikpass.domains.auth import AuthSessionManager, KeyValueStore, MemoryDurableStore
from kwikpass.tests.utils.auth import FakeApiClient, MockRedisClient, RecordingTracker


@pytest.fixture(scope="function")
def mock_redis() -> Generator[MockRedisClient, None, None]:
    """Mock Redis client for the durable store"""
    mock_client = MockRedisClient()
    yield mock_client
    mock_client.clear()


@pytest.fixture(scope="function")
def durable() -> MemoryDurableStore:
    return MemoryDurableStore()


@pytest.fixture(scope="function")
def store(durable: MemoryDurableStore) -> KeyValueStore:
    return KeyValueStore(durable)


@pytest.fixture(scope="function")
def api() -> FakeApiClient:
    return FakeApiClient()


@pytest.fixture(scope="function")
def tracker() -> RecordingTracker:
    return RecordingTracker()


@pytest.fixture(scope="function")
def manager(store: KeyValueStore, api: FakeApiClient, tracker: RecordingTracker) -> AuthSessionManager:
    return AuthSessionManager(store, api, tracker=tracker)


@pytest.fixture(scope="function")
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture(scope="function")
def builder(store: KeyValueStore, sink: RecordingSink) -> EventContextBuilder:
    """Context builder with tracking enabled in sandbox"""
    store.set(keys.GK_ENVIRONMENT, "sandbox")
    store.set_bool(keys.IS_SNOWPLOW_TRACKING_ENABLED, True)
    return EventContextBuilder(store, sink)
