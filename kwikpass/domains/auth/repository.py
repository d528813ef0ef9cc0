"""
Authentication domain repositories
Typed access to the verified user, tokens and merchant state kept in the
key-value store
"""
import json
import logging
from typing import Dict, Optional

from kwikpass.core import keys
from kwikpass.core.parsing import parse_stored_blob

from .cache import KeyValueStore
from .schemas import MerchantConfig, MerchantType, VerifiedUser

logger = logging.getLogger(__name__)


class VerifiedUserRepository:
    """Reads, merges and clears the stored VerifiedUser record"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self) -> Optional[VerifiedUser]:
        blob = self.store.get(keys.GK_VERIFIED_USER)
        data = parse_stored_blob(blob)
        if not data:
            return None
        try:
            user = VerifiedUser.model_validate(data)
        except ValueError as e:
            logger.warning("Discarding unreadable verified user record: %s", e)
            return None
        return None if user.is_empty else user

    def merge(self, update) -> VerifiedUser:
        """
        Merge update into the stored record and persist the result

        Args:
            update: VerifiedUser or dict with the newly known fields

        Returns:
            The merged record
        """
        current = self.get() or VerifiedUser()
        merged = current.merge(update)
        self.store.set(keys.GK_VERIFIED_USER, json.dumps(merged.to_wire()))
        return merged

    def clear(self) -> None:
        self.store.remove(keys.GK_VERIFIED_USER)


class TokenRepository:
    """Session tokens, request ids and merchant state"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def session_headers(self) -> Dict[str, str]:
        """Headers sourced from the store for every API call"""
        headers = {}
        merchant_id = self.store.get(keys.GK_MERCHANT_ID)
        if merchant_id:
            headers[keys.GK_MERCHANT_ID] = merchant_id
        for key in keys.SESSION_HEADER_KEYS:
            value = self.store.get(key)
            if value:
                headers[key] = value
        auth_token = self.store.get(keys.GK_AUTH_TOKEN)
        if auth_token:
            headers["Authorization"] = auth_token
        return headers

    def store_browser_auth(self, request_id: str, token: str) -> None:
        self.store.set(keys.GK_REQUEST_ID, request_id)
        self.store.set(keys.KP_REQUEST_ID, request_id)
        self.store.set(keys.GK_AUTH_TOKEN, token)

    def store_tokens(
        self,
        access_token: Optional[str] = None,
        checkout_access_token: Optional[str] = None,
        kp_token: Optional[str] = None
    ) -> None:
        if access_token:
            self.store.set(keys.GK_ACCESS_TOKEN, access_token)
        if checkout_access_token:
            self.store.set(keys.CHECKOUT_ACCESS_TOKEN, checkout_access_token)
        if kp_token:
            self.store.set(keys.GK_KP_TOKEN, kp_token)

    def store_merchant_config(self, config: MerchantConfig) -> None:
        if config.platform:
            self.store.set(keys.GK_MERCHANT_TYPE, config.platform.lower())
        if config.host:
            self.store.set(keys.GK_MERCHANT_URL, host_name(config.host))
        self.store.set(keys.GK_MERCHANT_CONFIG, json.dumps(config.to_wire()))

    def merchant_type(self) -> MerchantType:
        return MerchantType.from_name(self.store.get(keys.GK_MERCHANT_TYPE))

    def notifications_enabled(self) -> bool:
        return self.store.get_bool(keys.GK_NOTIFICATION_ENABLED)

    def clear_session(self) -> None:
        for key in keys.SESSION_TOKEN_KEYS:
            self.store.remove(key)


def host_name(url: str) -> str:
    """Strip scheme, "www." and path from a URL"""
    value = url.strip()
    for prefix in ("https://", "http://"):
        if value.lower().startswith(prefix):
            value = value[len(prefix):]
            break
    if value.lower().startswith("www."):
        value = value[4:]
    return value.split("/", 1)[0]
