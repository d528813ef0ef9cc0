"""
Device information providers
Supply the device details stored under gk-device-info and read back by the
device analytics context
"""
import locale
import platform
import time
import uuid
from typing import Dict, Optional, Protocol

from kwikpass.core import keys


class DeviceInfoProvider(Protocol):
    def collect(self) -> Dict[str, str]: ...


class StaticDeviceInfoProvider:
    """Fixed values supplied by the host app"""

    def __init__(self, values: Optional[Dict[str, str]] = None, **extra: str):
        self.values = {**(values or {}), **extra}

    def collect(self) -> Dict[str, str]:
        return dict(self.values)


class HostDeviceInfoProvider:
    """
    Describes the machine the SDK is running on

    The unique id is derived from the host name so it stays stable across
    runs unless device_id is given.
    """

    def __init__(
        self,
        app_domain: str = "",
        app_version: str = "Unknown",
        device_id: Optional[str] = None,
        ad_id: str = ""
    ):
        self.app_domain = app_domain
        self.app_version = app_version
        self.device_id = device_id
        self.ad_id = ad_id

    def collect(self) -> Dict[str, str]:
        node = platform.node() or "localhost"
        language = locale.getlocale()[0] or ""
        return {
            keys.GK_DEVICE_UNIQUE_ID: self.device_id or uuid.uuid5(uuid.NAMESPACE_DNS, node).hex,
            keys.GK_DEVICE_MODEL: platform.machine(),
            keys.GK_OPERATING_SYSTEM: f"{platform.system()} {platform.release()}".strip(),
            keys.GK_LANGUAGE: language,
            keys.GK_TIME_ZONE: time.strftime("%Z"),
            keys.GK_APP_DOMAIN: self.app_domain,
            keys.GK_APP_VERSION: self.app_version,
            keys.GK_GOOGLE_AD_ID: self.ad_id,
        }
