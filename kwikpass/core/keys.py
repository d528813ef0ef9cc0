"""Storage keys and header names shared across the SDK"""

# Authentication & tokens
GK_TOKEN = "gk-token"
GK_CORE_TOKEN = "gk-coreToken"
GK_ACCESS_TOKEN = "gk-access-token"
CHECKOUT_ACCESS_TOKEN = "checkout-access-token"
GK_AUTH_TOKEN = "gk-auth-token"
GK_KP_TOKEN = "gk-kp-token"

# Environment & merchant
GK_ENVIRONMENT = "gk-environment"
GK_VERIFIED_USER = "gk-verified-user"
GK_MERCHANT_ID = "gk-merchant-id"
GK_MERCHANT_URL = "gk-merchant-url"
GK_MERCHANT_TYPE = "gk-merchant-type"
GK_MERCHANT_CONFIG = "gk-merchant-config"

# Request ids
GK_REQUEST_ID = "gk-request-id"
KP_REQUEST_ID = "kp-request-id"

# User
GK_USER_PHONE = "gk-user-phone"

# Tracking & analytics
IS_SNOWPLOW_TRACKING_ENABLED = "is-snowplow-tracking-enabled"
GK_SNOWPLOW_USER_ID = "gkSnowplowUserId"
GK_SNOWPLOW_USER_ID_TIMESTAMP = "gkSnowplowUserIdTimestamp"
GK_GOOGLE_ANALYTICS_ID = "gk-google-analytics-id"
GK_GOOGLE_AD_ID = "gk-google-ad-id"

# Device
GK_DEVICE_MODEL = "gk-device-model"
GK_APP_DOMAIN = "gk-app-domain"
GK_OPERATING_SYSTEM = "gk-operating-system"
GK_DEVICE_ID = "gk-device-id"
GK_DEVICE_UNIQUE_ID = "gk-device-unique-id"
GK_SCREEN_RESOLUTION = "gk-screen-resolution"
GK_CARRIER_INFO = "gk-carrier-info"
GK_BATTERY_STATUS = "gk-battery-status"
GK_LANGUAGE = "gk-language"
GK_TIME_ZONE = "gk-time-zone"
GK_DEVICE_INFO = "gk-device-info"

# App
GK_APP_VERSION = "gk-app-version"
GK_APP_VERSION_CODE = "gk-app-version-code"

# Notifications
GK_NOTIFICATION_TOKEN = "gk-notification-token"
GK_NOTIFICATION_ENABLED = "gk-notification-enabled"

# Headers sourced from the store on every API call
SESSION_HEADER_KEYS = (
    GK_ACCESS_TOKEN,
    CHECKOUT_ACCESS_TOKEN,
    GK_REQUEST_ID,
    KP_REQUEST_ID,
)

# Keys dropped on logout
SESSION_TOKEN_KEYS = (
    GK_ACCESS_TOKEN,
    CHECKOUT_ACCESS_TOKEN,
    GK_KP_TOKEN,
    GK_AUTH_TOKEN,
    GK_REQUEST_ID,
    KP_REQUEST_ID,
    GK_VERIFIED_USER,
    GK_USER_PHONE,
)
