import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./subscriptions.db")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    API_RELOAD = bool(data.get("API_RELOAD", False))
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # Payment provider (Paystack)
    PAYSTACK_SECRET_KEY = data.get("PAYSTACK_SECRET_KEY", "")
    PAYSTACK_BASE_URL = data.get("PAYSTACK_BASE_URL", "https://api.paystack.co")
    PROVIDER_TIMEOUT_SECONDS = float(data.get("PROVIDER_TIMEOUT_SECONDS", 30.0))
    PROVIDER_PAGE_SIZE = data.get("PROVIDER_PAGE_SIZE", 50)

    # Grace period enforcement
    GRACE_PERIOD_DAYS = data.get("GRACE_PERIOD_DAYS", 7)
    GRACE_WARNING_DAYS = data.get("GRACE_WARNING_DAYS", [3, 1])
    GRACE_AUTO_CANCEL = bool(data.get("GRACE_AUTO_CANCEL", True))
    GRACE_SWEEP_INTERVAL_SECONDS = data.get("GRACE_SWEEP_INTERVAL_SECONDS", 3600)  # Hourly
    NOTIFICATION_WEBHOOK = data.get("NOTIFICATION_WEBHOOK", None)

    # Payment reconciliation
    RECONCILE_RECENT_SUCCESS_DAYS = data.get("RECONCILE_RECENT_SUCCESS_DAYS", 7)
    RECONCILE_PENDING_WINDOW_DAYS = data.get("RECONCILE_PENDING_WINDOW_DAYS", 30)
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILE_INCOMPLETE_AFTER_HOURS = data.get("RECONCILE_INCOMPLETE_AFTER_HOURS", 1)
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 900)
