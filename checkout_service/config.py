"""
config.py — Environment Configuration for the Checkout Service

All settings come from environment variables (normally injected by Docker
Compose or the shell). Defaults target a local development setup with the
mock services running on their default ports.
"""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings of the checkout service.

    Attributes:
        storage_dir (str): Directory holding one JSON document per storage slot.
        payment_service_url (str): Base URL of the payment service (mock by default).
        shipping_service_url (str): Base URL of the shipping service (mock by default).
        payment_read_timeout (float): Read timeout in seconds for payment calls.
        authorize_payment (bool): Call the gateway before persisting card orders.
        log_file (str): Path of the persistent log file.
        log_level (str): Root log level name.
    """
    storage_dir: str = "./data"
    payment_service_url: str = "http://localhost:8001"
    shipping_service_url: str = "http://localhost:8002"
    payment_read_timeout: float = 8.0
    authorize_payment: bool = False
    log_file: str = "checkout_service.log"
    log_level: str = "INFO"


def get_settings() -> Settings:
    """Reads the current environment into a Settings instance."""
    return Settings(
        storage_dir=os.environ.get("STORAGE_DIR", Settings.storage_dir),
        payment_service_url=os.environ.get("PAYMENT_SERVICE_URL", Settings.payment_service_url),
        shipping_service_url=os.environ.get("SHIPPING_SERVICE_URL", Settings.shipping_service_url),
        payment_read_timeout=float(os.environ.get("PAYMENT_READ_TIMEOUT", Settings.payment_read_timeout)),
        authorize_payment=_env_bool("CHECKOUT_AUTHORIZE_PAYMENT", Settings.authorize_payment),
        log_file=os.environ.get("LOG_FILE", Settings.log_file),
        log_level=os.environ.get("LOG_LEVEL", Settings.log_level),
    )
