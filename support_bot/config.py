"""
Centralized configuration with environment variable overrides.

Store details, model settings, external service endpoints and timing
thresholds are configurable here. Handlers and adapters read from the
``settings`` singleton or receive the relevant sub-config explicitly.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from support_bot.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class StoreConfig:
    """Store identity, public URLs and invoice issuer details."""

    name: str = os.getenv("STORE_NAME", "Shameless Collective")
    assistant_name: str = os.getenv("ASSISTANT_NAME", "Santi")
    storefront_url: str = os.getenv("STOREFRONT_URL", "https://shamelesscollective.com")
    returns_portal_url: str = os.getenv(
        "RETURNS_PORTAL_URL", "https://shameless-returns-web.vercel.app"
    )
    support_mailbox: str = os.getenv("SUPPORT_MAILBOX", "hello@shamelesscollective.com")
    tax_rate: float = _safe_float("TAX_RATE", "0.21")
    company_name: str = os.getenv("COMPANY_NAME", "CORISA TEXTIL S.L.")
    company_tax_id: str = os.getenv("COMPANY_TAX_ID", "B02852895")
    company_address: str = os.getenv("COMPANY_ADDRESS", "Calle Neptuno 29")
    company_city: str = os.getenv("COMPANY_CITY", "Pozuelo de Alarcón, Madrid, 28224")
    company_phone: str = os.getenv("COMPANY_PHONE", "(+34) 608667749")


@dataclass(frozen=True)
class ModelConfig:
    """Language model settings for classification and reply generation."""

    api_key: str = os.getenv("OPENAI_API_KEY", "")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    classification_temperature: float = _safe_float("CLASSIFICATION_TEMPERATURE", "0.0")
    reply_temperature: float = _safe_float("REPLY_TEMPERATURE", "0.8")
    request_timeout_sec: float = _safe_float("LLM_TIMEOUT", "30")
    max_retries: int = _safe_int("LLM_MAX_RETRIES", "3")
    retry_base_delay_sec: float = _safe_float("LLM_RETRY_BASE_DELAY", "1.0")


@dataclass(frozen=True)
class CommerceConfig:
    """Shopify Admin API access."""

    shop_url: str = os.getenv("SHOPIFY_SHOP_URL", "")
    api_version: str = os.getenv("SHOPIFY_API_VERSION", "2024-10")
    access_token: str = os.getenv("SHOPIFY_ACCESS_TOKEN", "")
    country_code: str = os.getenv("SHOPIFY_COUNTRY_CODE", "ES")
    request_timeout_sec: float = _safe_float("SHOPIFY_TIMEOUT", "15")
    discount_percentage: float = _safe_float("DISCOUNT_PERCENTAGE", "0.20")
    discount_valid_minutes: int = _safe_int("DISCOUNT_VALID_MINUTES", "15")


@dataclass(frozen=True)
class GeocodingConfig:
    """Google Places address validation."""

    api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    endpoint: str = os.getenv(
        "GOOGLE_PLACES_ENDPOINT",
        "https://maps.googleapis.com/maps/api/place/findplacefromtext/json",
    )
    request_timeout_sec: float = _safe_float("GEOCODING_TIMEOUT", "10")


@dataclass(frozen=True)
class TelephonyConfig:
    """Outbound call bridge and carrier call polling thresholds."""

    bridge_url: str = os.getenv("OUTBOUND_CALL_URL", "http://localhost:8000")
    carrier_phone_number: str = os.getenv("CARRIER_PHONE_NUMBER", "+34608667749")
    caller_persona: str = os.getenv("CALLER_PERSONA", "Silvia")
    poll_interval_sec: float = _safe_float("CALL_POLL_INTERVAL", "5")
    soft_timeout_sec: float = _safe_float("CALL_SOFT_TIMEOUT", "30")
    hard_timeout_sec: float = _safe_float("CALL_HARD_TIMEOUT", "300")
    request_timeout_sec: float = _safe_float("CALL_BRIDGE_TIMEOUT", "10")


@dataclass(frozen=True)
class EmailConfig:
    """SendGrid transactional email settings."""

    api_key: str = os.getenv("SENDGRID_API_KEY", "")
    from_email: str = os.getenv("EMAIL_FROM", "hello@shamelesscollective.com")
    from_name: str = os.getenv("EMAIL_FROM_NAME", "Shameless Collective")


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-caller fixed-window request throttling."""

    max_requests: int = _safe_int("RATE_LIMIT_MAX_REQUESTS", "20")
    window_sec: float = _safe_float("RATE_LIMIT_WINDOW", "60")


@dataclass(frozen=True)
class ServerConfig:
    """HTTP transport settings."""

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _safe_int("PORT", "8080")
    request_timeout_sec: float = _safe_float("REQUEST_TIMEOUT", "60")
    worker_threads: int = _safe_int("WORKER_THREADS", "8")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    store: StoreConfig = field(default_factory=StoreConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    commerce: CommerceConfig = field(default_factory=CommerceConfig)
    geocoding: GeocodingConfig = field(default_factory=GeocodingConfig)
    telephony: TelephonyConfig = field(default_factory=TelephonyConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for temp_name, temp_value in [
        ("CLASSIFICATION_TEMPERATURE", config.model.classification_temperature),
        ("REPLY_TEMPERATURE", config.model.reply_temperature),
    ]:
        if not 0.0 <= temp_value <= 2.0:
            raise ValueError(f"{temp_name} must be between 0.0 and 2.0, got {temp_value}")

    if config.model.max_retries < 0:
        raise ValueError(f"LLM_MAX_RETRIES must be >= 0, got {config.model.max_retries}")
    if config.model.retry_base_delay_sec < 0:
        raise ValueError(
            f"LLM_RETRY_BASE_DELAY must be >= 0, got {config.model.retry_base_delay_sec}"
        )

    for timeout_name, timeout_value in [
        ("LLM_TIMEOUT", config.model.request_timeout_sec),
        ("SHOPIFY_TIMEOUT", config.commerce.request_timeout_sec),
        ("GEOCODING_TIMEOUT", config.geocoding.request_timeout_sec),
        ("CALL_BRIDGE_TIMEOUT", config.telephony.request_timeout_sec),
        ("CALL_POLL_INTERVAL", config.telephony.poll_interval_sec),
        ("CALL_SOFT_TIMEOUT", config.telephony.soft_timeout_sec),
        ("CALL_HARD_TIMEOUT", config.telephony.hard_timeout_sec),
        ("REQUEST_TIMEOUT", config.server.request_timeout_sec),
        ("RATE_LIMIT_WINDOW", config.rate_limit.window_sec),
    ]:
        if timeout_value <= 0:
            raise ValueError(f"{timeout_name} must be > 0, got {timeout_value}")

    if config.telephony.soft_timeout_sec > config.telephony.hard_timeout_sec:
        raise ValueError(
            "CALL_SOFT_TIMEOUT must not exceed CALL_HARD_TIMEOUT, "
            f"got {config.telephony.soft_timeout_sec} > {config.telephony.hard_timeout_sec}"
        )

    if not 0.0 <= config.store.tax_rate < 1.0:
        raise ValueError(f"TAX_RATE must be between 0.0 and 1.0, got {config.store.tax_rate}")
    if not 0.0 < config.commerce.discount_percentage <= 1.0:
        raise ValueError(
            "DISCOUNT_PERCENTAGE must be between 0.0 and 1.0, "
            f"got {config.commerce.discount_percentage}"
        )
    if config.commerce.discount_valid_minutes < 1:
        raise ValueError(
            f"DISCOUNT_VALID_MINUTES must be >= 1, got {config.commerce.discount_valid_minutes}"
        )
    if config.rate_limit.max_requests < 1:
        raise ValueError(
            f"RATE_LIMIT_MAX_REQUESTS must be >= 1, got {config.rate_limit.max_requests}"
        )
    if config.server.worker_threads < 1:
        raise ValueError(f"WORKER_THREADS must be >= 1, got {config.server.worker_threads}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.store.name)
    return config


# Singleton instance
settings = load_config()
