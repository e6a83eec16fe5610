"""Logfire configuration and setup for the voicebatch core.

This module handles the initialization of Pydantic Logfire so the spans
opened by ``traced`` are exported.
"""

from typing import Any, Dict, Optional

import logfire
import structlog

from voicebatch.infrastructure.config import Settings, get_settings

logger = structlog.get_logger(__name__)


def configure_logfire(
    settings: Optional[Settings] = None,
    additional_config: Optional[Dict[str, Any]] = None,
) -> bool:
    """Configure and initialize Logfire with application settings.

    Args:
        settings: Settings to read; defaults to the cached settings
        additional_config: Additional configuration to merge with defaults

    Returns:
        True when Logfire was configured
    """
    settings = settings or get_settings()

    if not settings.logfire.enabled:
        logger.info("Logfire is disabled in configuration")
        return False

    config: Dict[str, Any] = {
        "service_name": settings.logfire.service_name,
        "service_version": settings.logfire_version,
        "environment": settings.logfire_env,
        "console": False if not settings.logfire.console_enabled else None,
        "send_to_logfire": "if-token-present",
    }

    if settings.logfire.api_key:
        config["token"] = settings.logfire.api_key.get_secret_value()

    if additional_config:
        config.update(additional_config)

    try:
        logfire.configure(**config)
    except Exception as e:
        logger.error("Failed to configure Logfire", error=str(e))
        if settings.is_production:
            raise
        logger.warning("Continuing without Logfire outside production")
        return False

    if settings.logfire.sql_enabled:
        try:
            logfire.instrument_sqlalchemy()
        except Exception as e:
            logger.warning("Failed to instrument SQLAlchemy", error=str(e))

    logfire.info(
        "voicebatch core started",
        environment=settings.app.environment,
        version=settings.app.version,
    )
    logger.info("Logfire configured", service_name=settings.logfire.service_name)
    return True
