"""Logging and observability configuration using Pydantic Logfire.

This module provides standardized logging utilities and configuration.
All modules should use Python's standard logging library (logging.getLogger(__name__)),
and Logfire will automatically capture and enrich these logs.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

User-scoped events:
    log_with_user_context(logger, "info", "behavior_logged", user_id="u1", pet_id="p1")
"""

import logging

import logfire

from pet_of_the_day.core.config import settings


def configure_logfire() -> None:
    """Configure Pydantic Logfire with token from environment.

    Nothing is sent unless a token is configured, so embedding applications and
    tests can call this safely.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="pet-of-the-day",
        service_version="0.1.0",
        environment=settings.service_environment,
        send_to_logfire="if-token-present",
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def span(name: str) -> logfire.LogfireSpan:
    """Create a custom span for service layer functions.

    Usage:
        with span("behavior_log_service.record_behavior"):
            # Your service logic here
            pass
    """
    return logfire.span(name)


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Log an event on behalf of a user, with the user id in the structured context.

    Usage:
        log_with_user_context(logger, "info", "behavior_logged", user_id="u1", pet_id="p1")
    """
    context = {"user_id": user_id, **extra} if user_id else extra
    getattr(logger, level.lower())(message, extra=context)
