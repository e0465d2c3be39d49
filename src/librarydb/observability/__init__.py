"""Logfire observability for the LibraryDB circulation server."""

import logging

import logfire

from .. import __version__
from .config import ObservabilityConfig
from .decorators import trace_resource, trace_tool

logger = logging.getLogger(__name__)


def initialize_observability(config: ObservabilityConfig | None = None) -> ObservabilityConfig:
    """Configure Logfire once at startup and return the settings used."""
    config = config or ObservabilityConfig()

    if not config.enabled:
        logger.debug("Observability disabled via configuration")
        return config

    logfire.configure(
        token=config.token,
        service_name=config.service_name,
        service_version=__version__,
        environment=config.environment,
        send_to_logfire=config.send_to_logfire,
        console=None if config.console else False,
    )
    logger.info(
        "Logfire configured for %s (%s), export %s",
        config.service_name,
        config.environment,
        "on" if config.send_to_logfire else "off",
    )

    if config.collect_system_metrics:
        logfire.instrument_system_metrics()

    return config


__all__ = [
    "ObservabilityConfig",
    "initialize_observability",
    "trace_resource",
    "trace_tool",
]
