"""Shared plumbing for resource handlers."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.repository import RepositoryException

logger = logging.getLogger(__name__)


def parse_id(value: str, what: str) -> int:
    """Template parameters arrive as strings; identifiers must be positive ints."""
    return _positive_int(value, f"{what} id")


def parse_page(value: str) -> int:
    return _positive_int(value, "page number")


def _positive_int(value: str, label: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as e:
        raise ResourceError(f"Invalid {label}: {value!r}") from e
    if parsed < 1:
        raise ResourceError(f"Invalid {label}: {value!r}")
    return parsed


async def read(action: str, fn: Callable[..., Any], *args: Any) -> Any:
    """
    Run a blocking read in a worker thread and map failures to ResourceError.

    Domain errors keep their message; anything unexpected is logged with a
    traceback first.
    """
    try:
        return await asyncio.to_thread(fn, *args)
    except RepositoryException as e:
        logger.info("Resource read failed (%s) - %s: %s", action, e.kind.value, e)
        raise ResourceError(f"Failed to {action}: {e}") from e
    except Exception as e:
        logger.exception("Error while trying to %s", action)
        raise ResourceError(f"Failed to {action}: {e!s}") from e
