"""Decorators for tracing MCP components."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire


def trace_tool(tool_name: str):
    """Decorator to trace MCP tool execution.

    Tool handlers take the raw ``arguments`` dict and return an MCP payload.
    Error payloads (``isError``) are recorded as failures with their kind.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(arguments: dict[str, Any], *args, **kwargs):
            with logfire.span(
                f"tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", arguments or {})

                try:
                    result = await func(arguments, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                _add_tool_result_metrics(span, result)
                return result

        return wrapper

    return decorator


def trace_resource(resource_type: str):
    """Lightweight decorator for resource reads."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with logfire.span(
                f"resource.read.{resource_type}",
                resource_type=resource_type,
            ) as span:
                _add_attributes(span, "params", kwargs)
                result = await func(*args, **kwargs)

                if isinstance(result, dict) and "items" in result:
                    span.set_attribute("result.item_count", len(result["items"]))
                elif isinstance(result, list):
                    span.set_attribute("result.item_count", len(result))

                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    if tool_name in ("issue_book", "return_book"):
        return "circulation"
    if "member" in tool_name:
        return "directory"
    return "catalog"


def _add_attributes(span, prefix: str, data: dict):
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)


def _add_tool_result_metrics(span, result: Any):
    if not isinstance(result, dict):
        return
    failed = bool(result.get("isError"))
    span.set_attribute("tool.success", not failed)
    if failed and "error" in result:
        span.set_attribute("tool.error_kind", result["error"]["kind"])
        span.set_attribute("tool.retryable", result["error"]["retryable"])
