"""Decorators for instrumenting functions with Logfire spans."""

import functools
import inspect
from typing import Any, Callable, Dict, Optional, TypeVar

import logfire


T = TypeVar("T")


def traced(
    name: Optional[str] = None,
    capture_args: bool = True,
    capture_result: bool = False,
    **extra_attributes: Any,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator to wrap a function call in a Logfire span.

    Args:
        name: Optional span name (defaults to module and function name)
        capture_args: Whether to capture function arguments
        capture_result: Whether to capture function result
        **extra_attributes: Additional attributes to add to the span

    Returns:
        Decorated function
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        span_name = name or f"{func.__module__}.{func.__name__}"
        params = list(inspect.signature(func).parameters)
        skip = 1 if params and params[0] in ("self", "cls") else 0

        def _attributes(args: tuple, kwargs: Dict[str, Any]) -> Dict[str, Any]:
            attributes = {
                "function": func.__name__,
                "module": func.__module__,
                **extra_attributes,
            }
            if capture_args:
                attributes["args"] = _safe_repr(args[skip : skip + 5])
                attributes["kwargs"] = _safe_repr_dict(kwargs)
            return attributes

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                with logfire.span(span_name, **_attributes(args, kwargs)) as span:
                    try:
                        result = await func(*args, **kwargs)
                    except Exception as e:
                        span.set_attribute("error", True)
                        span.set_attribute("error_type", type(e).__name__)
                        span.set_attribute("error_message", str(e))
                        raise
                    if capture_result:
                        span.set_attribute("result", _safe_repr(result))
                    return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            with logfire.span(span_name, **_attributes(args, kwargs)) as span:
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error_type", type(e).__name__)
                    span.set_attribute("error_message", str(e))
                    raise
                if capture_result:
                    span.set_attribute("result", _safe_repr(result))
                return result

        return sync_wrapper

    return decorator


def _safe_repr(obj: Any, max_length: int = 200) -> str:
    """Safely convert object to string representation.

    Args:
        obj: Object to convert
        max_length: Maximum string length

    Returns:
        String representation
    """
    try:
        repr_str = repr(obj)
    except Exception:
        return f"<{type(obj).__name__} object>"
    if len(repr_str) > max_length:
        return repr_str[:max_length] + "..."
    return repr_str


def _safe_repr_dict(d: Dict[str, Any], max_items: int = 10) -> Dict[str, str]:
    result = {}
    for i, (key, value) in enumerate(d.items()):
        if i >= max_items:
            result["..."] = f"({len(d) - max_items} more items)"
            break
        result[str(key)] = _safe_repr(value)
    return result
