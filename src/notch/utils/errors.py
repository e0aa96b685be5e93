"""
Error handling utilities and boundaries for Notch.

Module code is third-party as far as the registry is concerned, so every
call into a module goes through one of these boundaries. A failing module
is logged and skipped; it never takes the frame or the registry down.
"""

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def error_boundary(*, default_return: Any = None, log_level: int = logging.ERROR) -> Callable[[F], F]:
    """
    Decorator for registry methods that call into a module.

    The exception is logged with its traceback and default_return is handed
    back to the caller instead. Init failures use WARNING, since the module
    stays registered and draws with its defaults.

    Args:
        default_return: Value returned when the wrapped call raises
        log_level: Level of the log line (default: ERROR)

    Example:
        >>> @error_boundary(default_return=False, log_level=logging.WARNING)
        ... def _init_module(self, module, module_config):
        ...     module.init(module_config)
        ...     return True
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.log(
                    log_level,
                    f"Error in {func.__name__}: {e}",
                    exc_info=True,
                    extra={"function": func.__name__, "function_module": func.__module__},
                )
                return default_return

        return wrapper  # type: ignore

    return decorator


def safe_execute(func: Callable[[], Any], *, default: Any = None, description: str = "module call") -> Any:
    """
    Run a one-off call into module code, logging and returning default on failure.

    Used where the registry calls a module from inside a loop, such as event
    delivery and shutdown.
    """
    try:
        return func()
    except Exception as e:
        logger.error(f"Error in {description}: {e}", exc_info=True)
        return default


class NotchError(Exception):
    """Base exception for all Notch-specific errors."""

    pass


class ConfigurationError(NotchError, ValueError):
    """Raised when there's an issue with configuration."""

    pass


class PluginLoadError(NotchError):
    """Raised when a plugin file cannot be loaded or does not produce a module."""

    pass


class ModuleError(NotchError):
    """Raised by modules when they cannot initialize or draw."""

    pass


class CanvasError(NotchError):
    """Raised when a pixel buffer does not match the requested canvas."""

    pass
