"""Map non-success status codes to domain-error factories.

An error mapping is supplied per call by generated code.  Keys select status
codes: an exact code (``"404"``), a class pattern with the last two digits
wildcarded (``"4XX"``, ``"5XX"``), or the catch-all ``"XXX"``.  Resolution
prefers the exact code, then the class, then the catch-all.
"""

from __future__ import annotations

from typing import Callable, Mapping, Optional

from .errors import ApiError
from .network.policy import SUCCESS_STATUS_MAX, SUCCESS_STATUS_MIN
from .serialization import ParseNode

__all__ = ["ErrorFactory", "ErrorMapping", "resolve_error_factory", "is_success", "CATCH_ALL_SELECTOR"]

ErrorFactory = Callable[[ParseNode], ApiError]
ErrorMapping = Mapping[str, ErrorFactory]

CATCH_ALL_SELECTOR = "XXX"


def is_success(status_code: int) -> bool:
    return SUCCESS_STATUS_MIN <= status_code <= SUCCESS_STATUS_MAX


def class_selector(status_code: int) -> str:
    """``404`` -> ``"4XX"``."""
    return f"{status_code // 100}XX"


def resolve_error_factory(error_mapping: Optional[ErrorMapping], status_code: int) -> Optional[ErrorFactory]:
    """Return the factory registered for ``status_code``, or ``None``.

    Selectors are compared case-insensitively.

    Examples:
        >>> mapping = {"4XX": lambda node: ApiError("client")}
        >>> resolve_error_factory(mapping, 404) is mapping["4XX"]
        True
        >>> resolve_error_factory(mapping, 502) is None
        True
    """
    if not error_mapping:
        return None
    normalized = {str(key).upper(): factory for key, factory in error_mapping.items()}
    for selector in (str(status_code), class_selector(status_code), CATCH_ALL_SELECTOR):
        factory = normalized.get(selector)
        if factory is not None:
            return factory
    return None
