# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.request_information",
#   "purpose": "Protocol-agnostic request description consumed by the request adapter.",
#   "sections": [
#     {
#       "id": "method",
#       "name": "Method",
#       "anchor": "class-method",
#       "kind": "class"
#     },
#     {
#       "id": "requestheaders",
#       "name": "RequestHeaders",
#       "anchor": "class-requestheaders",
#       "kind": "class"
#     },
#     {
#       "id": "requestoption",
#       "name": "RequestOption",
#       "anchor": "class-requestoption",
#       "kind": "class"
#     },
#     {
#       "id": "requestinformation",
#       "name": "RequestInformation",
#       "anchor": "class-requestinformation",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Protocol-agnostic request description.

:class:`RequestInformation` is what generated request builders produce and what
:class:`~ClientRuntime.HttpAdapter.adapter.HttpxRequestAdapter` consumes: an HTTP
method, a URI template with its path and query parameters, multi-valued headers,
an optional binary body with its media type, and a bag of request options that
override middleware defaults for this call only.

Instances are built per call and consumed once.
"""

from __future__ import annotations

import copy
import datetime
import uuid
from enum import Enum
from typing import (
    Any,
    BinaryIO,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from .url_template import expand_template

__all__ = [
    "Method",
    "RequestHeaders",
    "RequestOption",
    "RequestInformation",
    "BASE_URL_KEY",
    "CONTENT_TYPE_HEADER",
]

BASE_URL_KEY = "baseurl"
CONTENT_TYPE_HEADER = "Content-Type"

OptionT = TypeVar("OptionT", bound="RequestOption")

QueryValue = Union[None, str, int, float, bool, Enum, datetime.datetime, datetime.date, uuid.UUID, Sequence[Any]]


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    CONNECT = "CONNECT"
    TRACE = "TRACE"
    HEAD = "HEAD"
    PUT = "PUT"


class RequestHeaders:
    """Case-insensitive, multi-valued header collection.

    Values are kept in insertion order and de-duplicated per header name.
    """

    def __init__(self, initial: Optional[Mapping[str, Union[str, Iterable[str]]]] = None) -> None:
        self._headers: Dict[str, List[str]] = {}
        self._names: Dict[str, str] = {}
        if initial:
            for name, values in initial.items():
                self.add(name, values)

    @staticmethod
    def _normalize(name: str) -> str:
        if not name or not name.strip():
            raise ValueError("Header name cannot be empty")
        return name.strip().lower()

    def add(self, name: str, values: Union[str, Iterable[str]]) -> None:
        key = self._normalize(name)
        if isinstance(values, str):
            values = [values]
        bucket = self._headers.setdefault(key, [])
        self._names.setdefault(key, name.strip())
        for value in values:
            if value not in bucket:
                bucket.append(value)

    def try_add(self, name: str, value: str) -> bool:
        """Add ``value`` only if the header is not present yet."""
        key = self._normalize(name)
        if key in self._headers:
            return False
        self.add(name, value)
        return True

    def get(self, name: str) -> List[str]:
        return list(self._headers.get(self._normalize(name), []))

    def remove(self, name: str) -> bool:
        key = self._normalize(name)
        self._names.pop(key, None)
        return self._headers.pop(key, None) is not None

    def remove_value(self, name: str, value: str) -> bool:
        key = self._normalize(name)
        bucket = self._headers.get(key)
        if not bucket or value not in bucket:
            return False
        bucket.remove(value)
        if not bucket:
            self.remove(name)
        return True

    def contains(self, name: str) -> bool:
        return self._normalize(name) in self._headers

    def clear(self) -> None:
        self._headers.clear()
        self._names.clear()

    def update(self, other: "RequestHeaders") -> None:
        for name, values in other.items():
            self.add(name, values)

    def items(self) -> Iterator[tuple]:
        for key, values in self._headers.items():
            yield self._names[key], list(values)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"RequestHeaders({dict(self.items())!r})"


class RequestOption:
    """Base class for per-request middleware options.

    Subclasses are stored in :attr:`RequestInformation.request_options` under
    their :meth:`get_key`, so one instance of each option kind is kept per call.
    """

    @classmethod
    def get_key(cls) -> str:
        return cls.__name__


def _normalize_query_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _normalize_query_value(value.value)
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    if isinstance(value, (datetime.date, datetime.time, uuid.UUID)):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize_query_value(item) for item in value if item is not None]
    return value


class RequestInformation:
    """Abstract description of one HTTP call."""

    def __init__(
        self,
        http_method: Optional[Method] = None,
        url_template: Optional[str] = None,
        path_parameters: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.http_method = http_method
        self.url_template = url_template
        self.path_parameters: Dict[str, Any] = dict(path_parameters or {})
        self.query_parameters: Dict[str, QueryValue] = {}
        self.headers = RequestHeaders()
        self.content: Optional[Union[bytes, BinaryIO]] = None
        self._url: Optional[str] = None
        self._request_options: Dict[str, RequestOption] = {}

    # -- URL ---------------------------------------------------------------

    @property
    def url(self) -> str:
        """The explicit URL if one was set, otherwise the expanded template."""
        if self._url:
            return self._url
        if not self.url_template:
            raise ValueError("url_template cannot be empty when no explicit url is set")
        variables: Dict[str, Any] = {}
        for key, value in self.path_parameters.items():
            variables[key] = _normalize_query_value(value)
        for key, value in self.query_parameters.items():
            variables[key] = _normalize_query_value(value)
        return expand_template(self.url_template, variables)

    @url.setter
    def url(self, value: Optional[str]) -> None:
        self._url = value
        if value:
            self.query_parameters.clear()
            self.path_parameters.clear()

    @property
    def has_explicit_url(self) -> bool:
        return bool(self._url)

    # -- Request options ---------------------------------------------------

    @property
    def request_options(self) -> Dict[str, RequestOption]:
        return self._request_options

    def add_request_options(self, options: Iterable[RequestOption]) -> None:
        for option in options or ():
            self._request_options[option.get_key()] = option

    def remove_request_options(self, options: Iterable[RequestOption]) -> None:
        for option in options or ():
            self._request_options.pop(option.get_key(), None)

    def get_request_option(self, option_type: Type[OptionT]) -> Optional[OptionT]:
        option = self._request_options.get(option_type.get_key())
        return option if isinstance(option, option_type) else None

    # -- Body --------------------------------------------------------------

    def set_stream_content(self, value: Union[bytes, BinaryIO], content_type: str = "application/octet-stream") -> None:
        """Set a binary body and its media type."""
        self.headers.remove(CONTENT_TYPE_HEADER)
        self.headers.add(CONTENT_TYPE_HEADER, content_type)
        self.content = value

    def read_content(self) -> Optional[bytes]:
        """Return the body as bytes, reading a stream body from its current position."""
        if self.content is None:
            return None
        if isinstance(self.content, (bytes, bytearray, memoryview)):
            return bytes(self.content)
        data = self.content.read()
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)

    def configure(
        self,
        headers: Optional[Mapping[str, Union[str, Iterable[str]]]] = None,
        query_parameters: Optional[Mapping[str, QueryValue]] = None,
        options: Optional[Iterable[RequestOption]] = None,
    ) -> None:
        """Apply caller-supplied request configuration in one call."""
        if headers:
            for name, values in headers.items():
                self.headers.add(name, values)
        if query_parameters:
            self.query_parameters.update(query_parameters)
        if options:
            self.add_request_options(options)

    def copy(self) -> "RequestInformation":
        """Copy headers, parameters and options; the body is shared."""
        clone = RequestInformation(self.http_method, self.url_template, self.path_parameters)
        clone.query_parameters = dict(self.query_parameters)
        clone.headers = RequestHeaders(dict(self.headers.items()))
        clone.content = self.content
        clone._url = self._url
        clone._request_options = copy.copy(self._request_options)
        return clone

    def __repr__(self) -> str:
        method = self.http_method.value if self.http_method else None
        return f"RequestInformation(method={method!r}, url_template={self.url_template!r})"
