# === NAVMAP v1 ===
# {
#   "module": "ClientRuntime.HttpAdapter.serialization",
#   "purpose": "Parse node contracts, content-type registry, and the default JSON parse node.",
#   "sections": [
#     {
#       "id": "parsenode",
#       "name": "ParseNode",
#       "anchor": "class-parsenode",
#       "kind": "class"
#     },
#     {
#       "id": "parsenodefactory",
#       "name": "ParseNodeFactory",
#       "anchor": "class-parsenodefactory",
#       "kind": "class"
#     },
#     {
#       "id": "parsenodefactoryregistry",
#       "name": "ParseNodeFactoryRegistry",
#       "anchor": "class-parsenodefactoryregistry",
#       "kind": "class"
#     },
#     {
#       "id": "jsonparsenode",
#       "name": "JsonParseNode",
#       "anchor": "class-jsonparsenode",
#       "kind": "class"
#     },
#     {
#       "id": "pydantic-factory",
#       "name": "pydantic_factory",
#       "anchor": "function-pydantic-factory",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Parse nodes: pluggable codecs turning a response body into domain objects.

The adapter never interprets a response body itself.  It asks a
:class:`ParseNodeFactory` for the root :class:`ParseNode` of a body of a given
content type, then lets the caller-supplied factory materialise the domain
object from that node.  :class:`ParseNodeFactoryRegistry` dispatches on the
response content type, matching the exact media type first and then the
vendor-stripped form (``application/vnd.github+json`` -> ``application/json``).

Only the JSON codec ships here; other wire formats register their own
factories.
"""

from __future__ import annotations

import datetime
import json
import logging
import re
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import SerializationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)

ParsableFactory = Callable[["ParseNode"], T]

JSON_CONTENT_TYPE = "application/json"

_VENDOR_SPECIFIC = re.compile(r"[^/]+\+", re.IGNORECASE)


def clean_content_type(content_type: str) -> str:
    """Drop media type parameters and lower-case the remainder."""
    return content_type.split(";", 1)[0].strip().lower()


def vendor_cleaned_content_type(content_type: str) -> str:
    """``application/vnd.example+json`` becomes ``application/json``."""
    return _VENDOR_SPECIFIC.sub("", clean_content_type(content_type))


class ParseNode(ABC):
    """A node of a parsed response body.

    ``on_before_assign_field_values`` and ``on_after_assign_field_values`` are
    hooks invoked around materialising an object from the node; the adapter
    uses the latter to finish backing-store initialisation.
    """

    def __init__(self) -> None:
        self.on_before_assign_field_values: Optional[Callable[[Any], None]] = None
        self.on_after_assign_field_values: Optional[Callable[[Any], None]] = None

    @abstractmethod
    def get_value(self) -> Any:
        """Return the node as plain Python data."""

    @abstractmethod
    def get_child_node(self, identifier: str) -> Optional["ParseNode"]:
        """Return the child node for ``identifier`` or ``None``."""

    @abstractmethod
    def get_str_value(self) -> Optional[str]: ...

    @abstractmethod
    def get_int_value(self) -> Optional[int]: ...

    @abstractmethod
    def get_float_value(self) -> Optional[float]: ...

    @abstractmethod
    def get_bool_value(self) -> Optional[bool]: ...

    @abstractmethod
    def get_datetime_value(self) -> Optional[datetime.datetime]: ...

    @abstractmethod
    def get_uuid_value(self) -> Optional[uuid.UUID]: ...

    @abstractmethod
    def get_collection_of_primitive_values(self, primitive_type: Type[T]) -> Optional[List[T]]: ...

    @abstractmethod
    def get_collection_of_object_values(self, factory: ParsableFactory[T]) -> Optional[List[T]]: ...

    def get_object_value(self, factory: ParsableFactory[T]) -> T:
        """Materialise a domain object from this node using ``factory``."""
        if self.on_before_assign_field_values is not None:
            self.on_before_assign_field_values(self)
        result = factory(self)
        if self.on_after_assign_field_values is not None:
            self.on_after_assign_field_values(result)
        return result


class ParseNodeFactory(ABC):
    """Creates root parse nodes for one content type."""

    @abstractmethod
    def get_valid_content_type(self) -> str:
        """Return the content type this factory handles."""

    @abstractmethod
    def get_root_parse_node(self, content_type: str, content: bytes) -> ParseNode:
        """Parse ``content`` and return its root node."""


class JsonParseNode(ParseNode):
    """Parse node over already-decoded JSON data."""

    def __init__(self, value: Any) -> None:
        super().__init__()
        self._value = value

    def get_value(self) -> Any:
        return self._value

    def get_child_node(self, identifier: str) -> Optional["JsonParseNode"]:
        if not isinstance(self._value, dict) or identifier not in self._value:
            return None
        child = JsonParseNode(self._value[identifier])
        child.on_before_assign_field_values = self.on_before_assign_field_values
        child.on_after_assign_field_values = self.on_after_assign_field_values
        return child

    def get_str_value(self) -> Optional[str]:
        return self._value if isinstance(self._value, str) else None

    def get_int_value(self) -> Optional[int]:
        if isinstance(self._value, bool):
            return None
        return int(self._value) if isinstance(self._value, (int, float)) else None

    def get_float_value(self) -> Optional[float]:
        if isinstance(self._value, bool):
            return None
        return float(self._value) if isinstance(self._value, (int, float)) else None

    def get_bool_value(self) -> Optional[bool]:
        return self._value if isinstance(self._value, bool) else None

    def get_datetime_value(self) -> Optional[datetime.datetime]:
        if not isinstance(self._value, str):
            return None
        try:
            return datetime.datetime.fromisoformat(self._value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise SerializationError(f"Invalid datetime value: {self._value!r}") from exc

    def get_uuid_value(self) -> Optional[uuid.UUID]:
        if not isinstance(self._value, str):
            return None
        try:
            return uuid.UUID(self._value)
        except ValueError as exc:
            raise SerializationError(f"Invalid UUID value: {self._value!r}") from exc

    def get_collection_of_primitive_values(self, primitive_type: Type[T]) -> Optional[List[T]]:
        if not isinstance(self._value, list):
            return None
        return [primitive_type(item) for item in self._value if item is not None]  # type: ignore[call-arg]

    def get_collection_of_object_values(self, factory: ParsableFactory[T]) -> Optional[List[T]]:
        if not isinstance(self._value, list):
            return None
        results: List[T] = []
        for item in self._value:
            node = JsonParseNode(item)
            node.on_before_assign_field_values = self.on_before_assign_field_values
            node.on_after_assign_field_values = self.on_after_assign_field_values
            results.append(node.get_object_value(factory))
        return results


class JsonParseNodeFactory(ParseNodeFactory):
    def get_valid_content_type(self) -> str:
        return JSON_CONTENT_TYPE

    def get_root_parse_node(self, content_type: str, content: bytes) -> JsonParseNode:
        if not content:
            raise SerializationError("Cannot parse an empty JSON body", content_type=content_type)
        try:
            return JsonParseNode(json.loads(content))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SerializationError(f"Invalid JSON body: {exc}", content_type=content_type) from exc


class ParseNodeFactoryRegistry(ParseNodeFactory):
    """Dispatches to a registered factory by content type.

    Lookups are read-mostly and safe for concurrent use; registration takes a lock.
    """

    def __init__(self) -> None:
        self._factories: Dict[str, ParseNodeFactory] = {}
        self._lock = threading.Lock()

    @classmethod
    def with_defaults(cls) -> "ParseNodeFactoryRegistry":
        registry = cls()
        registry.register(JsonParseNodeFactory())
        return registry

    def register(self, factory: ParseNodeFactory, content_type: Optional[str] = None) -> None:
        key = clean_content_type(content_type or factory.get_valid_content_type())
        with self._lock:
            self._factories[key] = factory
        logger.debug("Registered parse node factory", extra={"content_type": key})

    @property
    def content_types(self) -> List[str]:
        return sorted(self._factories)

    def get_valid_content_type(self) -> str:
        raise SerializationError("The registry supports multiple content types; get the factory instead")

    def resolve(self, content_type: str) -> ParseNodeFactory:
        if not content_type:
            raise SerializationError("Content type cannot be empty")
        cleaned = clean_content_type(content_type)
        factory = self._factories.get(cleaned)
        if factory is None:
            factory = self._factories.get(vendor_cleaned_content_type(cleaned))
        if factory is None:
            raise SerializationError(
                f"Content type {cleaned} does not have a factory registered to be parsed",
                content_type=cleaned,
            )
        return factory

    def get_root_parse_node(self, content_type: str, content: bytes) -> ParseNode:
        return self.resolve(content_type).get_root_parse_node(content_type, content)


class BackingStoreParseNodeFactory(ParseNodeFactory):
    """Wraps a factory so parsed objects finish backing-store initialisation.

    Objects exposing a ``backing_store`` attribute get
    ``initialization_completed`` set once their fields are assigned, so only
    later mutations are reported as changes.
    """

    def __init__(self, concrete: ParseNodeFactory) -> None:
        self._concrete = concrete

    def get_valid_content_type(self) -> str:
        return self._concrete.get_valid_content_type()

    def get_root_parse_node(self, content_type: str, content: bytes) -> ParseNode:
        node = self._concrete.get_root_parse_node(content_type, content)
        original_after = node.on_after_assign_field_values

        def _after(value: Any) -> None:
            if original_after is not None:
                original_after(value)
            store = getattr(value, "backing_store", None)
            if store is not None:
                store.initialization_completed = True

        node.on_after_assign_field_values = _after
        return node


def pydantic_factory(model: Type[ModelT]) -> ParsableFactory[ModelT]:
    """Build a parsable factory that validates a node's data into ``model``.

    Examples:
        >>> class User(BaseModel):
        ...     id: str
        >>> pydantic_factory(User)(JsonParseNode({"id": "1"})).id
        '1'
    """

    def _factory(node: ParseNode) -> ModelT:
        try:
            return model.model_validate(node.get_value())
        except PydanticValidationError as exc:
            raise SerializationError(f"Response body does not match {model.__name__}: {exc}") from exc

    return _factory


__all__ = [
    "JSON_CONTENT_TYPE",
    "ParsableFactory",
    "ParseNode",
    "ParseNodeFactory",
    "JsonParseNode",
    "JsonParseNodeFactory",
    "ParseNodeFactoryRegistry",
    "BackingStoreParseNodeFactory",
    "pydantic_factory",
    "clean_content_type",
    "vendor_cleaned_content_type",
]
