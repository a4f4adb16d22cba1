# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.serialization",
#   "purpose": "Pluggable JSON serializer used for request bodies, GET form content, and typed responses.",
#   "sections": [
#     {"id": "namingpolicy", "name": "NamingPolicy", "anchor": "class-namingpolicy", "kind": "class"},
#     {"id": "serializeroptions", "name": "SerializerOptions", "anchor": "class-serializeroptions", "kind": "class"},
#     {"id": "serializer", "name": "Serializer", "anchor": "class-serializer", "kind": "class"},
#     {"id": "jsonserializer", "name": "JsonSerializer", "anchor": "class-jsonserializer", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Pluggable payload serialization.

The repository depends only on the :class:`Serializer` protocol. The default
:class:`JsonSerializer` converts payloads to JSON-compatible Python with
``pydantic_core.to_jsonable_python`` (so pydantic models, dataclasses, enums,
datetimes, and plain containers all work), applies the configured naming
policy and null handling, and validates responses into the requested type
with ``pydantic.TypeAdapter``.

Naming policies rename object keys on the way out only. Incoming bodies are
validated exactly as decoded, and the target type's own aliases map wire keys
onto fields: a model with
``model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)``
reads ``userId`` into ``user_id``. Mapping targets keep every key verbatim.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Protocol, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_pascal, to_snake
from pydantic_core import PydanticSerializationError, to_jsonable_python

from .errors import DeserializationError, SerializationError


class NamingPolicy(str, Enum):
    """Key naming applied to serialized objects."""

    NONE = "none"
    CAMEL = "camel"
    PASCAL = "pascal"
    SNAKE = "snake"


_OUTGOING: Dict[NamingPolicy, Callable[[str], str]] = {
    NamingPolicy.CAMEL: to_camel,
    NamingPolicy.PASCAL: to_pascal,
    NamingPolicy.SNAKE: to_snake,
}


@dataclass(frozen=True)
class SerializerOptions:
    """Serializer configuration, fixed once per client instance."""

    naming_policy: NamingPolicy = NamingPolicy.CAMEL
    ignore_none: bool = True
    ensure_ascii: bool = False


class Serializer(Protocol):
    """Contract the repository expects from a payload serializer."""

    def serialize(self, value: Any, options: SerializerOptions) -> bytes: ...

    def deserialize(self, data: bytes, target: Any, options: SerializerOptions) -> Any: ...

    def to_form(self, value: Any, options: SerializerOptions) -> List[Tuple[str, str]]: ...


class JsonSerializer:
    """JSON serializer backed by pydantic-core."""

    def __init__(self) -> None:
        self._adapters: Dict[Any, TypeAdapter] = {}
        self._lock = threading.Lock()

    # ── Outgoing ──────────────────────────────────────────────────────────────

    def serialize(self, value: Any, options: SerializerOptions) -> bytes:
        """Encode ``value`` as UTF-8 JSON bytes."""

        jsonable = self._to_jsonable(value, options)
        try:
            text = json.dumps(jsonable, ensure_ascii=options.ensure_ascii, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot serialize {type(value).__name__}: {exc}") from exc
        return text.encode("utf-8")

    def to_form(self, value: Any, options: SerializerOptions) -> List[Tuple[str, str]]:
        """Flatten ``value`` into ordered query/form pairs.

        Lists become repeated keys, nested objects are JSON-encoded, booleans
        are lower-cased, and ``None`` values are always dropped.
        """

        jsonable = self._to_jsonable(value, options)
        if not isinstance(jsonable, dict):
            raise SerializationError(
                f"Form content must serialize to an object, got {type(jsonable).__name__}"
            )
        pairs: List[Tuple[str, str]] = []
        for key, item in jsonable.items():
            if item is None:
                continue
            if isinstance(item, list):
                pairs.extend((key, _form_scalar(element)) for element in item if element is not None)
            else:
                pairs.append((key, _form_scalar(item)))
        return pairs

    # ── Incoming ──────────────────────────────────────────────────────────────

    def deserialize(self, data: bytes, target: Any, options: SerializerOptions) -> Any:
        """Decode JSON ``data`` and validate it into ``target``.

        Keys are not renamed; ``options`` only governs outgoing payloads.
        """

        try:
            decoded = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DeserializationError(f"Response body is not valid JSON: {exc}") from exc
        adapter = self._adapter_for(target)
        try:
            return adapter.validate_python(decoded)
        except PydanticValidationError as exc:
            raise DeserializationError(
                f"Response body does not match {_type_name(target)}: "
                f"{exc.error_count()} validation error(s)"
            ) from exc

    # ── Internals ─────────────────────────────────────────────────────────────

    def _to_jsonable(self, value: Any, options: SerializerOptions) -> Any:
        try:
            jsonable = to_jsonable_python(value, exclude_none=options.ignore_none)
        except PydanticSerializationError as exc:
            raise SerializationError(f"Cannot serialize {type(value).__name__}: {exc}") from exc
        if options.ignore_none:
            jsonable = _drop_none(jsonable)
        rename = _OUTGOING.get(options.naming_policy)
        if rename is not None:
            jsonable = _rename_keys(jsonable, rename)
        return jsonable

    def _adapter_for(self, target: Any) -> TypeAdapter:
        try:
            with self._lock:
                adapter = self._adapters.get(target)
                if adapter is None:
                    adapter = TypeAdapter(target)
                    self._adapters[target] = adapter
                return adapter
        except TypeError:
            # Unhashable annotations are not cached
            return TypeAdapter(target)


def _rename_keys(value: Any, rename: Callable[[str], str]) -> Any:
    if isinstance(value, dict):
        return {
            (rename(key) if isinstance(key, str) else key): _rename_keys(item, rename)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_rename_keys(item, rename) for item in value]
    return value


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _drop_none(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_drop_none(item) for item in value]
    return value


def _form_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)


__all__ = ["NamingPolicy", "SerializerOptions", "Serializer", "JsonSerializer"]
