"""Encode expanded declarations to JSON values and decode them back.

Decoding never relies on exceptions to move on to the next candidate: every decode step returns either `Ok`
or `Err`, and untagged kinds keep the first `Ok` among their variants. Scalars, literals and plain enums are
converted by msgspec in strict mode. Records, kinds and containers are walked here so that a failure carries
the wire path to the offending value. The public functions turn a final `Err` into a `DeserializationError`.
"""

from __future__ import annotations

import copy
import enum
import logging
import types
import typing
from collections.abc import Mapping, Sequence
from dataclasses import MISSING, dataclass
from typing import Any, TypeVar

import msgspec
import msgspec.json

from lsp_msg_generator.elective import ABSENT, Absent, Elective, Present
from lsp_msg_generator.errors import DeserializationError, PathElement, SerializationError, SpecificationError
from lsp_msg_generator.schema import KindSchema, RecordSchema, kind_schema_of, record_schema_of
from lsp_msg_generator.synthesizer import KindShape

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCALAR_TYPES = (bool, int, float, str)


@dataclass(frozen=True, slots=True)
class Ok:
    """A successful decode step."""

    value: Any


@dataclass(frozen=True, slots=True)
class Err:
    """A failed decode step.

    Attributes:
        message: What did not match.
        path: Where, relative to the value the step was decoding.
    """

    message: str
    path: tuple[PathElement, ...] = ()

    def within(self, element: PathElement) -> Err:
        """The same failure, seen from the enclosing object or list."""
        return Err(self.message, (element, *self.path))

    def to_exception(self) -> DeserializationError:
        return DeserializationError(self.message, self.path)


DecodeResult = Ok | Err


def _describe(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def _json_type(data: Any) -> str:
    # Same vocabulary as the messages of msgspec.ValidationError.
    if data is None:
        return "null"
    if isinstance(data, bool):
        return "bool"
    if isinstance(data, int):
        return "int"
    if isinstance(data, float):
        return "float"
    if isinstance(data, str):
        return "str"
    if isinstance(data, list):
        return "array"
    if isinstance(data, dict):
        return "object"
    return type(data).__name__


def _mismatch(expected: str, data: Any) -> Err:
    return Err(f"Expected `{expected}`, got `{_json_type(data)}`")


def _is_leaf(tp: Any) -> bool:
    if tp is None or tp is type(None) or tp in SCALAR_TYPES:
        return True
    origin = typing.get_origin(tp)
    if origin is not None:
        return origin is typing.Literal
    return isinstance(tp, type) and issubclass(tp, enum.Enum) and kind_schema_of(tp) is None


def _convert(tp: Any, data: Any) -> DecodeResult:
    """Convert a scalar, literal or plain enum value with msgspec, without coercion."""
    try:
        return Ok(msgspec.convert(data, type=None if tp is type(None) else tp, strict=True))
    except msgspec.ValidationError as e:
        return Err(str(e))
    except TypeError as e:
        raise SpecificationError(f"Cannot decode into {_describe(tp)}: {e}") from e


def decode(tp: Any, data: Any) -> DecodeResult:
    """Decode a JSON value into the semantic type `tp`.

    Args:
        tp (Any): An evaluated type: a builtin scalar, `list[...]`, `dict[str, ...]`, a union, `Literal[...]`,
            `Elective[...]`, an enum, or an expanded record or kind (possibly parametrized).
        data (Any): The value as produced by `msgspec.json.decode`.

    Returns:
        DecodeResult: `Ok` with the decoded value, or `Err` describing the first mismatch.

    Raises:
        SpecificationError: If `tp` is not a type the codec can decode into.
    """
    if tp is Any or tp is object or isinstance(tp, TypeVar):
        return Ok(data)

    if _is_leaf(tp):
        return _convert(tp, data)

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is types.UnionType or origin is typing.Union:
        return _decode_union(tp, args, data)

    if origin is Elective or tp is Elective:
        inner = decode(args[0] if args else Any, data)
        return Ok(Present(inner.value)) if isinstance(inner, Ok) else inner

    if tp in (list, tuple) or origin in (list, tuple, Sequence):
        return _decode_list(args[0] if args else Any, data)

    if tp is dict or origin in (dict, Mapping):
        return _decode_dict(args[1] if len(args) == 2 else Any, data)

    record = record_schema_of(tp)
    if record is not None:
        return decode_record(record, args, data)

    kind = kind_schema_of(tp)
    if kind is not None:
        return decode_kind(kind, args, data)

    raise SpecificationError(f"Cannot decode into {_describe(tp)}")


def _decode_union(tp: Any, args: tuple[Any, ...], data: Any) -> DecodeResult:
    if data is None and type(None) in args:
        return Ok(None)

    failures: list[str] = []
    for candidate in args:
        if candidate is type(None):
            continue
        result = decode(candidate, data)
        if isinstance(result, Ok):
            return result
        failures.append(f"{_describe(candidate)}: {result.message}")

    return Err(f"data did not match any type of {_describe(tp)} ({'; '.join(failures)})")


def _decode_list(item_type: Any, data: Any) -> DecodeResult:
    if not isinstance(data, list):
        return _mismatch("array", data)

    items: list[Any] = []
    for index, item in enumerate(data):
        result = decode(item_type, item)
        if isinstance(result, Err):
            return result.within(index)
        items.append(result.value)

    return Ok(items)


def _decode_dict(value_type: Any, data: Any) -> DecodeResult:
    if not isinstance(data, dict):
        return _mismatch("object", data)

    values: dict[str, Any] = {}
    for key, value in data.items():
        result = decode(value_type, value)
        if isinstance(result, Err):
            return result.within(key)
        values[key] = result.value

    return Ok(values)


def decode_record(schema: RecordSchema, args: tuple[Any, ...], data: Any) -> DecodeResult:
    """Decode a JSON object into a record.

    Missing properties become `ABSENT` for elective fields and the field default where the layout allows it.
    Unknown properties are ignored. Either every field decodes or the record fails as a whole.
    """
    if not isinstance(data, dict):
        return Err(f"Expected `object` for {schema.name}, got `{_json_type(data)}`")

    values: dict[str, Any] = {}
    for layout, tp in schema.field_types(args):
        if layout.wire_name not in data:
            if not layout.default_on_missing:
                return Err("missing field", (layout.wire_name,))
            values[layout.name] = field_default(schema, layout.name, tp)
            continue

        result = decode(tp, data[layout.wire_name])
        if isinstance(result, Err):
            return result.within(layout.wire_name)
        values[layout.name] = result.value

    return Ok(schema.cls(**values))


def decode_kind(schema: KindSchema, args: tuple[Any, ...], data: Any) -> DecodeResult:
    """Decode a JSON value into a kind, according to its dispatch shape."""
    layout = schema.layout

    if layout.shape is KindShape.NUMBER:
        tag = _convert(int, data)
        if isinstance(tag, Err):
            return tag
        variant = layout.variant_for_tag(tag.value)
        if variant is None:
            return Err(f"{data} is not a valid {schema.name}")
        return Ok(schema.cls[variant.name])  # type: ignore[index]

    if layout.shape is KindShape.STRING:
        tag = _convert(str, data)
        if isinstance(tag, Err):
            return tag
        variant = layout.variant_for_tag(tag.value)
        if variant is None:
            return Err(f"unknown variant {data!r} of {schema.name}")
        return Ok(schema.cls[variant.name])  # type: ignore[index]

    payload_types = schema.payload_types(args)
    attempts: list[str] = []
    for variant in layout.variants:
        variant_cls = schema.variant_classes[variant.name]

        if variant.is_unit:
            if data is None:
                return Ok(variant_cls())
            attempts.append(f"{variant.name}: {_mismatch('null', data).message}")
            continue

        result = decode(payload_types[variant.name], data)
        if isinstance(result, Ok):
            logger.debug(f"Decoded untagged kind {schema.name} as variant {variant.name}")
            return Ok(variant_cls(result.value))
        attempts.append(f"{variant.name}: {result.message}")

    return Err(f"data did not match any variant of untagged kind {schema.name} ({'; '.join(attempts)})")


def type_default(tp: Any) -> Any:
    """The default value of a semantic type.

    Args:
        tp (Any): An evaluated type.

    Returns:
        Any: A fresh default value.

    Raises:
        SpecificationError: If the type has no default, e.g. an untagged kind without a `default()` classmethod.
    """
    if tp is Any or tp is object or tp is None or tp is type(None) or isinstance(tp, TypeVar):
        return None

    if tp is bool:
        return False
    if tp is int:
        return 0
    if tp is float:
        return 0.0
    if tp is str:
        return ""

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is Elective or tp is Elective:
        return ABSENT

    if origin is types.UnionType or origin is typing.Union:
        if type(None) in args:
            return None
        return type_default(args[0])

    if origin is typing.Literal:
        return args[0]

    if tp in (list, tuple) or origin in (list, tuple, Sequence):
        return []

    if tp is dict or origin in (dict, Mapping):
        return {}

    cls = origin or tp
    custom_default = getattr(cls, "default", None)

    record = record_schema_of(tp)
    if record is not None:
        if args or not callable(custom_default):
            return default_record(record, args)
        return custom_default()

    if isinstance(cls, type) and callable(custom_default) and not isinstance(custom_default, enum.Enum):
        return custom_default()

    if isinstance(cls, type) and issubclass(cls, enum.Enum):
        return next(iter(cls))

    raise SpecificationError(f"{_describe(tp)} has no default value")


def field_default(schema: RecordSchema, name: str, tp: Any | None = None) -> Any:
    """The default of one field of a record: its explicit default, or else the default of its type."""
    layout = schema.field_named(name)
    if layout.default is not MISSING:
        return copy.deepcopy(layout.default)

    if tp is None:
        tp = schema.type_hints().get(name, Any)
    return type_default(tp)


def default_record(schema: RecordSchema, args: tuple[Any, ...] = ()) -> Any:
    """A record with every field set to its default."""
    values = {layout.name: field_default(schema, layout.name, tp) for layout, tp in schema.field_types(args)}
    return schema.cls(**values)


def encode(value: Any) -> Any:
    """Encode a value into its JSON representation.

    Records become objects with their wire names, absent elective fields are left out. Present elective values
    are encoded as their inner value. String kinds become their tags, number kinds their integers, and variants
    of untagged kinds the encoding of their payload. Anything else is handed to `msgspec.to_builtins`.

    Raises:
        SerializationError: For values that have no JSON representation, including an `ABSENT` outside of a
            record field.
    """
    if isinstance(value, Present):
        return encode(value.value)

    if isinstance(value, Absent):
        raise SerializationError("An absent elective value can only be left out of a record")

    variant_name = getattr(type(value), "__lsp_variant__", None)
    if variant_name is not None:
        return encode(getattr(value, "value", None))

    record = record_schema_of(type(value))
    if record is not None:
        return encode_record(record, value)

    if isinstance(value, enum.Enum):
        kind = kind_schema_of(type(value))
        if kind is not None:
            return kind.layout.variant_named(value.name).tag

    if isinstance(value, (list, tuple)):
        return [encode(item) for item in value]

    if isinstance(value, dict):
        encoded: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(f"Object keys must be strings, found {key!r}")
            encoded[key] = encode(item)
        return encoded

    try:
        return msgspec.to_builtins(value)
    except TypeError as e:
        raise SerializationError(f"Cannot encode a value of type {type(value).__qualname__}") from e


def encode_record(schema: RecordSchema, value: Any) -> dict[str, Any]:
    encoded: dict[str, Any] = {}
    for layout in schema.fields:
        field_value = getattr(value, layout.name)
        if layout.skip_if_absent and isinstance(field_value, Absent):
            continue
        encoded[layout.wire_name] = encode(field_value)
    return encoded


def to_json(value: Any) -> Any:
    """Encode a value into a JSON-compatible structure of dicts, lists and scalars."""
    return encode(value)


def from_json(tp: type[T] | Any, data: Any) -> T:
    """Decode a JSON-compatible structure into `tp`.

    Args:
        tp (type[T] | Any): The type to decode into, e.g. a record class or `list[SomeRecord]`.
        data (Any): The value as produced by `msgspec.json.decode` or `json.loads`.

    Returns:
        T: The decoded value.

    Raises:
        DeserializationError: If the data does not match, with the path to the offending property.
    """
    result = decode(tp, data)
    if isinstance(result, Err):
        raise result.to_exception()
    return result.value


def dumps(value: Any, *, indent: int | None = None) -> str:
    """Encode a value as JSON text, compact unless `indent` is given."""
    text = msgspec.json.encode(to_json(value))
    if indent is not None:
        text = msgspec.json.format(text, indent=indent)
    return text.decode()


def loads(tp: type[T] | Any, text: str | bytes) -> T:
    """Decode JSON text into `tp`.

    Raises:
        DeserializationError: If the text is not JSON, not UTF-8, or does not match `tp`.
    """
    try:
        data = msgspec.json.decode(text)
    except (msgspec.DecodeError, UnicodeDecodeError) as e:
        raise DeserializationError(f"invalid JSON: {e}") from e
    return from_json(tp, data)
