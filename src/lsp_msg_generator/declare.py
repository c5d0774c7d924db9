"""Declaration decorators that expand records and kinds when their module is imported.

    @lsp_object("allow_missing, dynamic_registration = '`workspace/symbol` request'")
    class SymbolCapabilities:
        symbol_kind: SymbolKindCapabilities

expands into a keyword-only dataclass with a leading `dynamic_registration: bool` field, lowerCamelCase wire
names and defaults for every field. `record` and `wire_field` are the lower level the expansion is built on;
the `Writer` emits source that uses them directly.
"""

from __future__ import annotations

import copy
import dataclasses
import enum
import functools
import inspect
import logging
import typing
from collections.abc import Callable, Iterable
from dataclasses import MISSING
from typing import Any, TypeVar, overload

from lsp_msg_generator import lsp_types
from lsp_msg_generator.codec import default_record, field_default
from lsp_msg_generator.errors import SpecificationError
from lsp_msg_generator.schema import KindSchema, RecordSchema, kind_schema_of, record_schema_of
from lsp_msg_generator.spec_parser import (
    AttributeSpecification,
    KindSpecification,
    Token,
    parse_attributes,
    parse_kind_attributes,
)
from lsp_msg_generator.synthesizer import (
    DeclaredField,
    FieldLayout,
    KindVariant,
    VariantLayout,
    layout_kind,
    synthesize,
)

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=type)

# Keys of the dataclass field metadata that carry the serialization directives.
WIRE_NAME = "lsp_wire_name"
DOC = "lsp_doc"
ELECTIVE = "lsp_elective"
SKIP_IF_ABSENT = "lsp_skip_if_absent"
DEFAULT_ON_MISSING = "lsp_default_on_missing"

VARIANT_ATTRIBUTE = "__lsp_variant__"


def wire_field(
    wire_name: str | None = None,
    *,
    doc: str = "",
    skip_if_absent: bool | None = None,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | Any = MISSING,
) -> Any:
    """Declare a record field with explicit serialization directives.

    Args:
        wire_name (str | None): The property name on the wire. Defaults to the lowerCamelCase field name.
        doc (str): The documentation of the field.
        skip_if_absent (bool | None): Leave the property out when the value is `ABSENT`. Defaults to True
            for elective fields.
        default (Any): The default value.
        default_factory (Callable[[], Any]): A factory for the default value.

    Returns:
        Any: A `dataclasses.Field` to be assigned in a class body.
    """
    metadata = {WIRE_NAME: wire_name, DOC: doc, SKIP_IF_ABSENT: skip_if_absent}
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata)


def _lazy_default(cls: type, name: str) -> Any:
    schema = record_schema_of(cls)
    if schema is None:
        raise TypeError(f"{cls!r} is not an expanded record")
    return field_default(schema, name)


def _record_default(cls: type[Any]) -> Any:
    """Create the record with every field set to its default.

    Raises:
        TypeError: If `cls` is not an expanded record.
        SpecificationError: If the type of a field has no default.
    """
    schema = record_schema_of(cls)
    if schema is None:
        raise TypeError(f"{cls!r} is not an expanded record")
    return default_record(schema)


def _dataclass_field(cls: type, layout: FieldLayout) -> Any:
    metadata = {
        WIRE_NAME: layout.wire_name,
        DOC: layout.doc,
        ELECTIVE: layout.elective,
        SKIP_IF_ABSENT: layout.skip_if_absent,
        DEFAULT_ON_MISSING: layout.default_on_missing,
    }

    if layout.default is not MISSING:
        # Unhashable defaults (lists, dicts, mutable records) are copied for every instance.
        if type(layout.default).__hash__ is None:
            factory = functools.partial(copy.deepcopy, layout.default)
            return dataclasses.field(default_factory=factory, metadata=metadata)
        return dataclasses.field(default=layout.default, metadata=metadata)

    if layout.default_on_missing:
        return dataclasses.field(default_factory=functools.partial(_lazy_default, cls, layout.name), metadata=metadata)

    return dataclasses.field(metadata=metadata)


def _check_unexpanded(cls: type, decorator: str) -> None:
    if record_schema_of(cls) is not None or kind_schema_of(cls) is not None:
        raise SpecificationError(f"{cls.__qualname__} is already expanded, {decorator} cannot be applied again")


def _finalize_record(
    cls: C, spec: AttributeSpecification, layout: list[FieldLayout], localns: dict[str, Any] | None
) -> C:
    for field_layout in layout:
        setattr(cls, field_layout.name, _dataclass_field(cls, field_layout))
    cls.__annotations__ = {field_layout.name: field_layout.type for field_layout in layout}

    record_cls = dataclasses.dataclass(kw_only=True)(cls)
    setattr(record_cls, lsp_types.RECORD_LAYOUT_ATTRIBUTE, RecordSchema(record_cls, spec, tuple(layout), localns))

    if "default" not in record_cls.__dict__ and all(f.name != "default" for f in layout):
        record_cls.default = classmethod(_record_default)  # type: ignore[attr-defined]

    logger.debug(f"Expanded record {record_cls.__qualname__} with fields {[f.name for f in layout]}")
    return record_cls


def _is_class_var(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return typing.get_origin(annotation) is typing.ClassVar


def _declared_fields(cls: type) -> tuple[list[DeclaredField], dict[str, dict[str, Any]]]:
    """Collect the fields written in a class body, and the directives given through `wire_field`."""
    declared: list[DeclaredField] = []
    directives: dict[str, dict[str, Any]] = {}

    for name, annotation in inspect.get_annotations(cls).items():
        if _is_class_var(annotation):
            continue

        value = cls.__dict__.get(name, MISSING)
        doc = ""
        if isinstance(value, dataclasses.Field):
            directives[name] = dict(value.metadata)
            doc = value.metadata.get(DOC, "")
            if value.default is not MISSING:
                value = value.default
            elif value.default_factory is not MISSING:
                value = value.default_factory()
            else:
                value = MISSING

        declared.append(DeclaredField.from_annotation(name, annotation, doc, value))

    return declared, directives


def _apply_directives(layout: list[FieldLayout], directives: dict[str, dict[str, Any]]) -> list[FieldLayout]:
    applied: list[FieldLayout] = []
    for field_layout in layout:
        metadata = directives.get(field_layout.name, {})
        changes: dict[str, Any] = {}
        if metadata.get(WIRE_NAME):
            changes["wire_name"] = metadata[WIRE_NAME]
        if metadata.get(SKIP_IF_ABSENT) is not None:
            changes["skip_if_absent"] = metadata[SKIP_IF_ABSENT]
        applied.append(dataclasses.replace(field_layout, **changes) if changes else field_layout)
    return applied


def _expand_record(cls: C, spec: AttributeSpecification, localns: dict[str, Any] | None, decorator: str) -> C:
    if not isinstance(cls, type) or issubclass(cls, enum.Enum):
        raise SpecificationError(f"{decorator} applies to record declarations, not to {cls!r}")
    _check_unexpanded(cls, decorator)

    declared, directives = _declared_fields(cls)
    layout = _apply_directives(synthesize(spec, declared), directives)
    return _finalize_record(cls, spec, layout, localns)


@overload
def lsp_object(annotation: C, *, localns: dict[str, Any] | None = None) -> C: ...


@overload
def lsp_object(
    annotation: str | Iterable[Token] = "", *, localns: dict[str, Any] | None = None
) -> Callable[[C], C]: ...


def lsp_object(annotation: Any = "", *, localns: dict[str, Any] | None = None) -> Any:
    """Expand a record declaration.

    Can be used bare (`@lsp_object`) or with the annotation text (`@lsp_object("allow_missing")`).
    The annotation is parsed right away, so specification errors surface when the decorator is evaluated.

    Args:
        annotation (str | Iterable[Token]): The options of the record, see `parse_attributes`.
        localns (dict[str, Any] | None): Extra names for resolving postponed annotations, e.g. of records that
            are declared inside a function.

    Returns:
        The decorator, or the expanded class when used bare.

    Raises:
        SpecificationError: For invalid annotations, or a class that is not a record declaration.
    """
    if isinstance(annotation, type):
        return _expand_record(annotation, AttributeSpecification(), localns, "lsp_object")

    spec = parse_attributes(annotation)

    def decorator(cls: C) -> C:
        return _expand_record(cls, spec, localns, "lsp_object")

    return decorator


def record(
    cls: C | None = None, *, allow_missing: bool = False, localns: dict[str, Any] | None = None
) -> Any:
    """Register an already expanded record declaration, as emitted by the `Writer`.

    No fields are injected. Fields declared with `wire_field` keep their explicit directives.

    Args:
        cls (type | None): The class, when used bare.
        allow_missing (bool): Every field defaults when it is missing from the input.
        localns (dict[str, Any] | None): Extra names for resolving postponed annotations.
    """
    spec = AttributeSpecification(allow_missing=allow_missing)

    def decorator(target: C) -> C:
        return _expand_record(target, spec, localns, "record")

    if cls is not None:
        return decorator(cls)
    return decorator


def _is_unit_annotation(annotation: Any) -> bool:
    return annotation is None or annotation is type(None) or annotation == "None"


def _make_variant(kind_cls: type, variant: VariantLayout) -> type:
    """Create the class of one variant of an untagged kind, a frozen dataclass deriving from the kind."""
    namespace: dict[str, Any] = {
        "__module__": kind_cls.__module__,
        "__qualname__": f"{kind_cls.__qualname__}.{variant.name}",
        "__doc__": variant.doc or f"The `{variant.name}` variant of `{kind_cls.__qualname__}`.",
        VARIANT_ATTRIBUTE: variant.name,
    }
    if not variant.is_unit:
        namespace["__annotations__"] = {"value": variant.payload}

    return dataclasses.dataclass(frozen=True)(type(variant.name, (kind_cls,), namespace))


def _expand_kind(cls: C, spec: KindSpecification, localns: dict[str, Any] | None) -> C:
    if not isinstance(cls, type):
        raise SpecificationError(f"lsp_kind applies to kind declarations, not to {cls!r}")
    _check_unexpanded(cls, "lsp_kind")

    if issubclass(cls, enum.Enum):
        if spec.number and not issubclass(cls, lsp_types.LspEnum):
            # A plain Enum numbers auto() members from 1, which would shift every discriminant.
            raise SpecificationError(f"Number kind {cls.__qualname__} must derive from LspEnum")

        variants: list[KindVariant] = []
        for member in cls:
            discriminant = None
            if spec.number:
                if not isinstance(member.value, int) or isinstance(member.value, bool):
                    raise SpecificationError(
                        f"Variant {member.name} of number kind {cls.__qualname__} needs an integer value"
                    )
                discriminant = member.value
            variants.append(KindVariant(member.name, discriminant))

        layout = layout_kind(spec, variants)
        setattr(cls, lsp_types.KIND_LAYOUT_ATTRIBUTE, KindSchema(cls, spec, layout, {}, localns))
        logger.debug(f"Expanded {layout.shape.value} kind {cls.__qualname__}")
        return cls

    annotations = inspect.get_annotations(cls)
    if not annotations:
        raise SpecificationError(f"{cls.__qualname__} declares no variants")

    variants = [
        KindVariant(name, None, None if _is_unit_annotation(annotation) else annotation)
        for name, annotation in annotations.items()
    ]
    if all(variant.is_unit for variant in variants):
        raise SpecificationError(f"{cls.__qualname__} has no variant with data, declare it as an enum instead")

    layout = layout_kind(spec, variants)
    variant_classes = {variant.name: _make_variant(cls, variant) for variant in layout.variants}
    for name, variant_cls in variant_classes.items():
        setattr(cls, name, variant_cls)

    setattr(cls, lsp_types.KIND_LAYOUT_ATTRIBUTE, KindSchema(cls, spec, layout, variant_classes, localns))
    logger.debug(f"Expanded {layout.shape.value} kind {cls.__qualname__} with variants {list(variant_classes)}")
    return cls


@overload
def lsp_kind(annotation: C, *, localns: dict[str, Any] | None = None) -> C: ...


@overload
def lsp_kind(annotation: str | Iterable[Token] = "", *, localns: dict[str, Any] | None = None) -> Callable[[C], C]: ...


def lsp_kind(annotation: Any = "", *, localns: dict[str, Any] | None = None) -> Any:
    """Expand a kind declaration.

    On an `enum.Enum`, the members become string tags (their lowerCamelCase names), or consecutive integers
    with the `number` marker. On a plain class, every annotation declares a variant with data of the annotated
    type (`None` for a variant without data); the kind is untagged and each variant becomes a nested frozen
    dataclass, e.g. `BooleanOrOptions.Boolean(True)`.

    Args:
        annotation (str | Iterable[Token]): `number`, `type = "number"` or `type = "string"`, or nothing.
        localns (dict[str, Any] | None): Extra names for resolving postponed payload annotations.

    Raises:
        SpecificationError: For invalid annotations, mixed number and data variants, or a class without variants.
    """
    if isinstance(annotation, type):
        return _expand_kind(annotation, KindSpecification(), localns)

    spec = parse_kind_attributes(annotation)

    def decorator(cls: C) -> C:
        return _expand_kind(cls, spec, localns)

    return decorator


def fields_of(cls: type) -> tuple[FieldLayout, ...]:
    """The field layout of an expanded record, injected fields included.

    Raises:
        TypeError: If `cls` is not an expanded record.
    """
    schema = record_schema_of(cls)
    if schema is None:
        raise TypeError(f"{cls!r} is not an expanded record")
    return schema.fields


def variants_of(cls: type) -> tuple[VariantLayout, ...]:
    """The variants of an expanded kind, with their wire tags.

    Raises:
        TypeError: If `cls` is not an expanded kind.
    """
    schema = kind_schema_of(cls)
    if schema is None:
        raise TypeError(f"{cls!r} is not an expanded kind")
    return schema.layout.variants
