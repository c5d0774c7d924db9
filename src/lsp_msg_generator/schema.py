"""Schema tables attached to expanded declarations.

The declaration decorators attach a `RecordSchema` to every record class and a `KindSchema` to every kind
class. The codec only ever reads these tables; it does not look at annotations itself.
"""

from __future__ import annotations

import logging
import sys
import types
import typing
from dataclasses import dataclass, field
from typing import Any, TypeVar

from lsp_msg_generator import lsp_types
from lsp_msg_generator.elective import ABSENT, Absent, Elective, Present
from lsp_msg_generator.errors import SpecificationError
from lsp_msg_generator.spec_parser import AttributeSpecification, KindSpecification
from lsp_msg_generator.synthesizer import FieldLayout, KindLayout

logger = logging.getLogger(__name__)

# Names that annotations of expanded declarations may use without importing them.
BUILTIN_NAMESPACE: dict[str, Any] = {
    "Any": Any,
    "Elective": Elective,
    "Absent": Absent,
    "Present": Present,
    "ABSENT": ABSENT,
    "MarkupKind": lsp_types.MarkupKind,
    "DocumentSelector": lsp_types.DocumentSelector,
    "LspAny": lsp_types.LspAny,
}


def _resolve_hints(cls: type, localns: dict[str, Any] | None) -> dict[str, Any]:
    # Names of the declaring module win over the builtin ones, explicit names win over both.
    namespace = dict(BUILTIN_NAMESPACE)
    module = sys.modules.get(cls.__module__)
    if module is not None:
        namespace.update(vars(module))
    if localns:
        namespace.update(localns)

    try:
        hints = typing.get_type_hints(cls, localns=namespace)
    except NameError as e:
        raise SpecificationError(f"Cannot resolve the annotations of {cls.__qualname__}: {e}") from e

    logger.debug(f"Resolved annotations of {cls.__qualname__}")
    return hints


def substitute(annotation: Any, mapping: dict[TypeVar, Any]) -> Any:
    """Replace type variables in an annotation.

    Args:
        annotation (Any): An evaluated annotation, e.g. `list[T] | None`.
        mapping (dict[TypeVar, Any]): The type arguments for each type variable. Unmapped variables become `Any`.

    Returns:
        Any: The annotation with every type variable replaced.
    """
    if isinstance(annotation, TypeVar):
        return mapping.get(annotation, Any)

    args = typing.get_args(annotation)
    if not args or not mapping:
        return annotation

    origin = typing.get_origin(annotation)
    if origin is typing.Literal:
        return annotation

    new_args = tuple(substitute(arg, mapping) for arg in args)
    if origin is types.UnionType or origin is typing.Union:
        return typing.Union[new_args]

    return origin[new_args]


def type_arguments(cls: type, args: tuple[Any, ...]) -> dict[TypeVar, Any]:
    """Map the type parameters of a generic class to the arguments of one of its parametrizations."""
    parameters = getattr(cls, "__parameters__", ())
    return dict(zip(parameters, args))


@dataclass
class RecordSchema:
    """The expanded layout of a record class.

    Attributes:
        cls: The record class.
        spec: The parsed annotation of the record.
        fields: The fields in layout order.
        localns: Extra names for resolving postponed annotations.
    """

    cls: type
    spec: AttributeSpecification
    fields: tuple[FieldLayout, ...]
    localns: dict[str, Any] | None = None
    _hints: dict[str, Any] | None = field(default=None, init=False, repr=False)

    @property
    def name(self) -> str:
        return self.cls.__qualname__

    def type_hints(self) -> dict[str, Any]:
        """The evaluated type of every field. Resolved on first use, so declarations may refer to later ones."""
        if self._hints is None:
            self._hints = _resolve_hints(self.cls, self.localns)
        return self._hints

    def field_types(self, args: tuple[Any, ...] = ()) -> list[tuple[FieldLayout, Any]]:
        """Pair every field with its evaluated type, with type arguments of a generic record applied."""
        hints = self.type_hints()
        mapping = type_arguments(self.cls, args)
        return [(layout, substitute(hints.get(layout.name, Any), mapping)) for layout in self.fields]

    def field_named(self, name: str) -> FieldLayout:
        for layout in self.fields:
            if layout.name == name:
                return layout
        raise KeyError(f"{self.name} has no field {name!r}")


@dataclass
class KindSchema:
    """The expanded layout of a kind class.

    Attributes:
        cls: The kind class, an enum for unit-only kinds.
        spec: The parsed annotation of the kind.
        layout: The dispatch shape and the variant tags.
        variant_classes: The class of every variant of an untagged kind, by variant name.
        localns: Extra names for resolving postponed payload annotations.
    """

    cls: type
    spec: KindSpecification
    layout: KindLayout
    variant_classes: dict[str, type] = field(default_factory=dict)
    localns: dict[str, Any] | None = None
    _hints: dict[str, Any] | None = field(default=None, init=False, repr=False)

    @property
    def name(self) -> str:
        return self.cls.__qualname__

    def payload_types(self, args: tuple[Any, ...] = ()) -> dict[str, Any]:
        """The evaluated payload type of every data-carrying variant, with type arguments applied."""
        if self._hints is None:
            self._hints = _resolve_hints(self.cls, self.localns)

        mapping = type_arguments(self.cls, args)
        return {
            variant.name: substitute(self._hints.get(variant.name, Any), mapping)
            for variant in self.layout.variants
            if not variant.is_unit
        }


def record_schema_of(tp: Any) -> RecordSchema | None:
    """The schema of a record class or of a parametrization of a generic record class."""
    cls = typing.get_origin(tp) or tp
    schema = getattr(cls, lsp_types.RECORD_LAYOUT_ATTRIBUTE, None)
    if isinstance(schema, RecordSchema) and schema.cls is cls:
        return schema
    return None


def kind_schema_of(tp: Any) -> KindSchema | None:
    """The schema of a kind class or of a parametrization of a generic kind class."""
    cls = typing.get_origin(tp) or tp
    schema = getattr(cls, lsp_types.KIND_LAYOUT_ATTRIBUTE, None)
    if isinstance(schema, KindSchema) and schema.cls is cls:
        return schema
    return None
