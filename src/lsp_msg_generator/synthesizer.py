"""Turn a parsed specification and the declared members of a type into its final layout.

For records, the layout is the ordered list of fields, including the fields the annotation injects, together
with their wire names and serialization directives. For kinds, the layout is the dispatch shape and the tag of
every variant.
"""

from __future__ import annotations

import ast
import enum
import logging
import typing
from collections.abc import Sequence
from dataclasses import MISSING, dataclass, field
from typing import Any

from lsp_msg_generator.elective import ABSENT, Elective
from lsp_msg_generator.errors import SpecificationError
from lsp_msg_generator.helper import to_camel_case
from lsp_msg_generator.spec_parser import AttributeSpecification, KindSpecification

logger = logging.getLogger(__name__)

DOCUMENT_SELECTOR_DOC = (
    "Identifies the scope of the registration.\n\n"
    "If `None`, the `DocumentSelector` provided by the client will be used."
)
STATIC_REGISTRATION_DOC = "The id used to register the request."


def is_elective_annotation(annotation: Any) -> bool:
    """Whether an annotation declares an `Elective` field.

    Postponed (string) annotations are inspected syntactically: the outermost name must be `Elective`,
    optionally qualified, e.g. `Elective[str]` or `elective.Elective[str]`.

    Args:
        annotation (Any): The annotation of a field.

    Returns:
        bool: True for `Elective` and any parametrization of it.
    """
    if isinstance(annotation, str):
        try:
            node = ast.parse(annotation, mode="eval").body
        except SyntaxError:
            return False

        if isinstance(node, ast.Subscript):
            node = node.value
        if isinstance(node, ast.Name):
            return node.id == "Elective"
        if isinstance(node, ast.Attribute):
            return node.attr == "Elective"
        return False

    return annotation is Elective or typing.get_origin(annotation) is Elective


@dataclass(frozen=True)
class DeclaredField:
    """A field as written in a record declaration.

    Attributes:
        name: The in-memory name.
        type: The annotation, either evaluated or as source text.
        doc: The documentation of the field.
        default: The default written in the declaration, `MISSING` if there is none.
        elective: The field is an `Elective`.
    """

    name: str
    type: Any
    doc: str = ""
    default: Any = field(default_factory=lambda: MISSING)
    elective: bool = False

    @classmethod
    def from_annotation(cls, name: str, annotation: Any, doc: str = "", default: Any = MISSING) -> DeclaredField:
        return cls(name, annotation, doc, default, is_elective_annotation(annotation))


@dataclass(frozen=True)
class FieldLayout:
    """A field of the final record, with its serialization directives.

    Attributes:
        name: The in-memory name.
        wire_name: The property name in the JSON object.
        type: The semantic type of the field.
        doc: The documentation of the field.
        elective: The field is an `Elective`.
        skip_if_absent: Leave the property out of the output when the value is `ABSENT`.
        default_on_missing: A missing property yields the default instead of an error.
        default: The explicit default, `MISSING` to use the default of the type.
        synthesized: The field was injected by an annotation option.
    """

    name: str
    wire_name: str
    type: Any
    doc: str = ""
    elective: bool = False
    skip_if_absent: bool = False
    default_on_missing: bool = False
    default: Any = field(default_factory=lambda: MISSING)
    synthesized: bool = False


def _synthesized_fields(spec: AttributeSpecification) -> list[DeclaredField]:
    """The fields injected by the options of a specification, in their fixed order.

    Their types are source text, resolved against the builtin names when the record is first used.
    """
    injected: list[DeclaredField] = []

    if spec.has_document_selector:
        injected.append(
            DeclaredField("document_selector", "DocumentSelector | None", DOCUMENT_SELECTOR_DOC, None)
        )

    if spec.has_static_registration:
        injected.append(DeclaredField("id", "Elective[str]", STATIC_REGISTRATION_DOC, ABSENT, elective=True))

    if spec.dynamic_registration is not None:
        doc = f"Supports dynamic registration of the {spec.dynamic_registration}."
        injected.append(DeclaredField("dynamic_registration", "bool", doc))

    if spec.link_support is not None:
        doc = f"Supports additional metadata in the form of {spec.link_support} links."
        injected.append(DeclaredField("link_support", "bool", doc))

    if spec.markup_kind_list is not None:
        doc = f"Preferred formats for the {spec.markup_kind_list} property, most preferred first."
        injected.append(DeclaredField(f"{spec.markup_kind_list}_format", "list[MarkupKind]", doc))

    if spec.triggers is not None:
        doc = f"Characters that trigger {spec.triggers} automatically."
        injected.append(DeclaredField("trigger_characters", "list[str]", doc))

    if spec.resolve_provider is not None:
        doc = f"Provides support to resolve additional information for an {spec.resolve_provider} item."
        injected.append(DeclaredField("resolve_provider", "bool", doc))

    return injected


def _layout_field(spec: AttributeSpecification, declared: DeclaredField, synthesized: bool) -> FieldLayout:
    if declared.elective:
        return FieldLayout(
            name=declared.name,
            wire_name=to_camel_case(declared.name),
            type=declared.type,
            doc=declared.doc,
            elective=True,
            skip_if_absent=True,
            default_on_missing=True,
            default=ABSENT if declared.default is MISSING else declared.default,
            synthesized=synthesized,
        )

    return FieldLayout(
        name=declared.name,
        wire_name=to_camel_case(declared.name),
        type=declared.type,
        doc=declared.doc,
        default_on_missing=spec.allow_missing or declared.default is not MISSING,
        default=declared.default,
        synthesized=synthesized,
    )


def synthesize(spec: AttributeSpecification, declared_fields: Sequence[DeclaredField]) -> list[FieldLayout]:
    """Produce the final field layout of a record.

    Injected fields come first, in the order document selector, static registration id, dynamic registration,
    link support, markup formats, trigger characters, resolve provider. The declared fields follow in their
    original order.

    Args:
        spec (AttributeSpecification): The parsed annotation of the record.
        declared_fields (Sequence[DeclaredField]): The fields written in the declaration.

    Returns:
        list[FieldLayout]: The fields of the record.

    Raises:
        SpecificationError: If two fields end up with the same name.
    """
    layout: list[FieldLayout] = []
    seen: set[str] = set()

    for declared in _synthesized_fields(spec):
        layout.append(_layout_field(spec, declared, synthesized=True))
        seen.add(declared.name)

    for declared in declared_fields:
        if declared.name in seen:
            raise SpecificationError(f"Field {declared.name!r} is declared twice or clashes with an injected field")
        layout.append(_layout_field(spec, declared, synthesized=False))
        seen.add(declared.name)

    wire_names = [f.wire_name for f in layout]
    for wire_name in set(wire_names):
        if wire_names.count(wire_name) > 1:
            raise SpecificationError(f"Several fields are serialized as {wire_name!r}")

    return layout


class KindShape(enum.Enum):
    """How the variants of a kind are represented on the wire."""

    NUMBER = "number"
    STRING = "string"
    UNTAGGED = "untagged"


@dataclass(frozen=True)
class KindVariant:
    """A variant as written in a kind declaration.

    Attributes:
        name: The variant identifier.
        discriminant: The explicit discriminant, if any.
        payload: The type of the associated data, None for unit variants.
        doc: The documentation of the variant.
    """

    name: str
    discriminant: int | None = None
    payload: Any = None
    doc: str = ""

    @property
    def is_unit(self) -> bool:
        return self.payload is None


@dataclass(frozen=True)
class VariantLayout:
    """A variant with its wire tag.

    The tag is an integer for number kinds, a string for string kinds and None for untagged kinds.
    """

    name: str
    tag: int | str | None
    payload: Any = None
    doc: str = ""

    @property
    def is_unit(self) -> bool:
        return self.payload is None


@dataclass(frozen=True)
class KindLayout:
    """The dispatch strategy of a kind."""

    shape: KindShape
    variants: tuple[VariantLayout, ...]

    def variant_for_tag(self, tag: int | str) -> VariantLayout | None:
        """Look up the variant with a wire tag. Booleans never match integer tags."""
        if isinstance(tag, bool):
            return None

        for variant in self.variants:
            if variant.tag == tag and type(variant.tag) is type(tag):
                return variant
        return None

    def variant_named(self, name: str) -> VariantLayout:
        for variant in self.variants:
            if variant.name == name:
                return variant
        raise KeyError(f"No variant named {name!r}")


def assign_discriminants(variants: Sequence[KindVariant]) -> list[int]:
    """Number unit variants consecutively.

    The first explicit discriminant in declaration order fixes the numbering, the default is to start at 0.
    Later explicit discriminants have to agree with the consecutive numbering.

    Examples:
        `None = 0, Full, Incremental` numbers 0, 1, 2; `File = 1, Module, Namespace` numbers 1, 2, 3.

    Args:
        variants (Sequence[KindVariant]): The variants of a number kind.

    Returns:
        list[int]: One integer per variant, in declaration order.

    Raises:
        SpecificationError: If an explicit discriminant breaks the consecutive numbering.
    """
    base = 0
    for index, variant in enumerate(variants):
        if variant.discriminant is not None:
            base = variant.discriminant - index
            break

    numbers = [base + index for index in range(len(variants))]
    for number, variant in zip(numbers, variants):
        if variant.discriminant is not None and variant.discriminant != number:
            raise SpecificationError(
                f"Variant {variant.name} has discriminant {variant.discriminant}, "
                f"but number kinds need consecutive discriminants (expected {number})"
            )

    return numbers


def layout_kind(spec: KindSpecification, variants: Sequence[KindVariant]) -> KindLayout:
    """Choose the dispatch shape of a kind and compute the tag of every variant.

    Args:
        spec (KindSpecification): The parsed annotation of the kind.
        variants (Sequence[KindVariant]): The declared variants, in declaration order.

    Returns:
        KindLayout: The dispatch shape and the variants with their tags.

    Raises:
        SpecificationError: For an empty kind, a number kind with data-carrying variants, duplicate variant
            names, or discriminants on variants with data.
    """
    if not variants:
        raise SpecificationError("A kind needs at least one variant")

    names = [variant.name for variant in variants]
    if len(set(names)) != len(names):
        raise SpecificationError(f"Variant names of a kind must be unique: {names}")

    all_unit = all(variant.is_unit for variant in variants)

    if spec.number:
        if not all_unit:
            raise SpecificationError("A number kind cannot mix numeric tags with variants that carry data")

        numbers = assign_discriminants(variants)
        layouts = tuple(
            VariantLayout(variant.name, number, None, variant.doc) for variant, number in zip(variants, numbers)
        )
        return KindLayout(KindShape.NUMBER, layouts)

    if all_unit:
        layouts = tuple(
            VariantLayout(variant.name, to_camel_case(variant.name), None, variant.doc) for variant in variants
        )

        tags = [layout.tag for layout in layouts]
        if len(set(tags)) != len(tags):
            raise SpecificationError(f"Variants of a kind are serialized with the same tag: {tags}")

        return KindLayout(KindShape.STRING, layouts)

    for variant in variants:
        if variant.discriminant is not None and not variant.is_unit:
            raise SpecificationError(f"Variant {variant.name} carries data and cannot have a discriminant")

    logger.debug(f"Kind with variants {names} is untagged")
    return KindLayout(
        KindShape.UNTAGGED,
        tuple(VariantLayout(variant.name, None, variant.payload, variant.doc) for variant in variants),
    )
