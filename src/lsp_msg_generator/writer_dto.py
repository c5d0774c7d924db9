from __future__ import annotations

from dataclasses import MISSING, dataclass, field

from lsp_msg_generator.elective import ABSENT
from lsp_msg_generator.spec_parser import (
    AttributeSpecification,
    KindSpecification,
    parse_attributes,
    parse_kind_attributes,
)
from lsp_msg_generator.synthesizer import DeclaredField, FieldLayout, KindLayout, KindVariant, layout_kind, synthesize


@dataclass
class FieldDeclaration:
    """A field of a record declaration, as source text.

    Attributes:
        name: The in-memory name of the field.
        type: The annotation, e.g. "Elective[list[str]]".
        doc: The documentation of the field.
        default: The default as a source expression, e.g. "TraceKind.Off", or None for no default.
    """

    name: str
    type: str
    doc: str = ""
    default: str | None = None


@dataclass
class RecordDeclaration:
    """A record declaration to be expanded by the writer.

    Attributes:
        name: The class name.
        fields: The declared fields, in order.
        annotation: The annotation text, e.g. 'allow_missing, triggers = "completion"'.
        doc: The documentation of the record.
        type_parameters: Names of type variables the record is generic over.
    """

    name: str
    fields: list[FieldDeclaration] = field(default_factory=list)
    annotation: str = ""
    doc: str = ""
    type_parameters: list[str] = field(default_factory=list)


@dataclass
class KindDeclaration:
    """A kind declaration to be expanded by the writer.

    Variant payloads are source text, e.g. "bool" or "TextDocumentSyncOptions"; None marks a unit variant.

    Attributes:
        name: The class name.
        variants: The declared variants, in order.
        annotation: The annotation text, e.g. "number".
        doc: The documentation of the kind.
        type_parameters: Names of type variables the kind is generic over.
    """

    name: str
    variants: list[KindVariant] = field(default_factory=list)
    annotation: str = ""
    doc: str = ""
    type_parameters: list[str] = field(default_factory=list)


@dataclass
class RecordGenerationContext:
    """Everything the writer needs to emit one record.

    Attributes:
        declaration: The record declaration being processed.
        spec: Its parsed annotation.
        layout: The synthesized fields, injected ones first.
        defaults: The default of every field as a source expression, for fields that have one.
    """

    declaration: RecordDeclaration
    spec: AttributeSpecification
    layout: list[FieldLayout]
    defaults: dict[str, str]

    @classmethod
    def create(cls, declaration: RecordDeclaration) -> RecordGenerationContext:
        """Parse the annotation and synthesize the layout of a record declaration.

        Raises:
            SpecificationError: If the annotation or the fields are invalid.
        """
        spec = parse_attributes(declaration.annotation)
        declared = [
            DeclaredField.from_annotation(f.name, f.type, f.doc, MISSING if f.default is None else f.default)
            for f in declaration.fields
        ]
        layout = synthesize(spec, declared)

        defaults: dict[str, str] = {}
        for field_layout in layout:
            default = field_layout.default
            if default is MISSING:
                continue
            if isinstance(default, str) and not field_layout.synthesized:
                defaults[field_layout.name] = default
            elif default is ABSENT:
                defaults[field_layout.name] = "ABSENT"
            else:
                defaults[field_layout.name] = repr(default)

        return cls(declaration=declaration, spec=spec, layout=layout, defaults=defaults)


@dataclass
class KindGenerationContext:
    """Everything the writer needs to emit one kind.

    Attributes:
        declaration: The kind declaration being processed.
        spec: Its parsed annotation.
        layout: The dispatch shape and the variant tags.
    """

    declaration: KindDeclaration
    spec: KindSpecification
    layout: KindLayout

    @classmethod
    def create(cls, declaration: KindDeclaration) -> KindGenerationContext:
        """Parse the annotation and lay out the variants of a kind declaration.

        Raises:
            SpecificationError: If the annotation or the variants are invalid.
        """
        spec = parse_kind_attributes(declaration.annotation)
        return cls(declaration=declaration, spec=spec, layout=layout_kind(spec, declaration.variants))
