"""Expand LSP message declarations into serializable records and kinds."""

from lsp_msg_generator.codec import dumps, from_json, loads, to_json
from lsp_msg_generator.declare import fields_of, lsp_kind, lsp_object, record, variants_of, wire_field
from lsp_msg_generator.elective import ABSENT, Absent, Elective, Present
from lsp_msg_generator.errors import DeserializationError, LspGeneratorError, SerializationError, SpecificationError
from lsp_msg_generator.lsp_types import DocumentSelector, LspAny, LspEnum, MarkupKind
from lsp_msg_generator.run import format_source, generate_module
from lsp_msg_generator.spec_parser import AttributeSpecification, KindSpecification, parse_attributes, render_attributes
from lsp_msg_generator.synthesizer import KindVariant
from lsp_msg_generator.writer import Writer
from lsp_msg_generator.writer_dto import FieldDeclaration, KindDeclaration, RecordDeclaration

__all__ = [
    "ABSENT",
    "Absent",
    "AttributeSpecification",
    "DeserializationError",
    "DocumentSelector",
    "Elective",
    "FieldDeclaration",
    "KindDeclaration",
    "KindSpecification",
    "KindVariant",
    "LspAny",
    "LspEnum",
    "LspGeneratorError",
    "MarkupKind",
    "Present",
    "RecordDeclaration",
    "SerializationError",
    "SpecificationError",
    "Writer",
    "dumps",
    "fields_of",
    "format_source",
    "from_json",
    "generate_module",
    "loads",
    "lsp_kind",
    "lsp_object",
    "parse_attributes",
    "record",
    "render_attributes",
    "to_json",
    "variants_of",
    "wire_field",
]
