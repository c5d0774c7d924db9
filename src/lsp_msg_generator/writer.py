"""Generate the expanded Python source of LSP message declarations.

The runtime decorators (`lsp_object`, `lsp_kind`) expand declarations when their module is imported. The
`Writer` performs the same expansion ahead of time and emits plain source, in which every injected field is
written out with its wire name, its default and its documentation.
"""

from __future__ import annotations

import logging
import re
from typing import Literal

from lsp_msg_generator import helper
from lsp_msg_generator.synthesizer import FieldLayout, KindShape, VariantLayout
from lsp_msg_generator.writer_dto import (
    KindDeclaration,
    KindGenerationContext,
    RecordDeclaration,
    RecordGenerationContext,
)

logger = logging.getLogger(__name__)

INDENT = "    "
PACKAGE_NAME = "lsp_msg_generator"

# Names that generated annotations and defaults may use, and the package that provides them.
PACKAGE_NAMES = ("ABSENT", "Absent", "DocumentSelector", "Elective", "LspAny", "MarkupKind", "Present")

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Default expressions that need a factory, and the factory to use.
_FACTORY_DEFAULTS = {"[]": "list", "{}": "dict"}


class Writer:
    """A class that handles writing the expanded declarations of one module."""

    VALID_TYPING_IMPORTS = Literal["Any", "Generic", "Literal", "TypeVar"]

    def __init__(self, module_docstring: str | None = None, header_comment: str | None = None):
        """Initialize the writer.

        Args:
            module_docstring (str | None): The docstring of the generated module.
                Defaults to a note that the module is generated.
            header_comment (str | None): A comment placed above the imports, e.g. a "do not edit" note.
        """
        self._imports: list[str] = []
        self._add_import("from __future__ import annotations")

        self._typing_imports: set[Writer.VALID_TYPING_IMPORTS] = set()
        self._package_imports: set[str] = set()
        self._enum_import = False

        self.type_vars: set[str] = set()
        self.declared_names: list[str] = []
        self._blocks: list[list[str]] = []

        self.header_comment = header_comment
        self.docstring = helper.new_docstring(module_docstring or "This module is generated, do not edit it by hand.")

    def _add_typing_import(self, module_name: Writer.VALID_TYPING_IMPORTS):
        """Add an import for a name from the 'typing' package.

        Args:
            module_name (Writer.VALID_TYPING_IMPORTS): The name to import from `typing`.
        """
        self._typing_imports.add(module_name)

    def _add_import(self, import_line: str):
        """Add a full import line.

        E.g. 'import enum'.

        Args:
            import_line (str): The import line to add.
        """
        if import_line not in self._imports:
            self._imports.append(import_line)

    def _add_package_import(self, name: str):
        self._package_imports.add(name)

    def _add_enum_import(self):
        """Adds an import for the `Enum` class."""
        self._enum_import = True

    def _register_names(self, source: str):
        """Add imports for the names a generated annotation or default refers to."""
        for name in _IDENTIFIER.findall(source):
            if name in PACKAGE_NAMES:
                self._add_package_import(name)
            elif name in ("Any", "Literal"):
                self._add_typing_import(name)

    def _register_type_parameters(self, type_parameters: list[str]) -> list[str]:
        """Register type variables and return the base class list that makes a class generic over them."""
        if not type_parameters:
            return []

        self._add_typing_import("Generic")
        self._add_typing_import("TypeVar")
        self.type_vars.update(type_parameters)
        return [helper.new_group("Generic", type_parameters)]

    @property
    def imports(self) -> list[str]:
        """Get the full list of import strings that were added to the writer, including typing imports.

        Returns:
            list[str]: The list of imports that were previously added.
        """
        import_lines: list[str] = list(self._imports)
        if self._enum_import or self._typing_imports:
            import_lines.append("")

        if self._enum_import:
            import_lines.append("from enum import Enum")

        if self._typing_imports:
            order = ["Any", "Generic", "Literal", "TypeVar"]
            names = [n for n in order if n in self._typing_imports]
            import_lines.append("from typing import " + ", ".join(names))

        if self._package_imports:
            import_lines.append("")
            import_lines.append(f"from {PACKAGE_NAME} import " + ", ".join(sorted(self._package_imports)))

        return import_lines

    # ===== Records =====

    def _gen_field(self, context: RecordGenerationContext, layout: FieldLayout) -> list[str]:
        """Generate the declaration of one record field, followed by its attribute docstring."""
        type_source = helper.type_to_source(layout.type)
        self._register_names(type_source)

        arguments = [repr(layout.wire_name)]
        if layout.doc:
            arguments.append(f"doc={layout.doc!r}")

        default = context.defaults.get(layout.name)
        if default is not None:
            self._register_names(default)
            if default in _FACTORY_DEFAULTS:
                arguments.append(f"default_factory={_FACTORY_DEFAULTS[default]}")
            else:
                arguments.append(f"default={default}")

        lines = [f"{INDENT}{layout.name}: {type_source} = wire_field({helper.join_parameters(arguments)})"]
        lines.extend(helper.new_docstring(layout.doc, INDENT))
        return lines

    def gen_record(self, declaration: RecordDeclaration) -> list[str]:
        """Generate the expanded source of a record declaration.

        Args:
            declaration (RecordDeclaration): The record to expand.

        Returns:
            list[str]: The lines of the generated class.

        Raises:
            SpecificationError: If the annotation or the fields of the declaration are invalid.
        """
        context = RecordGenerationContext.create(declaration)
        self._add_package_import("record")
        self._add_package_import("wire_field")

        decorator_parameters = ["allow_missing=True"] if context.spec.allow_missing else None
        bases = self._register_type_parameters(declaration.type_parameters)

        lines = [
            helper.new_decorator("record", decorator_parameters),
            helper.new_class_declaration(declaration.name, bases),
        ]
        body = helper.new_docstring(declaration.doc, INDENT)
        for layout in context.layout:
            if body:
                body.append("")
            body.extend(self._gen_field(context, layout))

        lines.extend(body or [f"{INDENT}pass"])

        logger.debug(f"Generated record {declaration.name} with {len(context.layout)} fields")
        return lines

    # ===== Kinds =====

    def _gen_enum_member(self, variant: VariantLayout) -> list[str]:
        lines = [f"{INDENT}{helper.sanitize_name(variant.name)} = {variant.tag!r}"]
        lines.extend(helper.new_docstring(variant.doc, INDENT))
        return lines

    def _gen_untagged_variant(self, variant: VariantLayout) -> list[str]:
        payload = "None" if variant.is_unit else helper.type_to_source(variant.payload)
        self._register_names(payload)

        lines = [f"{INDENT}{variant.name}: {payload}"]
        lines.extend(helper.new_docstring(variant.doc, INDENT))
        return lines

    def gen_kind(self, declaration: KindDeclaration) -> list[str]:
        """Generate the expanded source of a kind declaration.

        Kinds without data become enums whose values are the wire tags, number kinds derive from `LspEnum`.
        Kinds with data stay plain classes
        whose annotations declare the variants; `lsp_kind` turns them into the variant classes on import.

        Args:
            declaration (KindDeclaration): The kind to expand.

        Returns:
            list[str]: The lines of the generated class.

        Raises:
            SpecificationError: If the annotation or the variants of the declaration are invalid.
        """
        context = KindGenerationContext.create(declaration)
        self._add_package_import("lsp_kind")

        if context.layout.shape is KindShape.UNTAGGED:
            bases = self._register_type_parameters(declaration.type_parameters)
            decorator = helper.new_decorator("lsp_kind")
            generate_variant = self._gen_untagged_variant
        elif context.layout.shape is KindShape.NUMBER:
            self._add_package_import("LspEnum")
            bases = ["LspEnum"]
            decorator = helper.new_decorator("lsp_kind", ['"number"'])
            generate_variant = self._gen_enum_member
        else:
            self._add_enum_import()
            bases = ["Enum"]
            decorator = helper.new_decorator("lsp_kind")
            generate_variant = self._gen_enum_member

        lines = [decorator, helper.new_class_declaration(declaration.name, bases)]
        body = helper.new_docstring(declaration.doc, INDENT)
        for variant in context.layout.variants:
            if body:
                body.append("")
            body.extend(generate_variant(variant))
        lines.extend(body)

        logger.debug(f"Generated {context.layout.shape.value} kind {declaration.name}")
        return lines

    # ===== Output =====

    def add_record(self, declaration: RecordDeclaration):
        """Expand a record declaration and add it to the output."""
        self._blocks.append(self.gen_record(declaration))
        self.declared_names.append(declaration.name)

    def add_kind(self, declaration: KindDeclaration):
        """Expand a kind declaration and add it to the output."""
        self._blocks.append(self.gen_kind(declaration))
        self.declared_names.append(declaration.name)

    def dumps(self) -> str:
        """Generates the source of the module.

        Returns:
            str: The output string, ending with a newline.
        """
        out: list[str] = []
        out.extend(self.docstring)
        out.append("")

        if self.header_comment:
            out.extend(f"# {line}".rstrip() for line in self.header_comment.splitlines())
            out.append("")

        out.extend(self.imports)

        if self.type_vars:
            out.append("")
            for name in sorted(self.type_vars):
                out.append(f'{name} = TypeVar("{name}")')

        for block in self._blocks:
            out.append("")
            out.append("")
            out.extend(block)

        return "\n".join(out) + "\n"

