"""Top-level module for generating the source of LSP message declarations."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

from lsp_msg_generator.writer import Writer
from lsp_msg_generator.writer_dto import KindDeclaration, RecordDeclaration

logger = logging.getLogger(__name__)

LINE_LENGTH = 120


def format_source(raw_input: str, line_length: int = LINE_LENGTH) -> str:
    """Formats generated source using ruff.

    The source is passed through stdin, so nothing is written to disk. If ruff is not available or fails,
    the unformatted source is returned.

    Args:
        raw_input (str): The unformatted source.
        line_length (int): The maximum line length for the formatter.

    Returns:
        str: The formatted source.
    """
    try:
        # Sort the imports first, then format.
        sorted_imports = subprocess.run(
            ["ruff", "check", "--fix", "--select", "I", "--stdin-filename", "generated.py", "-"],
            input=raw_input,
            capture_output=True,
            text=True,
            check=False,
        )
        source = sorted_imports.stdout or raw_input

        formatted = subprocess.run(
            ["ruff", "format", "--line-length", str(line_length), "--stdin-filename", "generated.py", "-"],
            input=source,
            capture_output=True,
            text=True,
            check=True,
        )
        return formatted.stdout

    except FileNotFoundError:
        logger.warning("ruff not found, the generated source is left unformatted")
        return raw_input
    except subprocess.CalledProcessError as e:
        logger.error(f"Ruff formatting failed: {e}")
        logger.error(f"Stderr: {e.stderr}")
        return raw_input


def generate_module(
    records: Sequence[RecordDeclaration],
    kinds: Sequence[KindDeclaration] = (),
    module_docstring: str | None = None,
    header_comment: str | None = None,
    format_output: bool = True,
) -> str:
    """Entry-point for generating the source of a module from declarations.

    Kinds are written before records, each group in the given order.

    Args:
        records (Sequence[RecordDeclaration]): The records to expand.
        kinds (Sequence[KindDeclaration]): The kinds to expand.
        module_docstring (str | None): The docstring of the generated module.
        header_comment (str | None): A comment placed above the imports.
        format_output (bool): Whether to run the output through ruff.

    Returns:
        str: The source of the generated module.

    Raises:
        SpecificationError: If any declaration is invalid. Nothing is generated in that case.
    """
    writer = Writer(module_docstring=module_docstring, header_comment=header_comment)

    for kind in kinds:
        writer.add_kind(kind)
    for declaration in records:
        writer.add_record(declaration)

    output = writer.dumps()
    logger.info(f"Generated {len(writer.declared_names)} declarations.")

    if format_output:
        return format_source(output)
    return output
