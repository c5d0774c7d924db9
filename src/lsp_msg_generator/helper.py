"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import keyword
import re
import types
import typing
from collections.abc import Sequence
from typing import Any

# A word starts at an uppercase letter that follows a lowercase letter or digit, or at the last uppercase letter
# of an acronym that is followed by a lowercase letter (`URIParser` splits into `URI` and `Parser`).
_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def sanitize_name(name: str) -> str:
    """The member name for a variant, with a trailing underscore for keywords such as `None`."""
    return f"{name}_" if keyword.iskeyword(name) else name


def split_words(identifier: str) -> list[str]:
    """Split an identifier on its word boundaries.

    Underscores separate words, and so do changes from lower to upper case.
    Leading and trailing underscores (e.g. from `sanitize_name`) do not produce empty words.

    Examples:
        >>> split_words("document_selector")
        ['document', 'selector']
        >>> split_words("TextOnlyTransactional")
        ['Text', 'Only', 'Transactional']

    Args:
        identifier (str): The identifier to split.

    Returns:
        list[str]: The words, in order.
    """
    words: list[str] = []
    for chunk in identifier.split("_"):
        if chunk:
            words.extend(word for word in _CASE_BOUNDARY.split(chunk) if word)
    return words


def to_camel_case(identifier: str) -> str:
    """Converts an identifier to its lowerCamelCase wire name.

    The first word is lowercased entirely, every following word is capitalized.

    Examples:
        >>> to_camel_case("trigger_characters")
        'triggerCharacters'
        >>> to_camel_case("TextOnlyTransactional")
        'textOnlyTransactional'
        >>> to_camel_case("root_uri")
        'rootUri'

    Args:
        identifier (str): The in-memory name of a field or variant.

    Returns:
        str: The name used on the wire.
    """
    words = split_words(identifier)
    if not words:
        return identifier

    return words[0].lower() + "".join(word.capitalize() for word in words[1:])


def join_parameters(parameters: Sequence[str] | None) -> str:
    """Comma-separated source of the non-empty parameters."""
    return ", ".join(p for p in parameters or () if p)


def new_group(name: str, members: Sequence[str]) -> str:
    """A subscripted annotation, e.g. `Elective[str]`."""
    return f"{name}[{join_parameters(members)}]"


def new_decorator(name: str, parameters: Sequence[str] | None = None) -> str:
    """The registration line above a generated class, e.g. `@record(allow_missing=True)` or a bare `@lsp_kind`."""
    arguments = join_parameters(parameters)
    return f"@{name}({arguments})" if arguments else f"@{name}"


def new_class_declaration(name: str, bases: Sequence[str] | None = None) -> str:
    """The header of a generated record or kind, e.g. `class TraceKind(Enum):`."""
    base_list = join_parameters(bases)
    return f"class {name}({base_list}):" if base_list else f"class {name}:"


def new_docstring(text: str, indent: str = "") -> list[str]:
    """Create the lines of a docstring.

    Args:
        text (str): The documentation. May span several lines.
        indent (str): The indentation of the docstring.

    Returns:
        list[str]: The docstring lines, or no lines at all for empty documentation.
    """
    text = text.strip().replace('"""', r"\"\"\"")
    if not text:
        return []

    lines = text.splitlines()
    if len(lines) == 1:
        return [f'{indent}"""{lines[0]}"""']

    docstring = [f'{indent}"""{lines[0]}']
    docstring.extend(f"{indent}{line}" if line else "" for line in lines[1:])
    docstring.append(f'{indent}"""')
    return docstring


def type_to_source(annotation: Any) -> str:
    """Render a type annotation as source code.

    Annotations that are already strings (postponed annotations) are returned unchanged.

    Args:
        annotation (Any): A class, a generic alias, a union, or a string.

    Returns:
        str: The annotation as it would be written in source.
    """
    if isinstance(annotation, str):
        return annotation

    if annotation is None or annotation is type(None):
        return "None"

    if annotation is Any:
        return "Any"

    if isinstance(annotation, typing.TypeVar):
        return annotation.__name__

    origin = typing.get_origin(annotation)
    if origin is types.UnionType or origin is typing.Union:
        return " | ".join(type_to_source(arg) for arg in typing.get_args(annotation))

    if origin is typing.Literal:
        return new_group("Literal", [repr(arg) for arg in typing.get_args(annotation)])

    if origin is not None:
        return new_group(type_to_source(origin), [type_to_source(arg) for arg in typing.get_args(annotation)])

    return annotation.__qualname__
