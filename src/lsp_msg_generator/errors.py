"""Exceptions raised while expanding declarations and while (de)serializing messages."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, override

if TYPE_CHECKING:
    from lsp_msg_generator.spec_parser import Token

PathElement = str | int


class LspGeneratorError(Exception):
    """Base class for all errors of this package."""

    pass


class SpecificationError(LspGeneratorError):
    """Raised when the annotations of a declaration cannot be interpreted.

    These errors abort the expansion of the affected declaration. Nothing is generated for it.
    """

    def __init__(self, message: str, token: Token | None = None):
        """Initialize the error.

        Args:
            message (str): What went wrong.
            token (Token | None): The offending token, if the error can be attributed to one.
        """
        self.message = message
        self.token = token

        if token is not None:
            message = f"{message} (token {token.text!r} at position {token.position})"

        super().__init__(message)


def format_path(path: Sequence[PathElement]) -> str:
    """Render a path into a message as a dotted string, e.g. `capabilities.workspace.symbol[0]`.

    Args:
        path (Sequence[PathElement]): Object keys and list indices, outermost first.

    Returns:
        str: The rendered path, or `<root>` for the empty path.
    """
    if not path:
        return "<root>"

    rendered = ""
    for element in path:
        if isinstance(element, int):
            rendered += f"[{element}]"
        elif rendered:
            rendered += f".{element}"
        else:
            rendered = element

    return rendered


class DeserializationError(LspGeneratorError):
    """Raised when a payload does not match the shape of the type it is decoded into."""

    def __init__(self, message: str, path: Sequence[PathElement] = ()):
        self.message = message
        self.path = tuple(path)
        super().__init__(message)

    @override
    def __str__(self) -> str:
        return f"{format_path(self.path)}: {self.message}"


class SerializationError(LspGeneratorError):
    """Raised when a value cannot be represented on the wire."""

    pass
