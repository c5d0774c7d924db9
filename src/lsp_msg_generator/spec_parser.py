"""Parse the annotation tokens attached to a declaration.

The annotation of a record is a flat list of options, e.g.

    allow_missing, dynamic_registration = "`textDocument/hover` request", markup_kind_list = "content"

Flags stand on their own. Value options are followed by a literal that becomes their value. Any other
identifier is an error, and so is a value option whose literal never arrives. Punctuation carries no meaning
and is skipped.
"""

from __future__ import annotations

import ast
import enum
import io
import logging
import tokenize
from collections.abc import Iterable
from dataclasses import dataclass, fields

from lsp_msg_generator import lsp_types
from lsp_msg_generator.errors import SpecificationError

logger = logging.getLogger(__name__)


class TokenKind(enum.Enum):
    """The classes of annotation tokens the parsers distinguish."""

    IDENTIFIER = "identifier"
    LITERAL = "literal"
    PUNCTUATION = "punctuation"


@dataclass(frozen=True)
class Token:
    """A single annotation token.

    Attributes:
        kind: The class of the token.
        text: The token as written, quotes included for string literals.
        position: Index of the token within its annotation.
    """

    kind: TokenKind
    text: str
    position: int = 0

    @classmethod
    def identifier(cls, text: str, position: int = 0) -> Token:
        return cls(TokenKind.IDENTIFIER, text, position)

    @classmethod
    def literal(cls, value: str, position: int = 0) -> Token:
        """Create a string literal token holding `value`."""
        return cls(TokenKind.LITERAL, repr(value), position)

    @classmethod
    def punctuation(cls, text: str, position: int = 0) -> Token:
        return cls(TokenKind.PUNCTUATION, text, position)

    @property
    def value(self) -> str:
        """The de-quoted text of a literal token.

        String literals are evaluated, so escapes are resolved. Numbers keep their text.
        """
        if self.kind is not TokenKind.LITERAL:
            return self.text

        try:
            value = ast.literal_eval(self.text)
        except (ValueError, SyntaxError):
            return self.text.strip("\"'")

        if isinstance(value, bytes):
            return value.decode()
        return str(value)


_TOKEN_KINDS = {
    tokenize.NAME: TokenKind.IDENTIFIER,
    tokenize.STRING: TokenKind.LITERAL,
    tokenize.NUMBER: TokenKind.LITERAL,
}

_SKIPPED_TOKEN_TYPES = {
    tokenize.NEWLINE,
    tokenize.NL,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.COMMENT,
    tokenize.ENDMARKER,
}


def tokenize_annotation(text: str) -> list[Token]:
    """Split annotation text into tokens.

    Args:
        text (str): The annotation as written in a declaration, without the surrounding parentheses.

    Returns:
        list[Token]: The tokens, numbered from 0.

    Raises:
        SpecificationError: If the text is not made of Python tokens (e.g. an unterminated string).
    """
    # Annotations may be wrapped over several lines, indentation is not meaningful.
    line = " ".join(part.strip() for part in text.splitlines()).strip()

    tokens: list[Token] = []
    try:
        for raw in tokenize.generate_tokens(io.StringIO(line).readline):
            if raw.type in _SKIPPED_TOKEN_TYPES:
                continue
            kind = _TOKEN_KINDS.get(raw.type, TokenKind.PUNCTUATION)
            tokens.append(Token(kind, raw.string, len(tokens)))
    except (tokenize.TokenError, SyntaxError) as e:
        raise SpecificationError(f"Cannot tokenize annotation {text!r}: {e}") from e

    return tokens


def _as_tokens(tokens: str | Iterable[Token]) -> Iterable[Token]:
    if isinstance(tokens, str):
        return tokenize_annotation(tokens)
    return tokens


@dataclass(frozen=True)
class AttributeSpecification:
    """The parsed annotations of a record declaration.

    Attributes:
        allow_missing: Every field of the record defaults when it is missing from the input.
        has_document_selector: Inject the `document_selector` field.
        has_static_registration: Inject the `id` field.
        dynamic_registration: Inject `dynamic_registration`, documented with this text.
        link_support: Inject `link_support`, documented with this text.
        markup_kind_list: Inject `<markup_kind_list>_format`.
        triggers: Inject `trigger_characters`, documented with this text.
        resolve_provider: Inject `resolve_provider`, documented with this text.
    """

    allow_missing: bool = False
    has_document_selector: bool = False
    has_static_registration: bool = False
    dynamic_registration: str | None = None
    link_support: str | None = None
    markup_kind_list: str | None = None
    triggers: str | None = None
    resolve_provider: str | None = None


# Flag tokens, mapped to the attribute they set.
_FLAGS = {
    lsp_types.ALLOW_MISSING: "allow_missing",
    lsp_types.DOCUMENT_SELECTOR: "has_document_selector",
    lsp_types.STATIC_REGISTRATION: "has_static_registration",
}


class ParserState(enum.Enum):
    """States of the record annotation parser.

    `SCANNING_OPTION` is the initial and the only accepting state. Each value option has its own state
    that waits for the literal holding the value; its enum value is the name of that option.
    """

    SCANNING_OPTION = "option"
    AWAITING_DYNAMIC_REGISTRATION = lsp_types.DYNAMIC_REGISTRATION
    AWAITING_LINK_SUPPORT = lsp_types.LINK_SUPPORT
    AWAITING_MARKUP_KIND_LIST = lsp_types.MARKUP_KIND_LIST
    AWAITING_TRIGGERS = lsp_types.TRIGGERS
    AWAITING_RESOLVE_PROVIDER = lsp_types.RESOLVE_PROVIDER

    @property
    def is_searching_for_value(self) -> bool:
        return self is not ParserState.SCANNING_OPTION


def parse_attributes(tokens: str | Iterable[Token]) -> AttributeSpecification:
    """Parse the annotation of a record declaration.

    Args:
        tokens (str | Iterable[Token]): The annotation text, or its tokens.

    Returns:
        AttributeSpecification: The validated specification.

    Raises:
        SpecificationError: For an unsupported option, or a value option without a value.
    """
    values: dict[str, bool | str] = {}
    state = ParserState.SCANNING_OPTION

    for token in _as_tokens(tokens):
        if state is ParserState.SCANNING_OPTION:
            if token.kind is not TokenKind.IDENTIFIER:
                continue

            if token.text in _FLAGS:
                values[_FLAGS[token.text]] = True
            elif token.text in lsp_types.VALUE_OPTIONS:
                state = ParserState(token.text)
            else:
                raise SpecificationError(f"Unsupported attribute option: {token.text}", token)

        elif token.kind is TokenKind.LITERAL:
            option = state.value
            if option in values:
                logger.debug(f"Option {option} given more than once, keeping the last value {token.value!r}")
            values[option] = token.value
            state = ParserState.SCANNING_OPTION

    if state.is_searching_for_value:
        raise SpecificationError(f"Missing a value for option: {state.value}")

    return AttributeSpecification(**values)  # type: ignore[arg-type]


def render_attributes(spec: AttributeSpecification) -> str:
    """Render a specification as the canonical annotation text that parses back into it.

    Args:
        spec (AttributeSpecification): The specification to render.

    Returns:
        str: Options separated by ', ', flags first, in declaration order of the specification.
    """
    flag_names = {attribute: token for token, attribute in _FLAGS.items()}
    parts: list[str] = []

    for spec_field in fields(spec):
        value = getattr(spec, spec_field.name)
        if spec_field.name in flag_names:
            if value:
                parts.append(flag_names[spec_field.name])
        elif value is not None:
            parts.append(f"{spec_field.name} = {value!r}")

    return ", ".join(parts)


@dataclass(frozen=True)
class KindSpecification:
    """The parsed annotations of a kind declaration.

    Attributes:
        number: Unit variants are represented by consecutive integers instead of string tags.
    """

    number: bool = False


def parse_kind_attributes(tokens: str | Iterable[Token]) -> KindSpecification:
    """Parse the annotation of a kind declaration.

    Accepts the `number` marker, as well as `type = "number"` and `type = "string"`.

    Args:
        tokens (str | Iterable[Token]): The annotation text, or its tokens.

    Returns:
        KindSpecification: The validated specification.

    Raises:
        SpecificationError: For any other identifier or literal, or a `type` without a value.
    """
    number = False
    awaiting_type = False

    for token in _as_tokens(tokens):
        if token.kind is TokenKind.PUNCTUATION:
            continue

        if awaiting_type:
            if token.kind is not TokenKind.LITERAL or token.value not in (lsp_types.TYPE_NUMBER, lsp_types.TYPE_STRING):
                raise SpecificationError("Expected 'number' or 'string' as the kind type", token)
            number = token.value == lsp_types.TYPE_NUMBER
            awaiting_type = False

        elif token.kind is TokenKind.IDENTIFIER and token.text == lsp_types.NUMBER_MARKER:
            number = True

        elif token.kind is TokenKind.IDENTIFIER and token.text == lsp_types.TYPE_OPTION:
            awaiting_type = True

        else:
            raise SpecificationError("Error parsing kind annotation", token)

    if awaiting_type:
        raise SpecificationError(f"Missing a value for option: {lsp_types.TYPE_OPTION}")

    return KindSpecification(number=number)
