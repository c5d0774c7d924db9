"""Types definitions that are common in LSP messages."""

from __future__ import annotations

import enum
from typing import Any


class LspEnum(enum.Enum):
    """Base for declared kinds whose variants count up from 0.

    `enum.auto()` continues after the previous value, or starts at 0 for the first variant.
    """

    @staticmethod
    def _generate_next_value_(name: str, start: int, count: int, last_values: list[Any]) -> int:
        if not last_values:
            return 0
        return last_values[-1] + 1


class MarkupKind(enum.Enum):
    """The formats a client supports for content like hovers and documentation."""

    PLAINTEXT = "plaintext"
    MARKDOWN = "markdown"


# Placeholder until document selectors are modelled as their own record.
DocumentSelector = str

# An arbitrary JSON value, e.g. `initializationOptions`.
LspAny = Any

# Annotation tokens of a record.
ALLOW_MISSING = "allow_missing"
DOCUMENT_SELECTOR = "document_selector"
STATIC_REGISTRATION = "static_registration"
DYNAMIC_REGISTRATION = "dynamic_registration"
LINK_SUPPORT = "link_support"
MARKUP_KIND_LIST = "markup_kind_list"
TRIGGERS = "triggers"
RESOLVE_PROVIDER = "resolve_provider"

FLAG_OPTIONS = (ALLOW_MISSING, DOCUMENT_SELECTOR, STATIC_REGISTRATION)
VALUE_OPTIONS = (DYNAMIC_REGISTRATION, LINK_SUPPORT, MARKUP_KIND_LIST, TRIGGERS, RESOLVE_PROVIDER)

# Annotation tokens of a kind.
NUMBER_MARKER = "number"
TYPE_OPTION = "type"
TYPE_NUMBER = "number"
TYPE_STRING = "string"

# Names of the attributes the declaration decorators attach to generated classes.
RECORD_LAYOUT_ATTRIBUTE = "__lsp_record__"
KIND_LAYOUT_ATTRIBUTE = "__lsp_kind__"
