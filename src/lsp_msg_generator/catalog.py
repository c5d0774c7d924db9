"""A sample of LSP messages and capabilities, declared with `lsp_object` and `lsp_kind`.

Only a small part of the protocol is covered: basic structures, the `initialize` request and a part of the
client and server capabilities.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Generic, TypeVar

from lsp_msg_generator.declare import lsp_kind, lsp_object
from lsp_msg_generator.elective import Elective
from lsp_msg_generator.lsp_types import LspAny, LspEnum, MarkupKind

T = TypeVar("T")

# ===== Basic structures =====


@lsp_object
class Position:
    """A line and character gap offset of a text document."""

    line: int
    """Zero-based index of the line."""
    character: int
    """Zero-based index of the character gap within the given line.

    If `character` is greater than the line length (not including line ending characters), it defaults to the
    line length.
    """

    def is_first_character(self) -> bool:
        return self.character == 0

    def is_first_line(self) -> bool:
        return self.line == 0


@lsp_object
class Range:
    """`Position`s in between 2 given `Position`s.

    The start `Position` is inclusive while the end `Position` is exclusive.
    """

    start: Position
    end: Position

    @classmethod
    def partial_line(cls, line: int, start: int, end: int) -> Range:
        """Create a `Range` that describes the specified characters on a line."""
        return cls(start=Position(line=line, character=start), end=Position(line=line, character=end))


@lsp_object
class Location:
    """A part of a text document."""

    uri: str
    range: Range


@lsp_kind("number")
class DiagnosticSeverity(LspEnum):
    """Supported severities of a diagnostic."""

    Error = 1
    """A `Diagnostic` that prevents successful completion."""
    Warning = auto()
    """A `Diagnostic` that does not prevent successful completion but may need to be addressed."""
    Information = auto()
    Hint = auto()


@lsp_kind
class DiagnosticCode:
    """A code representing a `Diagnostic`."""

    Number: int
    String: str


@lsp_object
class DiagnosticRelatedInformation:
    """A related message for a `Diagnostic`."""

    location: Location
    message: str


@lsp_object
class Diagnostic:
    """A diagnostic such as a compiler error or warning."""

    range: Range
    severity: Elective[DiagnosticSeverity]
    """If absent, the client is responsible for interpreting the severity."""
    code: Elective[DiagnosticCode]
    source: Elective[str]
    """Human-readable description of the source of the diagnostic."""
    message: str
    related_information: Elective[list[DiagnosticRelatedInformation]]


@lsp_object
class Command:
    """A command."""

    title: str
    command: str
    """Identifier of the command handler."""
    arguments: list[LspAny]


@lsp_object
class TextEdit:
    """A textual edit of a text document."""

    range: Range
    new_text: str


@lsp_object
class MarkupContent:
    """A string value which can be represented in different formats."""

    kind: MarkupKind
    value: str


# ===== Workspace =====


@lsp_kind("type = 'string'")
class ResourceOperationKind(Enum):
    """The kind of resource operations."""

    Create = "create"
    """Creating new files and folders."""
    Rename = "rename"
    """Renaming existing files and folders."""
    Delete = "delete"
    """Deleting existing files and folders."""


@lsp_kind
class FailureHandlingKind(Enum):
    """The strategy of the client to handle a failure to apply a `WorkspaceEdit`."""

    Abort = "abort"
    """Operations are simply aborted if one of the changes fails."""
    Transactional = "transactional"
    """All operations are executed transactional."""
    TextOnlyTransactional = "textOnlyTransactional"
    """Textual file changes are executed transactional and resource changes are aborted."""
    Undo = "undo"
    """The client tries to undo operations already executed."""


@lsp_object("allow_missing")
class WorkspaceEditCapabilities:
    """Defines capabilities specific to `WorkspaceEdit`s."""

    document_changes: bool
    """Supports versioned document changes in `WorkspaceEdit`s."""
    resource_operations: list[ResourceOperationKind]
    failure_handling: Elective[FailureHandlingKind]
    """The failure handling strategy if applying the `WorkspaceEdit` fails."""


@lsp_object
class WorkspaceFolder:
    """Describes a folder in a workspace."""

    uri: str
    name: str
    """The name as used in the user interface."""


# ===== Client capabilities =====


@lsp_object("allow_missing, dynamic_registration = '`workspace/didChangeConfiguration` notification'")
class DidChangeConfigurationCapabilities:
    """Defines capabilities specific to the `workspace/didChangeConfiguration` notification."""


@lsp_object("allow_missing, dynamic_registration = '`workspace/symbol` request'")
class SymbolCapabilities:
    """Defines capabilities specific to the `workspace/symbol` request."""


@lsp_object("allow_missing")
class WorkspaceClientCapabilities:
    """Defines capabilities the client provides on the workspace."""

    apply_edit: bool
    """Supports applying batch edits to the workspace by the request `workspace/applyEdit`."""
    workspace_edit: WorkspaceEditCapabilities
    did_change_configuration: DidChangeConfigurationCapabilities
    symbol: SymbolCapabilities
    workspace_folders: bool
    configuration: bool


@lsp_object("allow_missing, dynamic_registration = 'text document synchronization'")
class SynchronizationCapabilities:
    """Defines capabilities specific to text document synchronization."""

    will_save: bool
    will_save_wait_until: bool
    did_save: bool


@lsp_object("allow_missing, markup_kind_list = 'documentation'")
class CompletionItemCapabilities:
    """Describes capabilities specific to `CompletionItem`s."""

    snippet_support: bool
    commit_characters_support: bool
    deprecated_support: bool
    preselect_support: bool


@lsp_object("allow_missing, dynamic_registration = '`textDocument/completion` request'")
class CompletionCapabilities:
    """Defines capabilities specific to the `textDocument/completion` request."""

    completion_item: CompletionItemCapabilities
    context_support: bool
    """Supports including additional context information in the `textDocument/completion` request."""


@lsp_object(
    """
    allow_missing,
    dynamic_registration = "`textDocument/hover` request",
    markup_kind_list = "content"
    """
)
class HoverCapabilities:
    """Defines capabilities specific to the `textDocument/hover` request."""


@lsp_object(
    """
    allow_missing,
    dynamic_registration = "`textDocument/definition` request",
    link_support = "definition"
    """
)
class DefinitionCapabilities:
    """Defines capabilities specific to the `textDocument/definition` request."""


@lsp_object("allow_missing")
class TextDocumentClientCapabilities:
    """Defines capabilities the client provides on text documents."""

    synchronization: SynchronizationCapabilities
    completion: CompletionCapabilities
    hover: HoverCapabilities
    definition: DefinitionCapabilities


@lsp_object("allow_missing")
class ClientCapabilities:
    """Defines capabilities for dynamic registration, workspace and text document features the client supports.

    `experimental` can be used to pass experimental capabilities under development.
    """

    workspace: WorkspaceClientCapabilities
    text_document: TextDocumentClientCapabilities
    experimental: Elective[LspAny]


# ===== Initialization =====


@lsp_kind
class TraceKind(Enum):
    """The trace setting of the server."""

    Off = "off"
    """No messages are output."""
    Messages = "messages"
    """Some messages are output."""
    Verbose = "verbose"
    """All messages are output."""


@lsp_object
class InitializeParams:
    """The first request from the client to the server."""

    process_id: int | None
    """The process id of the process that started the server.

    If `None`, the server has not been started.
    """
    root_path: Elective[str | None]
    """The root path of the workspace.

    If `None`, no folder is open. Deprecated in favor of `root_uri`.
    """
    root_uri: str | None
    initialization_options: Elective[LspAny]
    capabilities: ClientCapabilities
    trace: TraceKind = TraceKind.Off
    workspace_folders: Elective[list[WorkspaceFolder] | None]
    """The workspace folders configured in the client.

    If absent, the client does not support workspace folders. If `None`, the client supports workspace folders
    but none are configured.
    """


# ===== Server capabilities =====


@lsp_kind("number")
class TextDocumentSyncKind(LspEnum):
    """How the client should sync document changes with the server."""

    None_ = 0
    """Documents should not be synced at all."""
    Full = auto()
    """Documents are synced by always sending the full content of the document."""
    Incremental = auto()
    """Documents are synced by sending incremental updates."""


@lsp_object("allow_missing")
class SaveOptions:
    """Save options."""

    include_text: bool


@lsp_object("allow_missing")
class TextDocumentSyncOptions:
    open_close: bool
    """Client sends open and close notifications to server."""
    change: TextDocumentSyncKind
    will_save: bool
    will_save_wait_until: bool
    save: SaveOptions


@lsp_kind
class TextDocumentSyncProvider:
    """Information about text document synchronization."""

    Options: TextDocumentSyncOptions
    Kind: TextDocumentSyncKind

    @classmethod
    def default(cls) -> TextDocumentSyncProvider:
        return cls.Kind(TextDocumentSyncKind.None_)  # type: ignore[attr-defined]


@lsp_kind
class BooleanOrOptions(Generic[T]):
    """Either a boolean or `T`."""

    Boolean: bool
    Options: T

    @classmethod
    def default(cls) -> BooleanOrOptions:
        return cls.Boolean(False)  # type: ignore[attr-defined]


@lsp_object("allow_missing, triggers = 'completion', resolve_provider = 'completion'")
class CompletionOptions:
    """Completion options."""


@lsp_object("allow_missing, triggers = 'signature help'")
class SignatureHelpOptions:
    """Signature help options."""


@lsp_object("document_selector, static_registration")
class GotoOptions:
    """Goto options."""


@lsp_object("allow_missing, resolve_provider = 'code lens'")
class CodeLensOptions:
    """Code lens options."""


@lsp_object("allow_missing, resolve_provider = 'document links'")
class DocumentLinkOptions:
    """Document link options."""


@lsp_object("document_selector, static_registration")
class StaticDocumentSelectorOptions(Generic[T]):
    options: T
    """The options."""


@lsp_object
class ColorProviderOptions:
    """Color provider options."""


@lsp_kind
class BooleanOrOptionsOrStaticDocumentSelectorOptions(Generic[T]):
    """One of a boolean, `T`, or `StaticDocumentSelectorOptions[T]`."""

    Boolean: bool
    Options: T
    StaticDocumentSelectorOptions: StaticDocumentSelectorOptions[T]

    @classmethod
    def default(cls) -> BooleanOrOptionsOrStaticDocumentSelectorOptions:
        return cls.Boolean(False)  # type: ignore[attr-defined]


@lsp_kind
class ChangeNotificationsOptions:
    """Change notification options."""

    Boolean: bool
    Id: str
    """The id used to register the change notifications."""

    @classmethod
    def default(cls) -> ChangeNotificationsOptions:
        return cls.Boolean(False)  # type: ignore[attr-defined]


@lsp_object("allow_missing")
class WorkspaceFoldersOptions:
    """Describes server capabilities specific to `WorkspaceFolder`s."""

    supported: bool
    change_notifications: ChangeNotificationsOptions


@lsp_object("allow_missing")
class WorkspaceOptions:
    """Describes server capabilities specific to the workspace."""

    workspace_folders: WorkspaceFoldersOptions


@lsp_object("allow_missing")
class ServerCapabilities:
    """Describes capabilities provided by the server."""

    text_document_sync: TextDocumentSyncProvider
    hover_provider: bool
    completion_provider: CompletionOptions
    signature_help_provider: SignatureHelpOptions
    definition_provider: bool
    type_definition_provider: BooleanOrOptions[GotoOptions]
    code_lens_provider: CodeLensOptions
    document_link_provider: DocumentLinkOptions
    color_provider: BooleanOrOptionsOrStaticDocumentSelectorOptions[ColorProviderOptions]
    workspace: WorkspaceOptions
    experimental: Elective[LspAny]


@lsp_object
class InitializeResult:
    """The result of the `initialize` request."""

    capabilities: ServerCapabilities
