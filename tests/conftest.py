"""Pytest configuration and fixtures for lsp-msg-generator tests."""

from __future__ import annotations

import itertools
import shutil
import sys
import types
from pathlib import Path

import pytest

from lsp_msg_generator.synthesizer import KindVariant
from lsp_msg_generator.writer_dto import FieldDeclaration, KindDeclaration, RecordDeclaration

# Test directory structure
TESTS_DIR = Path(__file__).parent
SRC_DIR = TESTS_DIR.parent / "src"

_module_counter = itertools.count()


@pytest.fixture
def load_generated():
    """Load generated source as a module registered in `sys.modules`.

    Generated declarations refer to each other by name, so they have to live in a real module for their
    annotations to resolve. Every module loaded through this fixture is removed again after the test.
    """
    loaded: list[str] = []

    def load(source: str) -> types.ModuleType:
        name = f"_generated_lsp_{next(_module_counter)}"
        module = types.ModuleType(name)
        sys.modules[name] = module
        loaded.append(name)
        exec(compile(source, f"<{name}>", "exec"), module.__dict__)
        return module

    yield load

    for name in loaded:
        sys.modules.pop(name, None)


@pytest.fixture(scope="session")
def pyright_executable():
    """The pyright executable. Tests that need it are skipped if it is not installed."""
    executable = shutil.which("pyright")
    if executable is None:
        pytest.skip("pyright is not installed")
    return executable


@pytest.fixture
def hover_declaration() -> RecordDeclaration:
    """A capability record with dynamic registration and markup formats."""
    return RecordDeclaration(
        name="HoverCapabilities",
        annotation='allow_missing, dynamic_registration = "`textDocument/hover` request", markup_kind_list = "content"',
        doc="Defines capabilities specific to the `textDocument/hover` request.",
    )


@pytest.fixture
def goto_declaration() -> RecordDeclaration:
    """An options record with a document selector and static registration."""
    return RecordDeclaration(name="GotoOptions", annotation="document_selector, static_registration")


@pytest.fixture
def workspace_edit_declaration() -> RecordDeclaration:
    """A record with declared plain and elective fields."""
    return RecordDeclaration(
        name="WorkspaceEditCapabilities",
        annotation="allow_missing",
        doc="Defines capabilities specific to `WorkspaceEdit`s.",
        fields=[
            FieldDeclaration("document_changes", "bool", "Supports versioned document changes in `WorkspaceEdit`s."),
            FieldDeclaration("resource_operations", "list[ResourceOperationKind]"),
            FieldDeclaration("failure_handling", "Elective[FailureHandlingKind]"),
        ],
    )


@pytest.fixture
def sync_kind_declaration() -> KindDeclaration:
    """A number kind starting at 0."""
    return KindDeclaration(
        name="TextDocumentSyncKind",
        annotation='type = "number"',
        doc="How the client should sync document changes with the server.",
        variants=[
            KindVariant("None", 0, doc="Documents should not be synced at all."),
            KindVariant("Full"),
            KindVariant("Incremental"),
        ],
    )


@pytest.fixture
def failure_handling_declaration() -> KindDeclaration:
    """A string kind."""
    return KindDeclaration(
        name="FailureHandlingKind",
        variants=[
            KindVariant("Abort"),
            KindVariant("Transactional"),
            KindVariant("TextOnlyTransactional"),
            KindVariant("Undo"),
        ],
    )


@pytest.fixture
def resource_operation_declaration() -> KindDeclaration:
    """A string kind declared with an explicit type."""
    return KindDeclaration(
        name="ResourceOperationKind",
        annotation='type = "string"',
        variants=[KindVariant("Create"), KindVariant("Rename"), KindVariant("Delete")],
    )


@pytest.fixture
def boolean_or_options_declaration() -> KindDeclaration:
    """A generic untagged kind."""
    return KindDeclaration(
        name="BooleanOrOptions",
        doc="Either a boolean or `T`.",
        type_parameters=["T"],
        variants=[KindVariant("Boolean", payload="bool"), KindVariant("Options", payload="T")],
    )
