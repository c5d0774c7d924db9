"""Tests for the runtime expansion of records and kinds."""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum, auto

import pytest

from lsp_msg_generator import codec
from lsp_msg_generator.declare import fields_of, lsp_kind, lsp_object, record, variants_of, wire_field
from lsp_msg_generator.elective import ABSENT, Elective, Present
from lsp_msg_generator.errors import DeserializationError, SpecificationError
from lsp_msg_generator.lsp_types import LspEnum, MarkupKind
from lsp_msg_generator.spec_parser import Token


@lsp_object("allow_missing, dynamic_registration = '`workspace/symbol` request'")
class SymbolCapabilities:
    """Defines capabilities specific to the `workspace/symbol` request."""

    value_set: list[str]


@lsp_object("allow_missing")
class EmptyCapabilities:
    pass


@lsp_object
class Item:
    label: str
    detail: Elective[str]
    tags: list[str] = []


@record(allow_missing=True)
class Renamed:
    document_selector: str | None = wire_field("selector", doc="The selector.", default=None)
    kind: Elective[str] = wire_field(skip_if_absent=False)


@lsp_kind("number")
class SyncKind(LspEnum):
    None_ = 0
    Full = auto()
    Incremental = auto()


@lsp_kind
class HandlingKind(Enum):
    Abort = "abort"
    TextOnlyTransactional = "textOnlyTransactional"


@lsp_kind
class Code:
    Number: int
    String: str


@lsp_kind
class MaybeText:
    Nothing: None
    Text: str


class TestRecords:
    def test_expands_into_keyword_only_dataclass(self):
        assert dataclasses.is_dataclass(SymbolCapabilities)

        with pytest.raises(TypeError):
            SymbolCapabilities(True, [])  # type: ignore[misc]

        capabilities = SymbolCapabilities(dynamic_registration=True, value_set=["a"])
        assert capabilities.dynamic_registration
        assert capabilities.value_set == ["a"]

    def test_injected_field_comes_first(self):
        layout = fields_of(SymbolCapabilities)

        assert [field.name for field in layout] == ["dynamic_registration", "value_set"]
        assert layout[0].doc == "Supports dynamic registration of the `workspace/symbol` request."
        assert [field.wire_name for field in layout] == ["dynamicRegistration", "valueSet"]

    def test_allow_missing_defaults(self):
        assert SymbolCapabilities() == SymbolCapabilities(dynamic_registration=False, value_set=[])
        assert SymbolCapabilities.default() == SymbolCapabilities()

    def test_default_of_unexpanded_subclass(self):
        class Derived(SymbolCapabilities):
            pass

        with pytest.raises(TypeError, match="not an expanded record"):
            Derived.default()

    def test_empty_record(self):
        assert fields_of(EmptyCapabilities) == ()
        assert EmptyCapabilities() == EmptyCapabilities.default()

    def test_required_fields(self):
        with pytest.raises(TypeError):
            Item()  # type: ignore[call-arg]

        item = Item(label="x")
        assert item.detail is ABSENT
        assert item.tags == []

    def test_mutable_defaults_are_not_shared(self):
        first = Item(label="a")
        first.tags.append("deprecated")
        assert Item(label="b").tags == []

    def test_wire_field_directives(self):
        selector, kind = fields_of(Renamed)

        assert selector.wire_name == "selector"
        assert selector.doc == "The selector."
        assert selector.default is None
        assert kind.wire_name == "kind"
        assert kind.elective
        assert not kind.skip_if_absent

    def test_field_metadata(self):
        metadata = {field.name: field.metadata for field in dataclasses.fields(Item)}
        assert metadata["label"]["lsp_wire_name"] == "label"
        assert metadata["detail"]["lsp_elective"]

    def test_token_annotation(self):
        @lsp_object([Token.identifier("allow_missing"), Token.identifier("link_support"), Token.literal("definition")])
        class DefinitionCapabilities:
            pass

        assert [field.name for field in fields_of(DefinitionCapabilities)] == ["link_support"]

    def test_injected_markup_field(self):
        @lsp_object("allow_missing, markup_kind_list = 'content'")
        class HoverCapabilities:
            pass

        assert HoverCapabilities().content_format == []
        assert HoverCapabilities(content_format=[MarkupKind.MARKDOWN]).content_format == [MarkupKind.MARKDOWN]

    def test_injected_static_registration(self):
        @lsp_object("document_selector, static_registration")
        class GotoOptions:
            pass

        options = GotoOptions()
        assert options.document_selector is None
        assert options.id is ABSENT
        assert GotoOptions(id=Present("goto")).id.unwrap() == "goto"

    def test_invalid_annotation_fails_at_decoration(self):
        with pytest.raises(SpecificationError, match="Unsupported attribute option: foo"):
            lsp_object("foo")

    def test_clash_with_injected_field(self):
        with pytest.raises(SpecificationError):

            @lsp_object("triggers = 'completion'")
            class CompletionOptions:
                trigger_characters: list[str]

    def test_rejects_enums(self):
        with pytest.raises(SpecificationError, match="record declarations"):
            lsp_object(HandlingKind)

    def test_rejects_expanded_classes(self):
        with pytest.raises(SpecificationError, match="already expanded"):
            lsp_object(Item)

    def test_class_variables_are_not_fields(self):
        from typing import ClassVar

        @lsp_object
        class WithClassVar:
            method: ClassVar[str] = "initialize"
            id: int

        assert [field.name for field in fields_of(WithClassVar)] == ["id"]

    def test_logs_expansion(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="lsp_msg_generator.declare"):

            @lsp_object
            class Logged:
                uri: str

        assert "Expanded record" in caplog.text

    def test_fields_of_requires_record(self):
        with pytest.raises(TypeError):
            fields_of(int)


class TestKinds:
    def test_number_kind(self):
        assert [variant.tag for variant in variants_of(SyncKind)] == [0, 1, 2]
        assert [member.value for member in SyncKind] == [0, 1, 2]

    def test_string_kind(self):
        assert [variant.tag for variant in variants_of(HandlingKind)] == ["abort", "textOnlyTransactional"]

    def test_untagged_kind_variant_classes(self):
        value = Code.String("E042")  # type: ignore[attr-defined]

        assert isinstance(value, Code)
        assert value.value == "E042"
        assert value == Code.String("E042")  # type: ignore[attr-defined]
        assert value != Code.Number(42)  # type: ignore[attr-defined]
        assert [variant.name for variant in variants_of(Code)] == ["Number", "String"]

    def test_untagged_kind_unit_variant(self):
        assert MaybeText.Nothing() == MaybeText.Nothing()  # type: ignore[attr-defined]
        assert variants_of(MaybeText)[0].is_unit

    def test_variant_values_are_frozen(self):
        value = Code.Number(1)  # type: ignore[attr-defined]
        with pytest.raises(dataclasses.FrozenInstanceError):
            value.value = 2

    def test_number_kind_needs_integers(self):
        with pytest.raises(SpecificationError, match="integer value"):

            @lsp_kind("number")
            class Broken(LspEnum):
                A = "a"

    def test_number_kind_counts_from_zero(self):
        @lsp_kind("number")
        class Sync(LspEnum):
            Off = auto()
            Full = auto()
            Incremental = auto()

        assert [variant.tag for variant in variants_of(Sync)] == [0, 1, 2]
        assert codec.from_json(Sync, 1) is Sync.Full
        assert codec.to_json(Sync.Incremental) == 2

        with pytest.raises(DeserializationError, match="3 is not a valid"):
            codec.from_json(Sync, 3)

    def test_number_kind_on_plain_enum_is_rejected(self):
        with pytest.raises(SpecificationError, match="must derive from LspEnum"):

            @lsp_kind("number")
            class Counted(Enum):
                First = auto()
                Second = auto()
                Third = auto()

    def test_number_kind_needs_consecutive_values(self):
        with pytest.raises(SpecificationError, match="consecutive"):

            @lsp_kind("number")
            class Broken(LspEnum):
                A = 1
                B = 3

    def test_unit_only_plain_class_is_rejected(self):
        with pytest.raises(SpecificationError, match="declare it as an enum"):

            @lsp_kind
            class OnlyUnits:
                A: None
                B: None

    def test_plain_class_without_variants(self):
        with pytest.raises(SpecificationError, match="no variants"):

            @lsp_kind
            class Nothing:
                pass

    def test_invalid_kind_annotation(self):
        with pytest.raises(SpecificationError):
            lsp_kind("type = 'language_id'")

    def test_variants_of_requires_kind(self):
        with pytest.raises(TypeError):
            variants_of(Item)


def test_locally_declared_records_resolve_through_localns():
    @lsp_object
    class Inner:
        name: str

    @lsp_object(localns={"Inner": Inner})
    class Outer:
        inner: Inner

    assert codec.from_json(Outer, {"inner": {"name": "x"}}) == Outer(inner=Inner(name="x"))
