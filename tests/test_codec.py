"""Tests for encoding and decoding expanded declarations."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

import pytest

from lsp_msg_generator import codec
from lsp_msg_generator.codec import Err, Ok, decode, dumps, from_json, loads, to_json, type_default
from lsp_msg_generator.declare import lsp_kind, lsp_object
from lsp_msg_generator.elective import ABSENT, Elective, Present
from lsp_msg_generator.errors import DeserializationError, SerializationError, SpecificationError
from lsp_msg_generator.lsp_types import MarkupKind

T = TypeVar("T")


@lsp_kind
class Severity(Enum):
    Error = "error"
    Warning = "warning"


@lsp_object
class Note:
    text: str
    severity: Elective[Severity]
    source: Elective[str | None]


@lsp_object("allow_missing, markup_kind_list = 'content'")
class Options:
    enabled: bool
    notes: list[Note]
    limits: dict[str, int]


@lsp_object
class Envelope(Generic[T]):
    payload: T
    items: list[T]


@lsp_kind
class TextOrNote:
    Text: str
    Note: Note


@lsp_kind
class Nullable:
    Missing: None
    Count: int


@lsp_object
class Strict:
    ratio: float
    mode: Literal["fast", "slow"]
    extra: Any


class TestDecodeResults:
    def test_ok(self):
        assert decode(int, 3) == Ok(3)

    def test_err_carries_path(self):
        result = decode(list[Note], [{"text": "a"}, {"text": 1}])

        assert isinstance(result, Err)
        assert result.path == (1, "text")
        assert result.message == "Expected `str`, got `int`"

    def test_within(self):
        assert Err("x", ("b",)).within("a") == Err("x", ("a", "b"))


class TestScalars:
    @pytest.mark.parametrize(
        ("tp", "data"), [(bool, True), (int, 5), (str, "x"), (float, 1.5), (type(None), None), (Any, {"a": [1]})]
    )
    def test_valid(self, tp, data):
        assert from_json(tp, data) == data

    def test_float_accepts_integers(self):
        assert from_json(float, 2) == 2.0

    @pytest.mark.parametrize(("tp", "data"), [(int, True), (int, 1.5), (bool, 0), (str, None), (float, "1")])
    def test_no_coercion(self, tp, data):
        with pytest.raises(DeserializationError):
            from_json(tp, data)

    def test_optional(self):
        assert from_json(int | None, None) is None
        assert from_json(int | None, 3) == 3

    def test_literal(self):
        assert from_json(Literal["fast", "slow"], "fast") == "fast"
        with pytest.raises(DeserializationError, match="Invalid enum value 'medium'"):
            from_json(Literal["fast", "slow"], "medium")

    def test_plain_enum_by_value(self):
        assert from_json(MarkupKind, "markdown") is MarkupKind.MARKDOWN
        assert to_json(MarkupKind.PLAINTEXT) == "plaintext"

    def test_unsupported_type(self):
        with pytest.raises(SpecificationError, match="Cannot decode"):
            from_json(complex, 1)


class TestRecords:
    def test_round_trip(self):
        note = Note(text="unused", severity=Present(Severity.Warning), source=Present(None))

        encoded = to_json(note)

        assert encoded == {"text": "unused", "severity": "warning", "source": None}
        assert from_json(Note, encoded) == note

    def test_absent_fields_are_omitted(self):
        note = Note(text="unused")

        assert to_json(note) == {"text": "unused"}
        assert from_json(Note, {"text": "unused"}) == note

    def test_present_null_differs_from_absent(self):
        assert from_json(Note, {"text": "a", "source": None}).source == Present(None)
        assert from_json(Note, {"text": "a"}).source is ABSENT

    def test_missing_required_field(self):
        with pytest.raises(DeserializationError) as excinfo:
            from_json(Note, {"severity": "error"})

        assert excinfo.value.path == ("text",)
        assert str(excinfo.value) == "text: missing field"

    def test_wrong_elective_payload_is_field_scoped(self):
        with pytest.raises(DeserializationError) as excinfo:
            from_json(Note, {"text": "a", "severity": "fatal"})

        assert excinfo.value.path == ("severity",)

    def test_nested_error_path(self):
        with pytest.raises(DeserializationError) as excinfo:
            from_json(Options, {"notes": [{"text": "a"}, {"text": "b", "severity": 3}]})

        assert excinfo.value.path == ("notes", 1, "severity")
        assert str(excinfo.value).startswith("notes[1].severity: ")

    def test_allow_missing(self):
        options = from_json(Options, {})

        assert options == Options(content_format=[], enabled=False, notes=[], limits={})
        assert options == Options.default()

    def test_wire_names(self):
        options = Options(content_format=[MarkupKind.MARKDOWN, MarkupKind.PLAINTEXT], enabled=True)

        assert to_json(options) == {
            "contentFormat": ["markdown", "plaintext"],
            "enabled": True,
            "notes": [],
            "limits": {},
        }

    def test_unknown_keys_are_ignored(self):
        assert from_json(Note, {"text": "a", "unknown": 1}) == Note(text="a")

    def test_record_expects_object(self):
        with pytest.raises(DeserializationError, match="Expected `object` for Note, got `array`"):
            from_json(Note, [])

    def test_dict_values(self):
        assert from_json(Options, {"limits": {"a": 1}}).limits == {"a": 1}
        with pytest.raises(DeserializationError) as excinfo:
            from_json(Options, {"limits": {"a": "1"}})
        assert excinfo.value.path == ("limits", "a")

    def test_float_literal_and_any(self):
        strict = from_json(Strict, {"ratio": 1, "mode": "slow", "extra": [1, None]})
        assert strict == Strict(ratio=1.0, mode="slow", extra=[1, None])

    def test_generic_record(self):
        envelope = from_json(Envelope[Note], {"payload": {"text": "a"}, "items": [{"text": "b"}]})

        assert envelope.payload == Note(text="a")
        assert envelope.items == [Note(text="b")]

    def test_generic_record_checks_arguments(self):
        with pytest.raises(DeserializationError) as excinfo:
            from_json(Envelope[int], {"payload": 1, "items": [1, "2"]})

        assert excinfo.value.path == ("items", 1)


class TestKinds:
    def test_string_kind(self):
        assert from_json(Severity, "error") is Severity.Error
        assert to_json(Severity.Warning) == "warning"

    def test_unknown_string_tag(self):
        with pytest.raises(DeserializationError, match="unknown variant 'fatal'"):
            from_json(Severity, "fatal")

    def test_untagged_kind_tries_variants_in_order(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="lsp_msg_generator.codec"):
            value = from_json(TextOrNote, {"text": "a"})

        assert value == TextOrNote.Note(Note(text="a"))  # type: ignore[attr-defined]
        assert "variant Note" in caplog.text
        assert from_json(TextOrNote, "a") == TextOrNote.Text("a")  # type: ignore[attr-defined]

    def test_untagged_kind_encodes_payload(self):
        assert to_json(TextOrNote.Text("a")) == "a"  # type: ignore[attr-defined]
        assert to_json(TextOrNote.Note(Note(text="a"))) == {"text": "a"}  # type: ignore[attr-defined]

    def test_untagged_kind_without_match(self):
        with pytest.raises(DeserializationError) as excinfo:
            from_json(TextOrNote, 3)

        message = str(excinfo.value)
        assert "data did not match any variant of untagged kind TextOrNote" in message
        assert "Text: Expected `str`, got `int`" in message
        assert "Note: Expected `object` for Note, got `int`" in message

    def test_unit_variant_is_null(self):
        assert from_json(Nullable, None) == Nullable.Missing()  # type: ignore[attr-defined]
        assert from_json(Nullable, 2) == Nullable.Count(2)  # type: ignore[attr-defined]
        assert to_json(Nullable.Missing()) is None  # type: ignore[attr-defined]

    def test_untagged_kind_has_no_default(self):
        with pytest.raises(SpecificationError, match="no default value"):
            type_default(TextOrNote)


class TestEncodingErrors:
    def test_absent_outside_of_record(self):
        with pytest.raises(SerializationError):
            to_json(ABSENT)

    def test_non_string_keys(self):
        with pytest.raises(SerializationError, match="Object keys must be strings"):
            to_json({1: "a"})

    def test_unsupported_value(self):
        with pytest.raises(SerializationError, match="Cannot encode"):
            to_json(object())


class TestText:
    def test_dumps_and_loads(self):
        note = Note(text="a", severity=Present(Severity.Error))

        text = dumps(note)

        assert json.loads(text) == {"text": "a", "severity": "error"}
        assert loads(Note, text) == note

    def test_invalid_json(self):
        with pytest.raises(DeserializationError, match="invalid JSON"):
            loads(Note, "{")

    def test_error_at_root(self):
        with pytest.raises(DeserializationError) as excinfo:
            codec.loads(int, '"a"')

        assert excinfo.value.path == ()
        assert str(excinfo.value) == "<root>: Expected `int`, got `str`"

    def test_invalid_utf8(self):
        with pytest.raises(DeserializationError, match="invalid JSON"):
            loads(int, b"\xff\xfe1")

    def test_bytes_input(self):
        assert loads(Note, b'{"text": "a"}') == Note(text="a")

    def test_dumps_indent(self):
        text = dumps(Note(text="a"), indent=2)

        assert text == '{\n  "text": "a"\n}'
