"""Tests for turning webhook responses into tables."""

import json

import pytest

from core.exceptions import NormalizationError
from services.table_normalizer import (
    TableNormalizer,
    humanize_field_name,
    normalize_response,
    parse_simple_csv,
    rectangularize,
)


def _normalize(payload):
    return normalize_response(json.dumps(payload))


class TestArrays:
    """Top-level JSON arrays."""

    def test_array_of_arrays_used_as_table(self):
        table = _normalize([["Name", "Qty"], ["Bolt", 4], ["Nut", 2.0]])
        assert table == [["Name", "Qty"], ["Bolt", "4"], ["Nut", "2"]]

    def test_irregular_rows_pass_through(self):
        table = _normalize([["A", "B"], ["1"], ["1", "2", "3"]])
        assert table == [["A", "B"], ["1"], ["1", "2", "3"]]

    def test_scalars_are_stringified(self):
        table = _normalize([["flag", "empty", "ratio"], [True, None, 0.5]])
        assert table[1] == ["true", "", "0.5"]

    def test_array_of_objects_uses_first_keys(self):
        table = _normalize([
            {"name": "  Ann ", "age": 30, "tags": ["x", "y"]},
            {"name": "Bob", "extra": "dropped"},
        ])
        assert table == [
            ["name", "age", "tags"],
            ["Ann", "30", '["x","y"]'],
            ["Bob", "", ""],
        ]

    def test_non_object_elements_become_empty_rows(self):
        table = _normalize([{"a": 1, "b": 2}, "junk", 7])
        assert table == [["a", "b"], ["1", "2"], ["", ""], ["", ""]]

    def test_nested_object_cell_is_json(self):
        table = _normalize([{"meta": {"page": 1}}])
        assert table == [["meta"], ['{"page":1}']]

    @pytest.mark.parametrize("payload", [[], [1, 2], ["a"], [[]], [{}]])
    def test_unusable_arrays(self, payload):
        with pytest.raises(NormalizationError):
            _normalize(payload)


class TestObjects:
    """Top-level JSON objects."""

    def test_direct_field_priority(self):
        assert _normalize({"data": [["A"]], "table": [["B"]]}) == [["A"]]

    def test_excel_data_wins_over_data(self):
        assert _normalize({"data": [["A"]], "excelData": [["X"]]}) == [["X"]]

    def test_null_field_is_skipped(self):
        assert _normalize({"data": None, "output": [["C"]]}) == [["C"]]

    def test_selected_field_holding_objects(self):
        table = _normalize({"result": [{"sku": "A1", "price": 9.5}]})
        assert table == [["sku", "price"], ["A1", "9.5"]]

    @pytest.mark.parametrize("payload", [
        {"data": "not a table"},
        {"data": []},
        {"output": {"nested": True}},
    ])
    def test_selected_field_must_be_non_empty_array(self, payload):
        with pytest.raises(NormalizationError):
            _normalize(payload)

    def test_csv_fallback(self):
        table = _normalize({"csv": "Name, Qty\nBolt ,4\n"})
        assert table == [["Name", "Qty"], ["Bolt", "4"]]

    def test_csv_data_field(self):
        assert _normalize({"csvData": "a,b"}) == [["a", "b"]]

    def test_flatten_fallback(self):
        table = _normalize({"foo": {"bar": 1}, "baz": [1, 2]})
        assert table == [["Field", "Value"], ["Foo Bar", "1"], ["Baz", "1, 2"]]

    def test_flatten_humanizes_camel_case_and_nulls(self):
        table = _normalize({"invoiceNumber": "INV-7", "due_date": None, "paid": False})
        assert table == [
            ["Field", "Value"],
            ["Invoice Number", "INV-7"],
            ["Due Date", ""],
            ["Paid", "false"],
        ]

    def test_empty_object_is_unusable(self):
        with pytest.raises(NormalizationError):
            _normalize({})


class TestRejectedBodies:
    """Bodies that hold no table at all."""

    @pytest.mark.parametrize("body", ["<html>502 Bad Gateway</html>", "", "{broken"])
    def test_non_json(self, body):
        with pytest.raises(NormalizationError):
            normalize_response(body)

    @pytest.mark.parametrize("body", ["42", '"text"', "null", "true"])
    def test_json_scalars(self, body):
        with pytest.raises(NormalizationError):
            normalize_response(body)

    def test_deeply_nested_json(self):
        with pytest.raises(NormalizationError):
            normalize_response("[" * 100000 + "]" * 100000)

    def test_bytes_body(self):
        assert normalize_response(b'[["\xc3\xa9"]]') == [["é"]]


class TestHelpers:
    """Helper functions."""

    def test_rectangularize_pads_and_truncates(self):
        table = rectangularize([["A", "B"], ["1"], ["1", "2", "3"], []])
        assert table == [["A", "B"], ["1", ""], ["1", "2"], ["", ""]]
        assert all(len(row) == len(table[0]) for row in table)

    def test_rectangularize_empty(self):
        assert rectangularize([]) == []

    @pytest.mark.parametrize("name,expected", [
        ("foo_bar", "Foo Bar"),
        ("invoiceTotalAmount", "Invoice Total Amount"),
        ("line1Total", "Line1 Total"),
        ("  padded__name ", "Padded Name"),
    ])
    def test_humanize_field_name(self, name, expected):
        assert humanize_field_name(name) == expected

    def test_parse_simple_csv_ignores_quotes(self):
        assert parse_simple_csv('"a,b",c') == [['"a', 'b"', "c"]]

    def test_from_value_rejects_scalars(self):
        with pytest.raises(NormalizationError):
            TableNormalizer.from_value(3.5)
