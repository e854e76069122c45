"""
Attribute values and differentiator extraction.

Covers:
  - raw JSON -> tagged union -> raw JSON keeps the wire shape
  - deep equality: kinds, numbers, ordered arrays, key-order-free objects
  - extraction from models and from plain dicts (camelCase / snake_case)
  - missing attribute groups, non-flagged and truthy-but-not-True flags
"""

from variant_engine.schemas.attribute import (
    ArrayValue,
    Attribute,
    BooleanValue,
    NullValue,
    NumberValue,
    ObjectValue,
    StringValue,
    value_from_json,
    value_to_json,
    values_equal,
)
from variant_engine.schemas.variant import Variant
from variant_engine.services.differentiator_extractor import differentiator_labels, extract_differentiators


class TestValueConversion:

    def test_primitives_are_tagged(self):
        assert isinstance(value_from_json("Red"), StringValue)
        assert isinstance(value_from_json(3), NumberValue)
        assert isinstance(value_from_json(2.5), NumberValue)
        assert isinstance(value_from_json(True), BooleanValue)
        assert isinstance(value_from_json(None), NullValue)

    def test_nested_values_are_tagged(self):
        value = value_from_json({"unit": "cm", "sizes": [10, 20]})
        assert isinstance(value, ObjectValue)
        assert isinstance(value.members["sizes"], ArrayValue)
        assert isinstance(value.members["sizes"].items[0], NumberValue)

    def test_attribute_serializes_raw_json(self):
        attribute = Attribute.model_validate({"label": "Dims", "value": {"w": 1, "h": [2, 3]}, "isDifferentiator": True})
        dumped = attribute.model_dump(by_alias=True)
        assert dumped["value"] == {"w": 1, "h": [2, 3]}
        assert dumped["isDifferentiator"] is True

    def test_value_to_json_of_none(self):
        assert value_to_json(None) is None


class TestValuesEqual:

    def test_same_string(self):
        assert values_equal(value_from_json("Red"), value_from_json("Red"))

    def test_int_and_float(self):
        assert values_equal(value_from_json(1), value_from_json(1.0))

    def test_bool_is_not_number(self):
        assert not values_equal(value_from_json(True), value_from_json(1))

    def test_string_is_not_number(self):
        assert not values_equal(value_from_json("1"), value_from_json(1))

    def test_arrays_are_ordered(self):
        assert values_equal(value_from_json([1, 2]), value_from_json([1, 2]))
        assert not values_equal(value_from_json([1, 2]), value_from_json([2, 1]))

    def test_objects_ignore_key_order(self):
        left = value_from_json({"a": 1, "b": {"c": [1, "x"]}})
        right = value_from_json({"b": {"c": [1, "x"]}, "a": 1})
        assert values_equal(left, right)

    def test_objects_with_different_keys(self):
        assert not values_equal(value_from_json({"a": 1}), value_from_json({"a": 1, "b": 2}))

    def test_none_equals_null(self):
        assert values_equal(None, value_from_json(None))


class TestExtractDifferentiators:

    def test_only_flagged_attributes(self):
        variant = Variant.model_validate({
            "attributeGroups": [
                {"name": "Look", "attributes": [
                    {"label": "Color", "value": "Red", "isDifferentiator": True},
                    {"label": "Finish", "value": "Matte", "isDifferentiator": False},
                ]},
                {"name": "Physical Properties", "attributes": [
                    {"label": "Size", "value": "M", "isDifferentiator": True},
                ]},
            ]
        })
        entries = extract_differentiators(variant)
        assert {(e.label, e.group_name) for e in entries} == {("Color", "Look"), ("Size", "Physical Properties")}

    def test_missing_groups_are_empty(self):
        assert extract_differentiators(Variant()) == []
        assert extract_differentiators({"name": "bare"}) == []

    def test_plain_dict_camel_case(self):
        raw = {"attributeGroups": [{"name": "G", "attributes": [
            {"label": "Color", "value": "Red", "isDifferentiator": True},
        ]}]}
        entries = extract_differentiators(raw)
        assert len(entries) == 1
        assert value_to_json(entries[0].value) == "Red"

    def test_plain_dict_snake_case(self):
        raw = {"attribute_groups": [{"name": "G", "attributes": [
            {"label": "Size", "value": "L", "is_differentiator": True},
        ]}]}
        assert differentiator_labels(raw) == {"Size"}

    def test_truthy_flag_is_not_enough(self):
        raw = {"attributeGroups": [{"name": "G", "attributes": [
            {"label": "Color", "value": "Red", "isDifferentiator": "yes"},
        ]}]}
        assert extract_differentiators(raw) == []
