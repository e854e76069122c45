"""
Attribute value model.

Attribute values arrive from the product service as untyped JSON. They are
converted into a closed tagged union on input so equality between two values
is decided by an explicit function instead of generic runtime equality:

    StringValue | NumberValue | BooleanValue | ArrayValue | ObjectValue | NullValue

Raw JSON is produced again on output, so the wire format never changes.
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class StringValue(BaseModel):
    kind: Literal["string"] = "string"
    value: str


class NumberValue(BaseModel):
    kind: Literal["number"] = "number"
    value: Union[int, float]


class BooleanValue(BaseModel):
    kind: Literal["boolean"] = "boolean"
    value: bool


class NullValue(BaseModel):
    kind: Literal["null"] = "null"


class ArrayValue(BaseModel):
    kind: Literal["array"] = "array"
    items: List["AttributeValue"] = []


class ObjectValue(BaseModel):
    kind: Literal["object"] = "object"
    members: Dict[str, "AttributeValue"] = {}


AttributeValue = Annotated[
    Union[StringValue, NumberValue, BooleanValue, NullValue, ArrayValue, ObjectValue],
    Field(discriminator="kind"),
]

ArrayValue.model_rebuild()
ObjectValue.model_rebuild()


def value_from_json(raw: Any) -> AttributeValue:
    """Convert a raw JSON value into its tagged form."""
    if isinstance(raw, (StringValue, NumberValue, BooleanValue, NullValue, ArrayValue, ObjectValue)):
        return raw
    if raw is None:
        return NullValue()
    # bool is a subclass of int, so it has to be tested first
    if isinstance(raw, bool):
        return BooleanValue(value=raw)
    if isinstance(raw, (int, float)):
        return NumberValue(value=raw)
    if isinstance(raw, str):
        return StringValue(value=raw)
    if isinstance(raw, (list, tuple)):
        return ArrayValue(items=[value_from_json(item) for item in raw])
    if isinstance(raw, dict):
        return ObjectValue(members={str(k): value_from_json(v) for k, v in raw.items()})
    raise TypeError(f"Unsupported attribute value type: {type(raw).__name__}")


def value_to_json(value: Optional[AttributeValue]) -> Any:
    """Convert a tagged value back into plain JSON."""
    if value is None or isinstance(value, NullValue):
        return None
    if isinstance(value, ArrayValue):
        return [value_to_json(item) for item in value.items]
    if isinstance(value, ObjectValue):
        return {key: value_to_json(item) for key, item in value.members.items()}
    return value.value


def values_equal(left: Optional[AttributeValue], right: Optional[AttributeValue]) -> bool:
    """
    Deep structural equality between two attribute values.

    - values of different kinds are never equal (True != 1, "1" != 1)
    - numbers compare numerically (1 == 1.0)
    - arrays are ordered and compared position by position
    - objects compare by key set, independent of key order
    """
    if left is None:
        left = NullValue()
    if right is None:
        right = NullValue()
    if left.kind != right.kind:
        return False

    if isinstance(left, NullValue):
        return True
    if isinstance(left, ArrayValue):
        if len(left.items) != len(right.items):
            return False
        return all(values_equal(a, b) for a, b in zip(left.items, right.items))
    if isinstance(left, ObjectValue):
        if set(left.members) != set(right.members):
            return False
        return all(values_equal(item, right.members[key]) for key, item in left.members.items())
    return left.value == right.value


def canonical_value_key(value: Optional[AttributeValue]) -> str:
    """Stable text rendering of a value, used only to order entries."""
    return json.dumps(_canonical(value), sort_keys=True, separators=(",", ":"))


def describe_value(value: Optional[AttributeValue]) -> str:
    """Short human readable rendering for user-facing messages."""
    raw = value_to_json(value)
    if raw is None:
        return "(empty)"
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, sort_keys=True)


def is_blank(value: Optional[AttributeValue]) -> bool:
    raw = value_to_json(value)
    return raw is None or raw == "" or raw == [] or raw == {}


def _canonical(value: Optional[AttributeValue]) -> Any:
    if value is None or isinstance(value, NullValue):
        return ["null"]
    if isinstance(value, ArrayValue):
        return ["array", [_canonical(item) for item in value.items]]
    if isinstance(value, ObjectValue):
        return ["object", {key: _canonical(item) for key, item in value.members.items()}]
    if isinstance(value, NumberValue):
        return ["number", float(value.value)]
    return [value.kind, value.value]


class CamelModel(BaseModel):
    """Base for payload models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Attribute(CamelModel):
    label: str
    value: Optional[AttributeValue] = None
    is_differentiator: bool = False
    # form metadata from the product editor, passed through untouched
    id: Optional[str] = None
    field_type: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def _tag_value(cls, raw: Any) -> Any:
        return value_from_json(raw)

    @field_serializer("value")
    def _untag_value(self, value: Optional[AttributeValue]) -> Any:
        return value_to_json(value)


class AttributeGroup(CamelModel):
    name: str = ""
    attributes: List[Attribute] = []
    id: Optional[str] = None


class DifferentiatorEntry(BaseModel):
    label: str
    value: Optional[AttributeValue] = None
    group_name: str = ""

    @field_serializer("value")
    def _untag_value(self, value: Optional[AttributeValue]) -> Any:
        return value_to_json(value)
