"""Tests for field slots and value coercion."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pytest
from pydantic import BaseModel

from delta_object.delta.slot import FieldSlot, coerce_value, type_adapter
from delta_object.errors import CoercionError, DeltaObjectError
from delta_object.models.fields import FieldDescriptor


class Point(BaseModel):
    x: int
    y: int = 0


@dataclass
class Address:
    city: str
    zip_code: Optional[str] = None


class Owner:
    def __init__(self, name: str):
        self.name = name


class TestFieldSlot:
    def test_new_slot_is_unset_with_default(self):
        slot = FieldSlot(int, default=0)
        assert slot.is_set is False
        assert slot.value == 0
        assert slot.value_type is int

    def test_assign_marks_set(self):
        slot = FieldSlot(int, default=0)
        slot.assign(5)
        assert slot.is_set is True
        assert slot.value == 5

    def test_reassign_overwrites(self):
        slot = FieldSlot(str)
        slot.assign("first")
        slot.assign("second")
        assert slot.is_set is True
        assert slot.value == "second"

    def test_assign_none_to_optional_still_counts_as_set(self):
        slot = FieldSlot(Optional[str], default="default")
        slot.assign(None)
        assert slot.is_set is True
        assert slot.value is None

    def test_failed_assign_leaves_slot_unset(self):
        slot = FieldSlot(int, default=0, field="int1")
        with pytest.raises(CoercionError) as exc_info:
            slot.assign("not a number")
        assert exc_info.value.field == "int1"
        assert slot.is_set is False
        assert slot.value == 0

    def test_for_field_uses_descriptor(self):
        descriptor = FieldDescriptor(name="tags", value_type=List[str], default_factory=list)
        slot = FieldSlot.for_field(descriptor)
        assert slot.value == []
        assert slot.value_type == List[str]
        slot.assign(("a", "b"))
        assert slot.value == ["a", "b"]

    def test_equality(self):
        a, b = FieldSlot(int), FieldSlot(int)
        assert a == b
        a.assign(1)
        assert a != b
        b.assign(1)
        assert a == b

    def test_repr(self):
        slot = FieldSlot(int, default=0)
        assert repr(slot) == "FieldSlot(unset, default=0)"
        slot.assign(3)
        assert repr(slot) == "FieldSlot(value=3)"


class TestCoercion:
    def test_matching_scalar_kept(self):
        value = "text"
        assert coerce_value(str, value) is value

    def test_string_to_datetime(self):
        assert coerce_value(datetime, "2018-12-04") == datetime(2018, 12, 4)
        assert coerce_value(Optional[datetime], "2018-12-04T10:30:00") == datetime(2018, 12, 4, 10, 30)
        assert coerce_value(date, "2018-12-04") == date(2018, 12, 4)

    def test_numeric_string_to_int_in_lax_mode(self):
        assert coerce_value(int, "42") == 42

    def test_strict_mode_rejects_numeric_string(self):
        with pytest.raises(CoercionError):
            coerce_value(int, "42", strict=True)

    def test_ordered_collection(self):
        assert coerce_value(List[int], [1, "3", 5]) == [1, 3, 5]

    def test_mapping_of_collections(self):
        assert coerce_value(Dict[str, List[int]], {"a": [1, 2]}) == {"a": [1, 2]}

    def test_nested_model(self):
        point = coerce_value(Point, {"x": "1"})
        assert point == Point(x=1, y=0)

    def test_nested_model_collection(self):
        points = coerce_value(List[Point], [{"x": 1}, {"x": 2, "y": 3}])
        assert points == [Point(x=1), Point(x=2, y=3)]

    def test_nested_dataclass(self):
        assert coerce_value(Optional[Address], {"city": "Oslo"}) == Address(city="Oslo")

    def test_plain_class_instance_kept(self):
        owner = Owner("ada")
        assert coerce_value(Owner, owner) is owner

    def test_plain_class_from_mapping_fails(self):
        with pytest.raises(CoercionError):
            coerce_value(Owner, {"name": "ada"})

    def test_any_passes_through(self):
        payload = {"free": ["form"]}
        assert coerce_value(Any, payload) is payload

    def test_incompatible_value(self):
        with pytest.raises(CoercionError) as exc_info:
            coerce_value(List[int], "not a list", field="ints")
        error = exc_info.value
        assert isinstance(error, DeltaObjectError)
        assert isinstance(error, ValueError)
        assert "ints" in str(error)
        assert error.__cause__ is not None

    def test_adapter_is_cached(self):
        assert type_adapter(List[int]) is type_adapter(List[int])

    def test_bool_for_int_is_converted(self):
        value = coerce_value(int, True)
        assert value == 1
        assert type(value) is int

    def test_strict_mode_rejects_bool_for_int(self):
        with pytest.raises(CoercionError):
            coerce_value(int, True, strict=True)

    def test_json_values_keep_dates_in_strict_mode(self):
        value = coerce_value(Optional[datetime], "2018-12-04T10:30:00", strict=True, from_json=True)
        assert value == datetime(2018, 12, 4, 10, 30)

    def test_python_values_reject_date_strings_in_strict_mode(self):
        with pytest.raises(CoercionError):
            coerce_value(datetime, "2018-12-04T10:30:00", strict=True)

    def test_json_values_still_checked_in_strict_mode(self):
        with pytest.raises(CoercionError):
            coerce_value(int, "42", strict=True, from_json=True)

    def test_error_names_the_full_annotation(self):
        with pytest.raises(CoercionError) as exc_info:
            coerce_value(Optional[datetime], "not a date", field="when")
        assert "Optional[datetime.datetime]" in str(exc_info.value)
