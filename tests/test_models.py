"""Tests for core data models."""

from datetime import datetime
from typing import List

import pytest
from pydantic import ValidationError

from delta_object.models import DeltaConfig, FieldDescriptor, FieldMapping


class TestDeltaConfig:
    def test_defaults(self):
        config = DeltaConfig()
        assert config.strict_coercion is False
        assert config.log_skipped_fields is True

    def test_overrides(self):
        config = DeltaConfig(strict_coercion=True, log_skipped_fields=False)
        assert config.strict_coercion is True
        assert config.log_skipped_fields is False


class TestFieldDescriptor:
    def test_default_without_factory_is_none(self):
        descriptor = FieldDescriptor(name="int1", value_type=int)
        assert descriptor.default() is None
        assert descriptor.writable is True
        assert descriptor.alias is None

    def test_default_factory_called_each_time(self):
        descriptor = FieldDescriptor(name="tags", value_type=List[str], default_factory=list)
        first = descriptor.default()
        second = descriptor.default()
        assert first == [] and second == []
        assert first is not second

    def test_descriptor_is_frozen(self):
        descriptor = FieldDescriptor(name="int1", value_type=int)
        with pytest.raises(ValidationError):
            descriptor.name = "other"


class TestFieldMapping:
    def test_apply_without_transform_passes_value_through(self):
        mapping = FieldMapping(target_field="int2")
        value = object()
        assert mapping.apply(value) is value

    def test_apply_with_transform(self):
        mapping = FieldMapping(target_field="when", transform=lambda d: d.replace(day=5))
        assert mapping.apply(datetime(2018, 12, 4)) == datetime(2018, 12, 5)
