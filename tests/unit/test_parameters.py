"""Tests for request parameter decoding."""

from __future__ import annotations

import pytest

from s3_broker.errors import InvalidParametersError
from s3_broker.parameters import BindParameters, ProvisionParameters, UpdateParameters, decode_raw_parameters


class TestDecodeRawParameters:
    """Test raw JSON decoding."""

    @pytest.mark.parametrize("raw", [None, "", b"", "null"])
    def test_empty(self, raw):
        """Test absent parameters decode to an empty mapping."""
        assert decode_raw_parameters(raw) == {}

    def test_bytes(self):
        """Test JSON bytes are decoded."""
        assert decode_raw_parameters(b'{"a": 1}') == {"a": 1}

    def test_mapping_passes_through(self):
        """Test an already decoded mapping is returned as is."""
        assert decode_raw_parameters({"a": 1}) == {"a": 1}

    @pytest.mark.parametrize("raw", ["{", "[1, 2]", '"text"'])
    def test_malformed(self, raw):
        """Test malformed or non-object JSON is rejected."""
        with pytest.raises(InvalidParametersError):
            decode_raw_parameters(raw)


class TestProvisionParameters:
    """Test provision parameters."""

    def test_object_ownership(self):
        """Test a known ownership mode is accepted."""
        params = ProvisionParameters.from_raw('{"object_ownership": "BucketOwnerEnforced"}')

        assert params.object_ownership == "BucketOwnerEnforced"

    def test_unknown_object_ownership(self):
        """Test an unknown ownership mode is rejected."""
        with pytest.raises(InvalidParametersError, match="Invalid object_ownership"):
            ProvisionParameters.from_raw({"object_ownership": "Everyone"})

    def test_defaults(self):
        """Test no parameters leaves ownership unset."""
        assert ProvisionParameters.from_raw(None).object_ownership is None


class TestUpdateParameters:
    """Test update parameters."""

    def test_apply_immediately(self):
        """Test the boolean flag is read."""
        assert UpdateParameters.from_raw('{"apply_immediately": true}').apply_immediately is True

    def test_apply_immediately_not_boolean(self):
        """Test a non-boolean flag is rejected."""
        with pytest.raises(InvalidParametersError):
            UpdateParameters.from_raw('{"apply_immediately": "yes"}')


class TestBindParameters:
    """Test bind parameters."""

    def test_additional_instances(self):
        """Test instance names keep their order."""
        params = BindParameters.from_raw('{"additional_instances": ["b", "a"]}')

        assert params.additional_instances == ["b", "a"]

    def test_additional_instances_default(self):
        """Test no additional instances by default."""
        assert BindParameters.from_raw("{}").additional_instances == []

    @pytest.mark.parametrize("value", ['"one"', "[1]", '{"a": "b"}'])
    def test_additional_instances_invalid(self, value):
        """Test anything but a list of names is rejected."""
        with pytest.raises(InvalidParametersError, match="additional_instances"):
            BindParameters.from_raw(f'{{"additional_instances": {value}}}')
