"""Unit tests for contract models and validation helpers."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from attachvault.core.exceptions import InvalidArgumentError
from attachvault.models.contracts import (
    ContentDescriptor,
    RetentionOutcome,
    RetentionPolicyCreate,
    RetentionPolicyUpdate,
    validate_contract,
)
from attachvault.models.enums import RetentionScope


@pytest.mark.unit
class TestRetentionPolicyCreate:
    """Tests for scope/target pairing and limit validation."""

    def test_global_policy(self):
        data = RetentionPolicyCreate(scope="global", max_versions=5)
        assert data.scope == RetentionScope.GLOBAL
        assert data.max_versions == 5
        assert not data.is_noop

    def test_global_rejects_target(self):
        with pytest.raises(ValidationError):
            RetentionPolicyCreate(scope="global", team_id=uuid4())

    def test_team_requires_team_id(self):
        with pytest.raises(ValidationError):
            RetentionPolicyCreate(scope="team")

    def test_team_rejects_project_id(self):
        with pytest.raises(ValidationError):
            RetentionPolicyCreate(scope="team", team_id=uuid4(), project_id=uuid4())

    def test_project_requires_project_id(self):
        with pytest.raises(ValidationError):
            RetentionPolicyCreate(scope="project", team_id=uuid4())

    def test_unknown_scope(self):
        with pytest.raises(ValidationError):
            RetentionPolicyCreate(scope="organization")

    @pytest.mark.parametrize("field", ["max_versions", "keep_days"])
    @pytest.mark.parametrize("value", [0, -1])
    def test_non_positive_limits_rejected(self, field, value):
        with pytest.raises(ValidationError):
            RetentionPolicyCreate(scope="global", **{field: value})

    def test_noop_policy_allowed(self):
        assert RetentionPolicyCreate(scope="global").is_noop


@pytest.mark.unit
class TestRetentionPolicyUpdate:
    """Tests for partial update semantics."""

    def test_omitted_fields_are_not_set(self):
        data = RetentionPolicyUpdate(keep_days=10)
        assert data.model_fields_set == {"keep_days"}

    def test_explicit_none_is_set(self):
        data = RetentionPolicyUpdate(max_versions=None)
        assert data.model_fields_set == {"max_versions"}
        assert data.max_versions is None


@pytest.mark.unit
class TestValidateContract:
    """Tests for validate_contract()."""

    def test_returns_model(self):
        descriptor = validate_contract(
            ContentDescriptor, storage_key="k", content_type="text/plain", size_bytes=3
        )
        assert descriptor.storage_key == "k"
        assert descriptor.filename is None

    def test_converts_errors(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_contract(
                ContentDescriptor, storage_key="", content_type="text/plain", size_bytes=0
            )
        assert exc_info.value.field == "storage_key"
        assert "storage_key" in str(exc_info.value)

    def test_negative_size(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_contract(
                ContentDescriptor, storage_key="k", content_type="text/plain", size_bytes=-1
            )
        assert exc_info.value.field == "size_bytes"

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            validate_contract(
                ContentDescriptor, storage_key="k", content_type="", size_bytes=1
            )


@pytest.mark.unit
class TestRetentionOutcome:
    def test_deleted_count(self):
        outcome = RetentionOutcome(attachment_id=uuid4(), deleted_versions=[1, 2])
        assert outcome.deleted_count == 2

    def test_defaults(self):
        outcome = RetentionOutcome(attachment_id=uuid4())
        assert outcome.policy_id is None
        assert outcome.deleted_count == 0
        assert outcome.content_delete_failures == 0


@pytest.mark.unit
def test_scope_precedence():
    ordered = sorted(RetentionScope, key=lambda s: s.precedence)
    assert ordered == [RetentionScope.PROJECT, RetentionScope.TEAM, RetentionScope.GLOBAL]
