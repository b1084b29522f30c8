"""Tests for domain exceptions."""

import pytest

from milestones.domain.exceptions import (
    DomainError,
    EditorLockedError,
    ItemNotFoundError,
    SaveError,
    SaveInProgressError,
    ValidationError,
)


class TestDomainExceptions:
    """Test domain exception hierarchy and messages."""

    def test_all_errors_are_domain_errors(self):
        for error in (
            ValidationError("bad"),
            ItemNotFoundError("local-abc"),
            EditorLockedError("7"),
            SaveInProgressError("7"),
            SaveError("boom"),
        ):
            assert isinstance(error, DomainError)

    def test_validation_error_keeps_bare_message(self):
        error = ValidationError("Field 'x' cannot be edited")
        assert error.message == "Field 'x' cannot be edited"
        assert str(error) == "Validation error: Field 'x' cannot be edited"

    def test_item_not_found_names_the_item(self):
        error = ItemNotFoundError("local-abc")
        assert error.item_id == "local-abc"
        assert "local-abc" in str(error)

    def test_save_error_carries_store_message_verbatim(self):
        error = SaveError("new row violates row-level security policy", step="create")
        assert str(error) == "new row violates row-level security policy"
        assert error.message == "new row violates row-level security policy"
        assert error.step == "create"

    def test_can_catch_as_domain_error(self):
        with pytest.raises(DomainError):
            raise EditorLockedError("7")
