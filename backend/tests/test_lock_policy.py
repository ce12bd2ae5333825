"""Tests for the document lock policy."""
import pytest

from erp_workflow.core.exceptions import DocumentLocked
from erp_workflow.models.enums import DocumentStatus
from erp_workflow.services.lock_policy import assert_editable, can_edit, is_locked


@pytest.mark.parametrize("status", ["Approved", "Cancelled"])
def test_approved_and_cancelled_are_locked(status):
    assert is_locked(status) is True
    assert can_edit(status) is False


@pytest.mark.parametrize("status", ["Draft", "Pending", "Rejected"])
def test_draft_pending_rejected_are_editable(status):
    assert is_locked(status) is False
    assert can_edit(status) is True


def test_accepts_enum_members():
    assert is_locked(DocumentStatus.Approved) is True
    assert is_locked(DocumentStatus.Pending) is False


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        is_locked("Archived")


def test_assert_editable_raises_for_locked_document():
    with pytest.raises(DocumentLocked, match="Approved"):
        assert_editable("Approved")
    assert_editable("Rejected")
