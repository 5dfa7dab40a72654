"""Tests for the autopublish.exceptions hierarchy."""

import pytest

from autopublish import exceptions
from autopublish.exceptions import (
    AutopublishBaseError,
    ConfigurationError,
    CrossPostError,
    DatabaseError,
    MirrorSyncError,
    ValidationError,
)


class TestHierarchy:
    """Each exception sits where callers expect to catch it."""

    @pytest.mark.parametrize("exc_cls", [MirrorSyncError, CrossPostError])
    def test_external_sync_errors_share_base(self, exc_cls):
        assert issubclass(exc_cls, AutopublishBaseError)

    def test_validation_error_is_value_error(self):
        """Callers catching ValueError also catch ValidationError."""
        assert issubclass(ValidationError, ValueError)
        with pytest.raises(ValueError):
            raise ValidationError("bad input")

    @pytest.mark.parametrize("exc_cls", [DatabaseError, ConfigurationError])
    def test_core_errors_are_plain_exceptions(self, exc_cls):
        assert issubclass(exc_cls, Exception)
        assert not issubclass(exc_cls, AutopublishBaseError)


class TestMirrorSyncError:
    def test_message_and_status_code(self):
        err = MirrorSyncError("Airtable push failed", status_code=422)
        assert str(err) == "Airtable push failed"
        assert err.status_code == 422

    def test_status_code_defaults_to_none(self):
        assert MirrorSyncError("no id").status_code is None


def test_all_exports_resolve():
    for name in exceptions.__all__:
        assert isinstance(getattr(exceptions, name), type)
