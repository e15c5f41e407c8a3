"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from sacco_mfa import (
    InvalidPolicyError,
    InvalidVerificationRequestError,
    MfaError,
    MfaSetupError,
    PasskeyVerifierUnavailableError,
    SaccoMfaError,
    SecretDecryptionError,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "exc_type",
        [
            InvalidVerificationRequestError,
            MfaSetupError,
            SecretDecryptionError,
            PasskeyVerifierUnavailableError,
        ],
    )
    def test_mfa_errors(self, exc_type) -> None:
        assert issubclass(exc_type, MfaError)
        assert issubclass(exc_type, SaccoMfaError)

    def test_value_errors(self) -> None:
        assert issubclass(InvalidPolicyError, ValueError)
        assert issubclass(InvalidVerificationRequestError, ValueError)
        assert not issubclass(InvalidPolicyError, MfaError)

    def test_catch_by_root(self) -> None:
        with pytest.raises(SaccoMfaError, match="missing"):
            raise MfaSetupError("missing collaborator")
