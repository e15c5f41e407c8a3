"""Tests for request body validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sacco_mfa import Factor, MfaVerifyPayload


class TestMfaVerifyPayload:
    def test_minimal(self) -> None:
        payload = MfaVerifyPayload.model_validate({"token": " 123456 "})

        assert payload.token == "123456"
        assert payload.method is None
        assert payload.remember_device is False

    def test_full(self) -> None:
        payload = MfaVerifyPayload.model_validate(
            {"token": "ABCD-EFGH", "method": "backup", "rememberDevice": True}
        )

        assert payload.method is Factor.BACKUP
        assert payload.remember_device is True

    def test_field_name_accepted(self) -> None:
        payload = MfaVerifyPayload(token="123456", remember_device=True)
        assert payload.remember_device is True

    @pytest.mark.parametrize(
        "data",
        [{}, {"token": ""}, {"token": "   "}, {"token": "123456", "method": "sms"}],
    )
    def test_invalid(self, data) -> None:
        with pytest.raises(ValidationError):
            MfaVerifyPayload.model_validate(data)
