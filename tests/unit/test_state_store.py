"""Tests for the in-memory state store."""

from __future__ import annotations

import pytest

from sacco_mfa import IMfaStateStore, InMemoryMfaStateStore, MfaState


class TestInMemoryMfaStateStore:
    def test_satisfies_port(self) -> None:
        assert isinstance(InMemoryMfaStateStore(), IMfaStateStore)

    @pytest.mark.asyncio
    async def test_unknown_user_gets_empty_state(self) -> None:
        assert await InMemoryMfaStateStore().load("nobody") == MfaState()

    @pytest.mark.asyncio
    async def test_save_and_load(self) -> None:
        store = InMemoryMfaStateStore()
        state = MfaState(totp_secret="S", last_accepted_step=10)

        await store.save("user-1", state)

        assert await store.load("user-1") == state

    @pytest.mark.asyncio
    async def test_clear_all(self) -> None:
        store = InMemoryMfaStateStore({"user-1": MfaState(totp_secret="S")})

        store.clear_all()

        assert await store.load("user-1") == MfaState()
