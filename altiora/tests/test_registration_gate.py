"""
Unit tests for RegistrationGate.
"""

import pytest

from altiora.access.access_errors import AccessControlError, AccessErrorCode
from altiora.access.access_models import AccessControlOptions, AccessStatus
from altiora.access.registration_gate import RegistrationGate


async def _blocked_code(gate: RegistrationGate, payload) -> AccessErrorCode:
    with pytest.raises(AccessControlError) as exc_info:
        await gate.check(payload)
    return exc_info.value.code


class TestRegistrationGate:

    @pytest.mark.asyncio
    async def test_approved_passes(self, store):
        await store.create("ok@example.com", AccessStatus.APPROVED)
        gate = RegistrationGate(store, AccessControlOptions())

        await gate.check({"email": "OK@example.com", "password": "whatever"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, code",
        [
            (AccessStatus.PENDING, AccessErrorCode.PENDING_APPROVAL),
            (AccessStatus.REJECTED, AccessErrorCode.ACCESS_REJECTED),
        ],
    )
    async def test_blocked_statuses(self, store, status, code):
        await store.create("blocked@example.com", status)
        gate = RegistrationGate(store, AccessControlOptions())

        assert await _blocked_code(gate, {"email": "blocked@example.com"}) == code

    @pytest.mark.asyncio
    @pytest.mark.parametrize("allow_waitlist", [True, False])
    async def test_unknown_email(self, store, allow_waitlist):
        gate = RegistrationGate(store, AccessControlOptions(allow_waitlist=allow_waitlist))

        assert await _blocked_code(gate, {"email": "stranger@example.com"}) == AccessErrorCode.NOT_WHITELISTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [None, {}, {"email": ""}, {"email": 42}])
    async def test_missing_email(self, store, payload):
        gate = RegistrationGate(store, AccessControlOptions())

        assert await _blocked_code(gate, payload) == AccessErrorCode.EMAIL_REQUIRED

    @pytest.mark.asyncio
    async def test_disabled_gate_passes_everything(self, store):
        await store.create("rejected@example.com", AccessStatus.REJECTED)
        gate = RegistrationGate(store, AccessControlOptions(enforce_on_registration=False))

        assert not gate.enabled
        await gate.check({"email": "rejected@example.com"})
        await gate.check({"email": "stranger@example.com"})
        await gate.check(None)
