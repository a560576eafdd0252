"""
Provisioning Tests
Atomic creation of greenhouse + control state + admin grant, and the
token conflict rules around it.
"""
import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from ecoduino.exceptions import (
    DatabaseError,
    DuplicateControlState,
    IncompleteProvisioningRequest,
    TokenAlreadyRegistered,
    ValidationError,
)
from ecoduino.metrics import registry as metrics_registry


def provisioning_count(outcome: str) -> float:
    value = metrics_registry.get_sample_value(
        "provisioning_attempts_total", {"outcome": outcome}
    )
    return value or 0.0


class TestProvisioningHappyPath:
    """A successful provisioning call creates exactly three rows"""

    @pytest.mark.asyncio
    async def test_creates_device_control_state_and_grant(self, services, counts):
        device = await services.provisioning.provision(7, "Greenhouse A", "ABC")

        assert device.id is not None
        assert device.location_label == "Greenhouse A"
        assert device.token == "ABC"
        assert device.last_contact is None

        state = await services.control_states.get(device.id)
        assert state.flags() == (False, False, False)

        assert await services.ledger.roles_for(7, device.id) == ["admin"]
        assert await counts() == {
            "greenhouses": 1, "control_states": 1, "ownerships": 1, "readings": 0
        }

    @pytest.mark.asyncio
    async def test_location_label_is_trimmed(self, services):
        device = await services.provisioning.provision(1, "  North bay  ", "tok-north")
        assert device.location_label == "North bay"

    @pytest.mark.asyncio
    async def test_counts_created_outcome(self, services):
        before = provisioning_count("created")
        await services.provisioning.provision(3, "Shed", "tok-metric")
        assert provisioning_count("created") == before + 1


class TestProvisioningValidation:
    """Inputs are checked before any storage access"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id,label,token,missing", [
        (None, "A", "T", ["userId"]),
        (0, "A", "T", ["userId"]),
        (True, "A", "T", ["userId"]),
        (5, "", "T", ["locationLabel"]),
        (5, "   ", "T", ["locationLabel"]),
        (5, "A", None, ["token"]),
        (None, None, "", ["userId", "locationLabel", "token"]),
    ])
    async def test_missing_fields(self, services, counts, user_id, label, token, missing):
        with pytest.raises(IncompleteProvisioningRequest) as exc_info:
            await services.provisioning.provision(user_id, label, token)

        assert exc_info.value.missing == missing
        assert exc_info.value.status_code == 400
        assert (await counts())["greenhouses"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("label,token,field", [
        ("L" * 151, "T", "locationLabel"),
        ("A", "T" * 129, "token"),
    ])
    async def test_values_longer_than_their_columns(self, services, counts, label, token, field):
        with pytest.raises(ValidationError) as exc_info:
            await services.provisioning.provision(7, label, token)

        assert exc_info.value.field == field
        assert exc_info.value.status_code == 400
        assert (await counts())["greenhouses"] == 0

    @pytest.mark.asyncio
    async def test_values_at_column_width_are_accepted(self, services):
        device = await services.provisioning.provision(7, "L" * 150, "T" * 128)
        assert device.token == "T" * 128


class TestProvisioningConflicts:
    """At most one greenhouse per token"""

    @pytest.mark.asyncio
    async def test_second_provision_same_token_conflicts(self, services, counts):
        await services.provisioning.provision(7, "Greenhouse A", "ABC")

        with pytest.raises(TokenAlreadyRegistered) as exc_info:
            await services.provisioning.provision(8, "Greenhouse B", "ABC")

        assert exc_info.value.status_code == 409
        assert await counts() == {
            "greenhouses": 1, "control_states": 1, "ownerships": 1, "readings": 0
        }

    @pytest.mark.asyncio
    async def test_conflict_message_does_not_echo_full_token(self, services):
        await services.provisioning.provision(7, "A", "SECRET-TOKEN-9876")
        with pytest.raises(TokenAlreadyRegistered) as exc_info:
            await services.provisioning.provision(7, "B", "SECRET-TOKEN-9876")

        assert "SECRET-TOKEN" not in exc_info.value.message
        assert exc_info.value.details["identifier"].endswith("9876")

    @pytest.mark.asyncio
    async def test_constraint_rejects_insert_that_passed_the_lookup(self, services, counts, monkeypatch):
        """
        Simulate two callers that both saw "not registered": the lookup is
        forced to miss, so only the unique constraint stands in the way.
        """
        await services.provisioning.provision(7, "Greenhouse A", "RACE")

        async def always_missing(token, session=None):
            return None

        monkeypatch.setattr(services.registry, "find_by_token", always_missing)

        with pytest.raises(TokenAlreadyRegistered):
            await services.provisioning.provision(9, "Greenhouse Z", "RACE")

        assert await counts() == {
            "greenhouses": 1, "control_states": 1, "ownerships": 1, "readings": 0
        }

    @pytest.mark.asyncio
    async def test_repeated_attempts_only_one_succeeds(self, services, counts):
        results = []
        for user_id in range(1, 6):
            try:
                await services.provisioning.provision(user_id, f"Bay {user_id}", "SHARED")
                results.append("created")
            except TokenAlreadyRegistered:
                results.append("conflict")

        assert results.count("created") == 1
        assert results.count("conflict") == 4
        assert (await counts())["greenhouses"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_attempts_only_one_succeeds(self, services, counts):
        attempts = [
            services.provisioning.provision(user_id, f"Bay {user_id}", "CONCURRENT")
            for user_id in range(1, 7)
        ]

        results = await asyncio.gather(*attempts, return_exceptions=True)

        created = [r for r in results if not isinstance(r, BaseException)]
        conflicts = [r for r in results if isinstance(r, TokenAlreadyRegistered)]
        assert len(created) == 1
        assert len(conflicts) == 5
        assert await counts() == {
            "greenhouses": 1, "control_states": 1, "ownerships": 1, "readings": 0
        }

    @pytest.mark.asyncio
    async def test_counts_conflict_outcome(self, services):
        await services.provisioning.provision(7, "A", "tok-conflict-metric")
        before = provisioning_count("conflict")
        with pytest.raises(TokenAlreadyRegistered):
            await services.provisioning.provision(7, "A", "tok-conflict-metric")
        assert provisioning_count("conflict") == before + 1


class TestProvisioningAtomicity:
    """A failure at any step leaves no rows behind"""

    @pytest.mark.asyncio
    async def test_failure_in_grant_rolls_back_everything(self, services, counts, monkeypatch):
        async def broken_grant(*args, **kwargs):
            raise OperationalError("INSERT INTO user_greenhouses", {}, Exception("disk I/O error"))

        monkeypatch.setattr(services.ledger, "grant", broken_grant)

        with pytest.raises(DatabaseError) as exc_info:
            await services.provisioning.provision(7, "Greenhouse A", "ATOMIC")

        assert not isinstance(exc_info.value, TokenAlreadyRegistered)
        assert exc_info.value.status_code == 500
        assert await counts() == {
            "greenhouses": 0, "control_states": 0, "ownerships": 0, "readings": 0
        }
        assert await services.registry.find_by_token("ATOMIC") is None

    @pytest.mark.asyncio
    async def test_timeout_mid_transaction_is_internal_and_rolled_back(self, services, counts, monkeypatch):
        async def slow_grant(*args, **kwargs):
            raise asyncio.TimeoutError()

        monkeypatch.setattr(services.ledger, "grant", slow_grant)

        with pytest.raises(DatabaseError):
            await services.provisioning.provision(7, "Greenhouse A", "TIMEOUT")

        assert (await counts())["greenhouses"] == 0

    @pytest.mark.asyncio
    async def test_duplicate_control_state_is_internal(self, services, counts, monkeypatch):
        async def duplicate(device_id, session=None):
            raise DuplicateControlState(device_id)

        monkeypatch.setattr(services.control_states, "initialize", duplicate)

        with pytest.raises(DatabaseError) as exc_info:
            await services.provisioning.provision(7, "Greenhouse A", "DUP")

        assert exc_info.value.status_code == 500
        assert (await counts())["greenhouses"] == 0

    @pytest.mark.asyncio
    async def test_token_is_reusable_after_failed_attempt(self, services, monkeypatch):
        original_grant = services.ledger.grant

        async def broken_grant(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("boom"))

        monkeypatch.setattr(services.ledger, "grant", broken_grant)
        with pytest.raises(DatabaseError):
            await services.provisioning.provision(7, "A", "RETRY")

        monkeypatch.setattr(services.ledger, "grant", original_grant)
        device = await services.provisioning.provision(7, "A", "RETRY")
        assert (await services.control_states.get(device.id)).flags() == (False, False, False)
