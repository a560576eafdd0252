"""
Control State Store Tests
One row per greenhouse, flags overwritten independently.
"""
import asyncio

import pytest

from ecoduino.exceptions import (
    ControlStateUninitialized,
    DuplicateControlState,
    InvalidActuator,
    ValidationError,
)
from ecoduino.schemas import Actuator


@pytest.fixture
async def device(services):
    return await services.provisioning.provision(7, "Greenhouse A", "ABC")


class TestControlStateStore:

    @pytest.mark.asyncio
    async def test_initialize_twice_is_rejected(self, services, device):
        with pytest.raises(DuplicateControlState):
            await services.control_states.initialize(device.id)

    @pytest.mark.asyncio
    async def test_missing_row_is_uninitialized(self, services):
        bare = await services.registry.create("NO-CONTROL", "Bare")

        with pytest.raises(ControlStateUninitialized) as exc_info:
            await services.control_states.get(bare.id)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_set_flag_on_missing_row(self, services):
        with pytest.raises(ControlStateUninitialized):
            await services.control_states.set_flag(9999, "lights", True)

    @pytest.mark.asyncio
    async def test_setting_one_flag_leaves_others(self, services, device):
        await services.control_states.set_flag(device.id, Actuator.LIGHTS, True)

        state = await services.control_states.get(device.id)
        assert state.lights is True
        assert state.irrigation is False
        assert state.ventilation is False

    @pytest.mark.asyncio
    async def test_concurrent_updates_to_different_flags(self, services, device):
        await asyncio.gather(
            services.control_states.set_flag(device.id, "lights", True),
            services.control_states.set_flag(device.id, "irrigation", True),
            services.control_states.set_flag(device.id, "ventilation", True),
        )

        assert (await services.control_states.get(device.id)).flags() == (True, True, True)

    @pytest.mark.asyncio
    async def test_set_is_idempotent(self, services, device):
        await services.control_states.set_flag(device.id, "irrigation", True)
        await services.control_states.set_flag(device.id, "irrigation", True)

        assert (await services.control_states.get(device.id)).flags() == (False, True, False)

    @pytest.mark.asyncio
    async def test_last_write_wins(self, services, device):
        await services.control_states.set_flag(device.id, "ventilation", True)
        await services.control_states.set_flag(device.id, "ventilation", False)

        assert (await services.control_states.get(device.id)).ventilation is False

    @pytest.mark.asyncio
    async def test_update_refreshes_timestamp(self, services, device):
        before = (await services.control_states.get(device.id)).updated_at
        await services.control_states.set_flag(device.id, "lights", True)
        after = (await services.control_states.get(device.id)).updated_at

        assert after >= before

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,expected", [
        ("luces", Actuator.LIGHTS),
        ("riego", Actuator.IRRIGATION),
        ("ventilacion", Actuator.VENTILATION),
        ("Lights", Actuator.LIGHTS),
    ])
    async def test_legacy_actuator_names(self, services, device, name, expected):
        await services.control_states.set_flag(device.id, name, True)
        state = await services.control_states.get(device.id)
        assert getattr(state, expected.value) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["heater", "", None, "lights_estado"])
    async def test_invalid_actuator(self, services, name):
        # Unknown greenhouse id: the actuator check must fire before any lookup
        with pytest.raises(InvalidActuator) as exc_info:
            await services.control_states.set_flag(123456, name, True)

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "INVALID_ACTUATOR"

    @pytest.mark.asyncio
    async def test_non_boolean_value(self, services, device):
        with pytest.raises(ValidationError):
            await services.control_states.set_flag(device.id, "lights", "yes")
