import asyncio
from unittest.mock import patch

import pytest

from custom_components.smart_power_monitor.const import ALERT_EVENT, ERROR_FETCH_FAILED
from custom_components.smart_power_monitor.dispatcher import CommandDispatcher
from custom_components.smart_power_monitor.models import (
    ClassifiedReading,
    MonitoringRecord,
    ThresholdLevel,
)
from custom_components.smart_power_monitor.session import MonitorSession, NotConnectedError
from custom_components.smart_power_monitor.store import StoreWriteError

from .conftest import FakeStore, QueueSource


def _reading(level=0, power=50.0, components=(False, False, False), **extra):
    record = MonitoringRecord.from_snapshot({
        "component1": components[0],
        "component2": components[1],
        "component3": components[2],
        "power": power,
        "thresholdLevel": level,
        **extra,
    })
    return ClassifiedReading(record=record, level=record.threshold_level)


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def source(store):
    return QueueSource(store)


@pytest.fixture
async def session(hass, source, config_manager):
    dispatcher = CommandDispatcher(None, delay=0)
    session = MonitorSession(
        hass,
        lambda: source,
        dispatcher,
        config_manager,
        notify_service="mobile_app_phone",
    )
    await session.async_start()
    yield session
    await session.async_stop()


async def test_push_updates_local_state(session, source):
    source.push(_reading(power=75, totalEnergy=150000))
    await _settle()

    assert session.state.connected
    assert session.state.record.power == 75
    assert session.state.bill.total == 900


async def test_background_warning_sends_push_notification(session, source, hass):
    source.push(_reading(level=0))
    source.push(_reading(level=1, power=120))
    await _settle()

    hass.services.async_call.assert_awaited_once()
    domain, service, data = hass.services.async_call.await_args.args
    assert (domain, service) == ("notify", "mobile_app_phone")
    assert data["title"] == "Smart Power Monitor Warning"
    assert "120W" in data["message"]
    assert data["data"]["importance"] == "max"
    assert not session.state.warning_visible


async def test_foreground_warning_shows_modal_without_notification(session, source, hass):
    session.set_foreground(True)
    source.push(_reading(level=1, power=120))
    await _settle()

    hass.services.async_call.assert_not_awaited()
    assert session.state.warning_visible
    assert session.state.warning_level == ThresholdLevel.WARNING
    assert session.state.vibrate_seconds == 4
    event_type, event_data = hass.bus.async_fire.call_args.args
    assert event_type == ALERT_EVENT
    assert event_data["level"] == 1


async def test_no_notification_without_permission(session, source, hass):
    session.state.notifications_enabled = False
    source.push(_reading(level=2, power=200))
    await _settle()
    hass.services.async_call.assert_not_awaited()


async def test_returning_to_foreground_shows_pending_warning(session, source, hass):
    source.push(_reading(level=2, power=200))
    await _settle()
    assert not session.state.warning_visible

    session.set_foreground(True)
    assert session.state.warning_visible
    assert session.state.warning_level == ThresholdLevel.CRITICAL


async def test_toggle_uses_last_known_state(session, source, store):
    source.push(_reading(components=(False, False, False)))
    await _settle()

    task = await session.async_toggle(2)
    await task
    assert store.commands() == ["NONE", "TOGGLE:2:ON"]


async def test_toggle_off_during_warning_clears_modal(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=1, components=(True, False, False)))
    await _settle()
    assert session.state.warning_visible

    await (await session.async_toggle(1))
    assert ("monitoring/thresholdLevel", 0) in store.writes
    assert not session.state.warning_visible


async def test_toggle_off_hides_modal_when_reset_write_fails(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=1, components=(True, False, False)))
    await _settle()
    assert session.state.warning_visible
    store.fail_on.add("thresholdLevel")

    with pytest.raises(StoreWriteError):
        await session.async_toggle(1)
    assert not session.state.warning_visible


async def test_toggle_on_keeps_modal_when_write_fails(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=1, components=(False, False, False)))
    await _settle()
    store.fail_on.add("command")

    with pytest.raises(StoreWriteError):
        await session.async_toggle(1)
    assert session.state.warning_visible


async def test_toggle_refused_before_first_reading(session, store):
    with pytest.raises(NotConnectedError):
        await session.async_toggle(1)
    assert store.writes == []


async def test_toggle_refused_after_read_failure(session, source, store):
    source.push(_reading(components=(True, False, False)))
    await _settle()
    source.fail()
    await _settle()

    with pytest.raises(NotConnectedError):
        await session.async_toggle(1)
    with pytest.raises(NotConnectedError):
        await session.async_turn_off_all()
    assert store.writes == []


async def test_vibration_kept_until_dismissed(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=1, power=120))
    source.push(_reading(level=1, power=125))
    await _settle()
    assert session.state.vibrate_seconds == 4

    await session.async_dismiss_warning()
    assert session.state.vibrate_seconds is None


async def test_dismiss_hides_modal_and_resets_level(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=1))
    await _settle()

    await session.async_dismiss_warning()
    await session.async_dismiss_warning()
    assert not session.state.warning_visible
    assert store.writes == [("monitoring/thresholdLevel", 0)] * 2


async def test_dismiss_failure_still_hides_modal(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=2))
    await _settle()
    store.fail_on.add("thresholdLevel")

    with pytest.raises(StoreWriteError):
        await session.async_dismiss_warning()
    assert not session.state.warning_visible


async def test_turn_off_all(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=2, components=(True, True, True)))
    await _settle()

    await session.async_turn_off_all()
    assert store.writes == [
        ("monitoring/command", "TURNOFFALL"),
        ("monitoring/thresholdLevel", 0),
    ]
    assert not session.state.warning_visible


async def test_turn_off_all_hides_modal_when_write_fails(session, source, store):
    session.set_foreground(True)
    source.push(_reading(level=2, components=(True, True, True)))
    await _settle()
    store.fail_on.add("command")

    with pytest.raises(StoreWriteError):
        await session.async_turn_off_all()
    assert not session.state.warning_visible


async def test_read_failure_sets_fetch_error(session, source):
    states = []
    session.async_add_listener(lambda state: states.append(state.error))
    source.fail()
    await _settle()

    assert not session.state.connected
    assert session.state.error == ERROR_FETCH_FAILED
    assert states[-1] == ERROR_FETCH_FAILED


async def test_listener_removed_after_unsubscribe(session, source):
    calls = []
    remove = session.async_add_listener(calls.append)
    source.push(_reading())
    await _settle()
    remove()
    source.push(_reading())
    await _settle()
    assert len(calls) == 1


async def test_stop_closes_source(session, source):
    await session.async_stop()
    assert source.closed
    assert not session.state.connected


async def test_failed_delayed_command_creates_persistent_notification(
    hass, config_manager
):
    store = FakeStore()
    source = QueueSource(store)
    dispatcher = CommandDispatcher(None, delay=0.01)
    session = MonitorSession(hass, lambda: source, dispatcher, config_manager)
    await session.async_start()
    source.push(_reading())
    await _settle()

    with patch(
        "custom_components.smart_power_monitor.session.persistent_notification"
    ) as notification:
        task = await session.async_toggle(1)
        store.fail_on.add("command")
        await task
        notification.async_create.assert_called_once()

    await session.async_stop()


async def test_optimistic_toggle_updates_local_record(hass, config_manager):
    store = FakeStore()
    source = QueueSource(store)
    session = MonitorSession(
        hass, lambda: source, CommandDispatcher(None, delay=0), config_manager, optimistic=True
    )
    await session.async_start()
    source.push(_reading())
    await _settle()

    await (await session.async_toggle(3))
    assert session.state.record.is_on(3)
    assert store.writes[0] == ("monitoring/component3", True)
    await session.async_stop()
