import json

import pytest

from custom_components.smart_power_monitor.config_manager import ConfigManager


@pytest.fixture
def manager(hass, tmp_path):
    hass.config.path = lambda name: str(tmp_path / name)
    return ConfigManager(hass)


async def test_load_without_file_writes_defaults(manager, tmp_path):
    await manager.async_load()

    saved = json.loads((tmp_path / "smart_power_monitor.json").read_text())
    assert saved["notifications"]["enabled"] is True
    assert saved["tariff"]["use_dual_tariff"] is False
    assert manager.product_name == "Smart Power Monitor"


async def test_load_merges_stored_values(manager, tmp_path):
    (tmp_path / "smart_power_monitor.json").write_text(json.dumps({
        "product_name": "Home Meter",
        "tariff": {"tariff": 12, "use_dual_tariff": True, "unknown": "x"},
    }))
    await manager.async_load()

    assert manager.product_name == "Home Meter"
    settings = manager.tariff_settings
    assert settings.tariff == "12"
    assert settings.use_dual_tariff is True
    assert "unknown" not in manager.config["tariff"]


async def test_corrupt_file_falls_back_to_defaults(manager, tmp_path):
    (tmp_path / "smart_power_monitor.json").write_text("{not json")
    await manager.async_load()
    assert manager.notifications_enabled


async def test_update_tariff_persists_strings(manager, tmp_path):
    await manager.async_load()
    settings = await manager.async_update_tariff({
        "tariff": 9.5,
        "daily_hours": "8 ",
        "use_dual_tariff": False,
    })

    assert settings.tariff == "9.5"
    assert settings.daily_hours == "8"
    saved = json.loads((tmp_path / "smart_power_monitor.json").read_text())
    assert saved["tariff"]["tariff"] == "9.5"
    assert saved["tariff"]["peak_tariff"] == ""


async def test_notification_flag_persisted(manager, tmp_path):
    await manager.async_load()
    await manager.async_set_notifications_enabled(False)

    assert not manager.notifications_enabled
    saved = json.loads((tmp_path / "smart_power_monitor.json").read_text())
    assert saved["notifications"]["enabled"] is False
