"""Configuration manager for Smart Power Monitor."""
from __future__ import annotations

import json
import logging
import os
from copy import deepcopy
from typing import Any

from homeassistant.core import HomeAssistant

from .const import CONFIG_FILE, DEFAULT_CONFIG, NAME
from .tariff import TariffSettings

_LOGGER = logging.getLogger(__name__)

TARIFF_TEXT_FIELDS = (
    "tariff",
    "daily_hours",
    "peak_tariff",
    "off_peak_tariff",
    "peak_hours",
    "off_peak_hours",
)


def _load_json_file(path: str) -> dict | None:
    """Load JSON file (run in executor to avoid blocking event loop)."""
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_file(path: str, data: Any) -> None:
    """Write JSON file (run in executor to avoid blocking event loop)."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


class ConfigManager:
    """Manage Smart Power Monitor user settings stored in a JSON file."""

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the config manager."""
        self.hass = hass
        self._config: dict[str, Any] = deepcopy(DEFAULT_CONFIG)
        self._config_path = hass.config.path(CONFIG_FILE)

    @property
    def config(self) -> dict[str, Any]:
        """Return the current configuration."""
        return self._config

    @property
    def product_name(self) -> str:
        """Return the name used in notification titles."""
        return self._config.get("product_name") or NAME

    @property
    def notifications_enabled(self) -> bool:
        """Return whether push notifications are permitted."""
        return bool(self._config.get("notifications", {}).get("enabled", True))

    @property
    def tariff_settings(self) -> TariffSettings:
        """Return the stored flat/dual tariff settings."""
        return TariffSettings.from_dict(self._config.get("tariff"))

    async def async_load(self) -> None:
        """Load configuration from file."""
        try:
            loaded_config = await self.hass.async_add_executor_job(
                _load_json_file, self._config_path
            )
            if loaded_config is not None:
                self._config = self._merge_with_defaults(loaded_config)
                _LOGGER.info("Loaded Smart Power Monitor configuration")
            else:
                _LOGGER.info("No config file found, using defaults")
                await self.async_save()
        except (json.JSONDecodeError, IOError) as err:
            _LOGGER.error("Error loading config: %s", err)
            self._config = deepcopy(DEFAULT_CONFIG)

    async def async_save(self) -> None:
        """Save configuration to file."""
        try:
            await self.hass.async_add_executor_job(
                _write_json_file, self._config_path, self._config
            )
            _LOGGER.debug("Saved Smart Power Monitor configuration")
        except IOError as err:
            _LOGGER.error("Error saving config: %s", err)

    def _merge_with_defaults(self, loaded: dict[str, Any]) -> dict[str, Any]:
        """Merge loaded config with defaults to ensure all keys exist."""
        result = deepcopy(DEFAULT_CONFIG)
        if not isinstance(loaded, dict):
            return result

        if isinstance(loaded.get("product_name"), str) and loaded["product_name"].strip():
            result["product_name"] = loaded["product_name"].strip()
        if isinstance(loaded.get("notifications"), dict):
            result["notifications"]["enabled"] = bool(
                loaded["notifications"].get("enabled", True)
            )
        if isinstance(loaded.get("tariff"), dict):
            result["tariff"] = self._validate_tariff(loaded["tariff"])

        return result

    def _validate_tariff(self, tariff: dict[str, Any]) -> dict[str, Any]:
        """Keep known tariff fields; text fields are stored as strings."""
        validated = deepcopy(DEFAULT_CONFIG["tariff"])
        for key in TARIFF_TEXT_FIELDS:
            val = tariff.get(key)
            validated[key] = "" if val is None else str(val).strip()
        validated["use_dual_tariff"] = bool(tariff.get("use_dual_tariff", False))
        return validated

    async def async_update_tariff(self, tariff: dict[str, Any]) -> TariffSettings:
        """Replace the stored tariff settings."""
        self._config["tariff"] = self._validate_tariff(tariff)
        await self.async_save()
        return self.tariff_settings

    async def async_set_notifications_enabled(self, enabled: bool) -> None:
        """Persist whether push notifications are permitted."""
        self._config.setdefault("notifications", {})["enabled"] = bool(enabled)
        await self.async_save()
