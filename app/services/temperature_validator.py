from __future__ import annotations

from typing import Any

from app.core.logger import get_logger

logger = get_logger(component="TemperatureDataValidator")


class TemperatureDataValidator:
    """
    Sanity checks for temperature-difference alerts from Home Assistant.

    Applies only to payloads with ``alert_type == "temperature_difference"``.
    Every ``temperature_<name>`` key (other than ``temperature_difference``) is
    a sensor object carrying a reading under ``value`` or ``temperature`` and an
    ``entity_id`` or ``sensor_id``.
    """

    # Residential readings; anything outside is treated as a sensor fault.
    MIN_TEMPERATURE = 0.0
    MAX_TEMPERATURE = 40.0
    TEMPERATURE_TOLERANCE = 0.5
    ALERT_TYPE = "temperature_difference"

    def applies_to(self, payload: dict[str, Any] | None) -> bool:
        return bool(payload) and payload.get("alert_type") == self.ALERT_TYPE

    def validate(self, payload: dict[str, Any] | None) -> list[str]:
        if payload is None or not self.applies_to(payload):
            return []

        errors: list[str] = []
        sensors = self._find_temperature_sensors(payload)
        if not sensors:
            return ["No temperature sensors found in payload"]

        for sensor_key in sensors:
            errors.extend(self._validate_sensor(payload, sensor_key))

        errors.extend(self._validate_threshold(payload))

        if len(sensors) >= 2:
            errors.extend(self._validate_difference(payload, sensors))

        if errors:
            logger.info("Temperature payload rejected", errors=errors)
        return errors

    @staticmethod
    def _find_temperature_sensors(payload: dict[str, Any]) -> list[str]:
        return [key for key in payload if key.startswith("temperature_") and key != "temperature_difference"]

    def _validate_sensor(self, payload: dict[str, Any], sensor_key: str) -> list[str]:
        sensor = payload.get(sensor_key)
        if not isinstance(sensor, dict):
            return [f"Sensor data for '{sensor_key}' is missing or invalid"]

        errors: list[str] = []
        temperature = self._reading(sensor)
        if temperature is None:
            errors.append(f"Temperature value for '{sensor_key}' must be a valid number")
        elif not self.MIN_TEMPERATURE <= temperature <= self.MAX_TEMPERATURE:
            errors.append(
                f"Temperature for '{sensor_key}' ({temperature}°C) must be between "
                f"{self.MIN_TEMPERATURE}°C and {self.MAX_TEMPERATURE}°C"
            )

        entity_id = sensor.get("entity_id") or sensor.get("sensor_id")
        if not isinstance(entity_id, str) or not entity_id.strip():
            errors.append(f"Entity ID for '{sensor_key}' is required (should be like 'sensor.temperatura_quarto')")
        return errors

    def _validate_threshold(self, payload: dict[str, Any]) -> list[str]:
        threshold = self._number(payload.get("threshold"))
        if threshold is None:
            return ["Temperature threshold is required for temperature events"]
        if threshold <= 0:
            return ["Temperature threshold must be greater than 0"]
        return []

    def _validate_difference(self, payload: dict[str, Any], sensors: list[str]) -> list[str]:
        reported = self._number(payload.get("temperature_difference"))
        if reported is None:
            return []

        first, second = payload.get(sensors[0]), payload.get(sensors[1])
        if not isinstance(first, dict) or not isinstance(second, dict):
            return []

        first_temp, second_temp = self._reading(first), self._reading(second)
        if first_temp is None or second_temp is None:
            return []

        calculated = abs(first_temp - second_temp)
        if abs(calculated - reported) > self.TEMPERATURE_TOLERANCE:
            return [
                f"Temperature difference ({reported}°C) doesn't match calculated difference ({calculated:.1f}°C)"
            ]
        return []

    def _reading(self, sensor: dict[str, Any]) -> float | None:
        value = sensor.get("value", sensor.get("temperature"))
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    @staticmethod
    def _number(value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return None
        return None
