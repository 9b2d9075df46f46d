"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from .defaults import RouteParams

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_timer_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate hold countdown parameters."""
        errors = []

        if "tick_interval_seconds" in params:
            value = params["tick_interval_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="tick_interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_activation_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate self-service activation parameters."""
        errors = []

        if "settle_delay_seconds" in params:
            value = params["settle_delay_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="settle_delay_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "audit_reason_template" in params:
            value = params["audit_reason_template"]
            if not isinstance(value, str) or "{timestamp}" not in value:
                errors.append(ValidationError(
                    field="audit_reason_template",
                    message="Must be a string containing {timestamp}",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_route_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate navigation paths."""
        errors = []

        for name, value in params.items():
            if name not in RouteParams.__dataclass_fields__:
                errors.append(ValidationError(
                    field=f"routes.{name}",
                    message="Unknown destination",
                    value=value
                ))
            elif not isinstance(value, str) or not value.startswith("/"):
                errors.append(ValidationError(
                    field=f"routes.{name}",
                    message="Must be an absolute path starting with /",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params:
            value = params["format_json"]
            if not isinstance(value, bool):
                errors.append(ValidationError(
                    field="format_json",
                    message="Must be a boolean",
                    value=value
                ))

        return errors

    @classmethod
    def validate_config(cls, config: dict[str, Any]) -> list[ValidationError]:
        """Validate a complete merged configuration."""
        errors = []

        errors.extend(cls.validate_timer_params(config.get("timer") or {}))
        errors.extend(cls.validate_activation_params(config.get("activation") or {}))
        errors.extend(cls.validate_route_params(config.get("routes") or {}))
        errors.extend(cls.validate_logging_params(config.get("logging") or {}))

        return errors
