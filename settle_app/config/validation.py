"""Configuration validation utilities."""

from dataclasses import dataclass, fields
from typing import Any

from .defaults import FixedPointParams, GasParams, LoggingParams, ProtocolParams

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_SECTIONS = {
    "gas": GasParams,
    "protocol": ProtocolParams,
    "fixed_point": FixedPointParams,
    "logging": LoggingParams,
}


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_gas_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate gas cost table entries."""
        errors = []

        for name, value in params.items():
            # bool is an int subclass
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field=f"gas.{name}",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_protocol_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate protocol names and success code."""
        errors = []

        for name, value in params.items():
            if name == "success_code":
                if not isinstance(value, int) or isinstance(value, bool):
                    errors.append(ValidationError(
                        field="protocol.success_code",
                        message="Must be an integer",
                        value=value
                    ))
            elif not isinstance(value, str) or not value:
                errors.append(ValidationError(
                    field=f"protocol.{name}",
                    message="Must be a non-empty string",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_fixed_point_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate fixed-point parameters."""
        errors = []

        if "decimals" in params:
            value = params["decimals"]
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 77:
                errors.append(ValidationError(
                    field="fixed_point.decimals",
                    message="Must be an integer between 0 and 77",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in VALID_LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(VALID_LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="logging.format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        return errors

    @classmethod
    def validate_config(cls, config: dict[str, Any]) -> list[ValidationError]:
        """Validate a fully merged configuration dictionary."""
        errors = []

        for section, params_cls in _SECTIONS.items():
            params = config.get(section)
            if not isinstance(params, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Section must be a mapping",
                    value=params
                ))
                continue

            known = {f.name for f in fields(params_cls)}
            for name in params:
                if name not in known:
                    errors.append(ValidationError(
                        field=f"{section}.{name}",
                        message="Unknown parameter",
                        value=params[name]
                    ))

        if errors:
            return errors

        errors.extend(cls.validate_gas_params(config["gas"]))
        errors.extend(cls.validate_protocol_params(config["protocol"]))
        errors.extend(cls.validate_fixed_point_params(config["fixed_point"]))
        errors.extend(cls.validate_logging_params(config["logging"]))

        return errors
