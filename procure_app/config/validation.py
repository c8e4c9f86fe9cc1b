"""Configuration validation utilities."""

from dataclasses import asdict, dataclass
from typing import Any

from .defaults import get_default_config


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


TIE_BREAK_POLICIES = ("price", "venue_id")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_pricing_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate reference price band parameters."""
        errors = []

        if "max_margin" in params:
            value = params["max_margin"]
            if not _is_number(value) or value < 1:
                errors.append(ValidationError(
                    field="pricing.max_margin",
                    message="Must be a number >= 1",
                    value=value
                ))

        if "min_tolerance" in params:
            value = params["min_tolerance"]
            if not _is_number(value) or value <= 0 or value > 1:
                errors.append(ValidationError(
                    field="pricing.min_tolerance",
                    message="Must be a positive number between 0 and 1",
                    value=value
                ))

        band_min = params.get("default_band_min")
        band_max = params.get("default_band_max")
        for name, value in (("default_band_min", band_min), ("default_band_max", band_max)):
            if value is not None and (not _is_number(value) or value < 0):
                errors.append(ValidationError(
                    field=f"pricing.{name}",
                    message="Must be a non-negative number",
                    value=value
                ))

        if _is_number(band_min) and _is_number(band_max) and band_min > band_max:
            errors.append(ValidationError(
                field="pricing.default_band_min",
                message="Must not exceed default_band_max",
                value=band_min
            ))

        return errors

    @staticmethod
    def validate_locator_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate venue ranking parameters."""
        errors = []

        if "tie_break" in params and params["tie_break"] not in TIE_BREAK_POLICIES:
            errors.append(ValidationError(
                field="locator.tie_break",
                message=f"Must be one of {', '.join(TIE_BREAK_POLICIES)}",
                value=params["tie_break"]
            ))

        return errors

    @staticmethod
    def validate_retry_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate retry and backoff parameters."""
        errors = []

        if "max_attempts" in params and not _is_positive_int(params["max_attempts"]):
            errors.append(ValidationError(
                field="retry.max_attempts",
                message="Must be a positive integer",
                value=params["max_attempts"]
            ))

        for name in ("base_delay_seconds", "max_delay_seconds"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=f"retry.{name}",
                        message="Must be a non-negative number",
                        value=value
                    ))

        base = params.get("base_delay_seconds")
        cap = params.get("max_delay_seconds")
        if _is_number(base) and _is_number(cap) and cap < base:
            errors.append(ValidationError(
                field="retry.max_delay_seconds",
                message="Must be >= base_delay_seconds",
                value=cap
            ))

        if "retry_rejections" in params and not isinstance(params["retry_rejections"], bool):
            errors.append(ValidationError(
                field="retry.retry_rejections",
                message="Must be a boolean",
                value=params["retry_rejections"]
            ))

        return errors

    @staticmethod
    def validate_rate_limit_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate shared rate limiter parameters."""
        errors = []

        for name in ("min_interval_seconds", "backoff_initial_seconds", "backoff_max_seconds"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=f"rate_limit.{name}",
                        message="Must be a non-negative number",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_execution_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate executor parameters."""
        errors = []

        if "max_workers" in params and not _is_positive_int(params["max_workers"]):
            errors.append(ValidationError(
                field="execution.max_workers",
                message="Must be a positive integer",
                value=params["max_workers"]
            ))

        if "max_reassignment_passes" in params:
            value = params["max_reassignment_passes"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="execution.max_reassignment_passes",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_product_overrides(goods: dict[str, Any]) -> list[ValidationError]:
        """Validate per-good knowledge base entries from goods.yaml."""
        errors = []

        for good, entry in goods.items():
            if not isinstance(entry, dict):
                errors.append(ValidationError(
                    field=f"goods.{good}",
                    message="Must be a mapping",
                    value=entry
                ))
                continue

            if "price_band" in entry:
                band = entry["price_band"]
                if (not isinstance(band, (list, tuple)) or len(band) != 2
                        or not all(_is_number(v) and v >= 0 for v in band)
                        or band[0] > band[1]):
                    errors.append(ValidationError(
                        field=f"goods.{good}.price_band",
                        message="Must be [min, max] with 0 <= min <= max",
                        value=band
                    ))

            for name in ("transaction_limit", "cargo_per_unit"):
                if name in entry and not _is_positive_int(entry[name]):
                    errors.append(ValidationError(
                        field=f"goods.{good}.{name}",
                        message="Must be a positive integer",
                        value=entry[name]
                    ))

            if "preferred_traits" in entry:
                traits = entry["preferred_traits"]
                if (not isinstance(traits, (list, tuple))
                        or not all(isinstance(t, str) for t in traits)):
                    errors.append(ValidationError(
                        field=f"goods.{good}.preferred_traits",
                        message="Must be a list of trait names",
                        value=traits
                    ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = ConfigValidator.validate_known_keys(config)

        if isinstance(config.get("pricing"), dict):
            errors.extend(ConfigValidator.validate_pricing_params(config["pricing"]))

        if isinstance(config.get("locator"), dict):
            errors.extend(ConfigValidator.validate_locator_params(config["locator"]))

        if isinstance(config.get("retry"), dict):
            errors.extend(ConfigValidator.validate_retry_params(config["retry"]))

        if isinstance(config.get("rate_limit"), dict):
            errors.extend(ConfigValidator.validate_rate_limit_params(config["rate_limit"]))

        if isinstance(config.get("execution"), dict):
            errors.extend(ConfigValidator.validate_execution_params(config["execution"]))

        if isinstance(config.get("product_defaults"), dict):
            errors.extend(ConfigValidator.validate_product_overrides(
                {"<default>": config["product_defaults"]}
            ))

        return errors

    @staticmethod
    def validate_known_keys(config: dict[str, Any]) -> list[ValidationError]:
        """Flag sections and parameters the engine does not recognise."""
        known = asdict(get_default_config())
        errors = []

        for section, values in config.items():
            if section not in known:
                errors.append(ValidationError(
                    field=section,
                    message="Unknown configuration section",
                    value=values
                ))
                continue
            if not isinstance(values, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=values
                ))
                continue
            for key in values:
                if key not in known[section]:
                    errors.append(ValidationError(
                        field=f"{section}.{key}",
                        message="Unknown parameter",
                        value=values[key]
                    ))

        return errors
