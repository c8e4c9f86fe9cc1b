"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import (
    DefaultConfig,
    DeliveryParams,
    ExecutionParams,
    LocatorParams,
    PricingParams,
    ProductDefaults,
    RateLimitParams,
    RetryParams,
    get_default_config,
)


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def _load_yaml(self, filename: str) -> dict[str, Any]:
        path = self.config_dir / filename

        if not path.exists():
            return {}

        with open(path) as f:
            loaded = yaml.safe_load(f)

        return loaded or {}

    def load_engine_config(self) -> dict[str, Any]:
        """Load site-wide engine overrides from ``engine.yaml``."""
        return self._load_yaml("engine.yaml")

    def load_goods_config(self) -> dict[str, dict[str, Any]]:
        """Load per-good knowledge base overrides from ``goods.yaml``."""
        return self._load_yaml("goods.yaml").get("goods", {})  # type: ignore[no-any-return]

    def merge_config(
        self,
        call_overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Per-call overrides (highest priority)
        2. Site overrides from engine.yaml
        3. Global defaults (lowest priority)
        """
        config = asdict(self.defaults)

        config = self._deep_merge(config, self.load_engine_config())

        if call_overrides:
            config = self._deep_merge(config, call_overrides)

        return config

    def load(self, call_overrides: Optional[dict[str, Any]] = None) -> DefaultConfig:
        """Merge all tiers and build typed parameter objects."""
        config = self.merge_config(call_overrides)
        product_defaults = dict(config["product_defaults"])
        product_defaults["preferred_traits"] = tuple(product_defaults["preferred_traits"])

        return DefaultConfig(
            pricing=PricingParams(**config["pricing"]),
            locator=LocatorParams(**config["locator"]),
            retry=RetryParams(**config["retry"]),
            rate_limit=RateLimitParams(**config["rate_limit"]),
            execution=ExecutionParams(**config["execution"]),
            delivery=DeliveryParams(**config["delivery"]),
            product_defaults=ProductDefaults(**product_defaults),
        )

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
