"""Default configuration parameters for the procurement engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PricingParams:
    """Reference price band check parameters."""
    max_margin: float = 1.1                # Accept up to band max x margin
    min_tolerance: float = 0.5             # Reject below band min x tolerance (corrupt data)
    default_band_min: int = 1              # Band for goods without a reference band
    default_band_max: int = 5000


@dataclass(frozen=True)
class LocatorParams:
    """Venue ranking parameters."""
    tie_break: str = "price"               # "price" (cheapest first) or "venue_id"


@dataclass(frozen=True)
class RetryParams:
    """Per-call retry with exponential backoff."""
    max_attempts: int = 5                  # Total attempts including the first
    base_delay_seconds: float = 1.0        # Doubles on every retry
    max_delay_seconds: float = 30.0        # Backoff cap
    retry_rejections: bool = True          # Retry venue-side purchase refusals


@dataclass(frozen=True)
class RateLimitParams:
    """Shared outbound call gate."""
    min_interval_seconds: float = 0.6      # Minimum spacing between any two calls
    backoff_initial_seconds: float = 1.0   # Global pause after a rate-limited response
    backoff_max_seconds: float = 60.0      # Global pause cap


@dataclass(frozen=True)
class ExecutionParams:
    """Executor concurrency and reassignment."""
    max_workers: int = 8                   # Vehicles executing in parallel
    max_reassignment_passes: int = 2       # Extra passes for residual units


@dataclass(frozen=True)
class DeliveryParams:
    """Contract delivery behaviour."""
    fulfill_on_complete: bool = True       # Issue fulfill call once all units delivered


@dataclass(frozen=True)
class ProductDefaults:
    """Conservative record for goods missing from the knowledge base."""
    preferred_traits: tuple = ("MARKETPLACE",)
    transaction_limit: int = 10
    cargo_per_unit: int = 1


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    pricing: PricingParams
    locator: LocatorParams
    retry: RetryParams
    rate_limit: RateLimitParams
    execution: ExecutionParams
    delivery: DeliveryParams
    product_defaults: ProductDefaults


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        pricing=PricingParams(),
        locator=LocatorParams(),
        retry=RetryParams(),
        rate_limit=RateLimitParams(),
        execution=ExecutionParams(),
        delivery=DeliveryParams(),
        product_defaults=ProductDefaults(),
    )
