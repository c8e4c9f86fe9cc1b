"""
Cargo hold management: freeing space without touching contract cargo.
"""

from .manager import CargoManager, categorize_cargo

__all__ = ["CargoManager", "categorize_cargo"]
