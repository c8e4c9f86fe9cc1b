"""Collaborator interfaces and an in-memory implementation."""

from .base import ContractSource, DeliveryClient, MarketQuery, NavigationClient, TradeClient
from .memory import InMemoryUniverse

__all__ = [
    "ContractSource",
    "DeliveryClient",
    "InMemoryUniverse",
    "MarketQuery",
    "NavigationClient",
    "TradeClient",
]
