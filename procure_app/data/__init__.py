"""
Canonical data models for the procurement engine.

Contracts, venue snapshots, fleet vehicles, purchase batches, allocations,
plans, transaction records and collaborator receipts.
"""
