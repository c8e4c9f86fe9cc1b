"""
Procure App - Contract Procurement Planning & Allocation Engine

Turns a delivery contract ("need N units of good G at destination D") into an
ordered, retryable sequence of purchases and cargo transfers across a fleet of
vehicles, under venue transaction limits, shared cargo capacity and a single
global rate limit.
"""

__version__ = "0.1.0"
__author__ = "Procure App Team"
