"""
Service Pricing Package

Deterministic pricing for an on-demand home-services marketplace.
Turns job attributes (area, hours, difficulty, surcharges, worker tier) into
a worker payout, platform commission, taxes and client total.
"""

__version__ = "1.0.0"
