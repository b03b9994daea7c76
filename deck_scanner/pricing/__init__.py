"""Pricing package for deck buy/sell values."""

from .lookup import default_pricing, is_stale, lookup_pricing

__all__ = ["default_pricing", "is_stale", "lookup_pricing"]
