"""Pydantic schemas for request/response validation."""

from . import analytics, auth, availability, booking, catalog, common, health, voucher

__all__ = ["analytics", "auth", "availability", "booking", "catalog", "common", "health", "voucher"]
