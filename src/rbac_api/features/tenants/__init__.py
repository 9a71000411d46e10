"""Tenant bootstrap."""
