"""Tenant role definitions."""
