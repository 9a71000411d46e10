"""RBAC access-control service."""
