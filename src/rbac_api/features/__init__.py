"""Feature packages exposing the RBAC HTTP surface."""
