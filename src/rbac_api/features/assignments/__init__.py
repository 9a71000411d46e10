"""User-to-role assignments."""
