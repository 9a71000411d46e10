"""Permission catalog feature."""
