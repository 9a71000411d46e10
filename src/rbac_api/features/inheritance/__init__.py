"""Role inheritance graph."""
