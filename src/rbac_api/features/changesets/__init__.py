"""Staged grant edits committed as one batch."""
