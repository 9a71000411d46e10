"""Role-to-permission grants and their conditions."""
