"""Order intake API for custom sports-team graphics."""
