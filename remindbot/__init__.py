"""Daily timezone-local reminder bot."""
