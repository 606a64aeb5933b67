"""Chat-facing side of the bot: commands, handlers and the app factory."""
