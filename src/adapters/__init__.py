"""Adapters binding the core to Telegram, OpenAI, and SQLite."""
