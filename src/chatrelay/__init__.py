"""Telegram to Gemini webhook relay."""

__version__ = "0.1.0"
