"""Telegram admin bot for reviewing EarnHub requests."""
