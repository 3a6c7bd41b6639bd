"""Data models for ChatDelta."""
