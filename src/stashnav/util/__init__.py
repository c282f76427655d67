"""Logging setup plus session events and metrics."""
