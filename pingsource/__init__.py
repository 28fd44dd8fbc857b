"""Ping source adapter: emits a fixed CloudEvent on a cron schedule."""

__version__ = "0.1.0"
