"""Scheduler adapters for driving the tick port.

Implementations:
- Cron (asyncio loop following a parsed schedule)
"""
