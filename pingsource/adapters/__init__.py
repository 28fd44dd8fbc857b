"""External adapters for the ping source.

This package contains all external dependencies (httpx, croniter, the
asyncio event loop) and provides implementations of the core port
interfaces.

Adapter Organization:

- scheduler/: Adapters that drive ticks (cron schedule loop)
- sink/: Adapters that deliver events (HTTP sink, log output)
"""
