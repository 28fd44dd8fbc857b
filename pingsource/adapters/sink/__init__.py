"""Event sender adapters for delivering ping events.

Implementations:
- HTTP (CloudEvents binary content mode via httpx)
- Log output (when no sink is configured)
"""
