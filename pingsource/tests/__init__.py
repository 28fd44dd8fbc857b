"""Test suite for the ping source adapter.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Tests for adapter implementations
   - HTTP sender against httpx.MockTransport
   - Cron scheduler driven by a fake clock

3. fakes/: Port implementations for testing
   - In-memory EventSenderPort and TickPort, plus a controllable clock
"""
