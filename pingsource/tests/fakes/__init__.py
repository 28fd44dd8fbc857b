"""Fake/mock implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeEventSenderPort: Captured events, configurable failures
- FakeTickPort: Counted ticks, optional blocking
- FakeClock: Controllable wall clock with a non-blocking sleep
"""

from .clock import FakeClock
from .sender import FakeEventSenderPort
from .tick import FakeTickPort

__all__ = [
    "FakeClock",
    "FakeEventSenderPort",
    "FakeTickPort",
]
