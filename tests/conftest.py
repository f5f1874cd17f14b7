from __future__ import annotations

from typing import Iterable, List, Optional

import pytest

from todo_threader.transport import TransportError, TransportTimeout


class FakeTransport:
    """
    In-memory transport.
    `write_failures` / `read_failures` are the number of leading calls that
    fail; pass -1 to fail forever.
    """

    def __init__(self, write_failures: int = 0, read_failures: int = 0,
                 acks: Optional[Iterable[bytes]] = None) -> None:
        self.write_failures = write_failures
        self.read_failures = read_failures
        self.acks = list(acks) if acks is not None else []
        self.writes: List[bytes] = []
        self.write_calls = 0
        self.read_calls = 0
        self.closed = False

    def write(self, data: bytes) -> int:
        self.write_calls += 1
        if self.write_failures == -1 or self.write_calls <= self.write_failures:
            raise TransportError("device unplugged")
        self.writes.append(bytes(data))
        return len(data)

    def read(self, size: int) -> bytes:
        self.read_calls += 1
        if self.read_failures == -1 or self.read_calls <= self.read_failures:
            raise TransportTimeout("no ack")
        if self.acks:
            return self.acks.pop(0)
        return b"\x06"[:size]

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport
