"""Shared fixtures for the Denon serial tests."""

import asyncio

import pytest

from pydenonserial.exceptions import ConnectionClosedError, SerialWriteError


class FakeTransport:
    """Stands in for SerialTransport and records every write.

    ``responses`` maps a command to the line the receiver answers with. Commands
    without an entry get no answer, so they time out.
    """

    def __init__(self, port="/dev/ttyUSB0"):
        self.port = port
        self.connected = True
        self.writes = []
        self.responses = {}
        self.failing = set()
        self.open_error = None
        self.opens = 0
        self._line_handler = None
        self._close_handler = None

    def on_line(self, handler):
        self._line_handler = handler

    def on_close(self, handler):
        self._close_handler = handler

    async def open(self):
        self.opens += 1
        if self.open_error is not None:
            raise self.open_error
        self.connected = True

    async def close(self):
        if self.connected:
            self.connected = False
            if self._close_handler:
                self._close_handler(ConnectionClosedError("closed"))

    def write(self, text):
        if text in self.failing:
            raise SerialWriteError(f"Failed to send {text.strip()}")
        self.writes.append(text)
        if text in self.responses:
            asyncio.get_running_loop().call_soon(self.feed, self.responses[text])

    def feed(self, line):
        self._line_handler(line)


@pytest.fixture
def transport():
    return FakeTransport()
