"""
Command queue for the Denon receiver.

This module provides the CommandQueue class, which serializes commands onto a SerialTransport and
hands each response line back to the caller that sent the command. The receiver answers every
command with one line, in the order the commands were sent, so responses are matched by send order
and never by content:

1. Only one command is on the wire at a time; later commands wait in a FIFO queue
2. The first line received while a command is outstanding resolves that command
3. Lines received while nothing is outstanding are unsolicited and dropped
4. A command that gets no line within the timeout fails with CommandTimeoutError and the queue moves on

Everything runs on the event loop thread. Line events, timer expiry and send() never interleave, so
the queue and the outstanding slot need no lock.
"""
import asyncio
import concurrent.futures
import logging
from collections import deque
from typing import Any, Callable, Deque, Optional, Union

from .const import DEFAULT_TIMEOUT
from .exceptions import CommandTimeoutError, ConnectionClosedError, SerialWriteError
from .transport import SerialTransport

_LOGGER = logging.getLogger(__name__)

ResultCallback = Callable[[Union[str, Exception]], Any]


class Request:
    """A command waiting for its response line."""

    def __init__(
        self,
        command: str,
        future: asyncio.Future,
        callback: Optional[ResultCallback] = None,
    ) -> None:
        self.command = command
        self.future = future
        self._callback = callback
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self, result: Union[str, Exception]) -> None:
        """Deliver the line or the error to the caller. Only the first call has any effect."""
        if self._resolved:
            _LOGGER.debug(f"{self.command.strip()} already resolved, ignoring {result!r}")
            return
        self._resolved = True

        # The awaiting caller may have given up on the future already
        if not self.future.done():
            if isinstance(result, Exception):
                self.future.set_exception(result)
                if self._callback is not None:
                    # The callback receives the error, mark it retrieved
                    self.future.exception()
            else:
                self.future.set_result(result)

        callback, self._callback = self._callback, None
        if callback is not None:
            try:
                callback(result)
            except Exception as callback_error:
                _LOGGER.warning(f"Error in callback for {self.command.strip()}: {callback_error}")

    def __repr__(self) -> str:
        return f"Request({self.command.strip()!r})"


class CommandQueue:
    """Serializes commands to the receiver and correlates the response lines."""

    def __init__(
        self,
        transport: SerialTransport,
        timeout: float = DEFAULT_TIMEOUT,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """Initialize the queue and subscribe to the transport."""
        self._transport = transport
        self._timeout = timeout
        self._loop = loop
        self._queue: Deque[Request] = deque()
        self._current: Optional[Request] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._busy = False
        self._closed = False

        transport.on_line(self._line_received)
        transport.on_close(self._connection_closed)

    @property
    def busy(self) -> bool:
        """Return True while a command is outstanding or queued."""
        return self._busy

    @property
    def pending(self) -> int:
        """Return the number of commands waiting behind the outstanding one."""
        return len(self._queue)

    @property
    def outstanding(self) -> Optional[str]:
        """Return the command currently waiting for a response, if any."""
        return self._current.command if self._current else None

    @property
    def timeout(self) -> float:
        return self._timeout

    def send(self, command: str, callback: Optional[ResultCallback] = None) -> asyncio.Future:
        """Queue a command and return a future for its response line.

        The command text must include its trailing carriage return. The future resolves with the
        response line, or fails with CommandTimeoutError, SerialWriteError or ConnectionClosedError.
        If a callback is given it is called exactly once with the line or the exception.
        """
        loop = self._get_loop()
        request = Request(command, loop.create_future(), callback)

        if self._closed:
            request.resolve(ConnectionClosedError(f"Cannot send {command.strip()}: connection closed"))
            return request.future

        _LOGGER.debug(f"Pushing command {command.strip()} on to queue.")
        self._queue.append(request)

        if self._busy:
            _LOGGER.debug("Currently busy")
            return request.future

        self._busy = True
        self._dispatch_next()
        return request.future

    async def async_send(self, command: str) -> str:
        """Send a command and wait for its response line."""
        return await self.send(command)

    def send_threadsafe(self, command: str) -> concurrent.futures.Future:
        """Send a command from a thread other than the event loop's."""
        if self._loop is None:
            raise RuntimeError("The command queue has not been attached to an event loop yet")
        return asyncio.run_coroutine_threadsafe(self.async_send(command), self._loop)

    def close(self) -> None:
        """Fail the outstanding and all queued commands and refuse new ones."""
        self._connection_closed(ConnectionClosedError("Command queue closed"))

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _dispatch_next(self) -> None:
        """Write the next queued command, or go idle when the queue is empty."""
        while self._queue:
            request = self._queue.popleft()
            self._current = request
            _LOGGER.info(f"Sending command to {self._transport.port}: {request.command.strip()}")
            try:
                self._transport.write(request.command)
            except SerialWriteError as err:
                _LOGGER.error(f"Failed to send {request.command.strip()}: {err}")
                self._current = None
                request.resolve(err)
                continue

            self._arm_timer(request)
            return

        self._current = None
        self._busy = False

    def _arm_timer(self, request: Request) -> None:
        self._cancel_timer()
        self._timer = self._get_loop().call_later(self._timeout, self._timed_out, request)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _timed_out(self, request: Request) -> None:
        self._timer = None
        if self._current is not request:
            return

        error = CommandTimeoutError(request.command, self._timeout)
        _LOGGER.warning(str(error))
        self._current = None
        request.resolve(error)
        self._dispatch_next()

    def _line_received(self, line: str) -> None:
        if self._current is None:
            # TODO: forward unsolicited status lines as state change events
            _LOGGER.debug(f"Ignoring unsolicited line: {line}")
            return

        request = self._current
        _LOGGER.debug(f"Got Data {line}, sending to: {request.command.strip()}")
        self._cancel_timer()
        self._current = None
        request.resolve(line)
        self._dispatch_next()

    def _connection_closed(self, reason: Exception) -> None:
        self._closed = True
        self._cancel_timer()

        failed = []
        if self._current is not None:
            failed.append(self._current)
            self._current = None
        failed.extend(self._queue)
        self._queue.clear()
        self._busy = False

        if failed:
            _LOGGER.warning(f"Connection closed, failing {len(failed)} pending commands")
        for request in failed:
            request.resolve(ConnectionClosedError(f"{request.command.strip()} not answered: {reason}"))
