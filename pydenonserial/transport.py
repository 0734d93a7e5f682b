"""
Serial transport for the Denon receiver.

This module provides the SerialTransport class, which owns the serial connection to the receiver.
The receiver talks 9600-8-N-1 without flow control and terminates every line with a carriage
return. The transport:

1. Opens the connection through pyserial-asyncio
2. Runs a background task that splits the incoming byte stream into lines and hands each line to a
   single subscriber, in the order the bytes arrived
3. Writes raw command text without waiting for any acknowledgement
"""
import asyncio
import logging
from typing import Callable, Optional

import serial
import serial_asyncio

from .const import DEFAULT_PORT, LINE_TERMINATOR, REQUIRED_BAUDRATE
from .exceptions import ConnectionClosedError, SerialConnectionError, SerialWriteError

_LOGGER = logging.getLogger(__name__)

LineHandler = Callable[[str], None]
CloseHandler = Callable[[Exception], None]


class SerialTransport:
    """Line-oriented connection to the receiver's serial port."""

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baudrate: int = REQUIRED_BAUDRATE,
        terminator: str = LINE_TERMINATOR,
    ) -> None:
        """Initialize the transport."""
        self._port = port
        self._baudrate = baudrate
        self._terminator = terminator.encode("ascii")
        self._serial_reader: Optional[asyncio.StreamReader] = None
        self._serial_writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._line_handler: Optional[LineHandler] = None
        self._close_handler: Optional[CloseHandler] = None
        self._connected = False

    @property
    def port(self) -> str:
        """Return the device path."""
        return self._port

    @property
    def connected(self) -> bool:
        """Return the connection status."""
        return self._connected

    def on_line(self, handler: LineHandler) -> None:
        """Register the handler that receives every line, replacing any previous one."""
        self._line_handler = handler

    def on_close(self, handler: CloseHandler) -> None:
        """Register the handler called once when the connection ends, replacing any previous one."""
        self._close_handler = handler

    async def open(self) -> None:
        """Open the serial connection and start reading lines. Closes any existing connection first."""
        if self._read_task is not None or self._serial_writer is not None:
            _LOGGER.debug(f"Closing existing connection to {self._port} before reopening")
            await self.close()

        try:
            self._serial_reader, self._serial_writer = await serial_asyncio.open_serial_connection(
                url=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                rtscts=False,
                xonxoff=False,
            )
        except Exception as err:
            self._connected = False
            _LOGGER.warning("Failed to open serial port %s: %s", self._port, err)
            raise SerialConnectionError(f"Could not open serial port {self._port}: {err}") from err

        self._connected = True
        _LOGGER.info(f"Initialized serial port at {self._port}")
        self._read_task = asyncio.create_task(self._read_loop())

    async def close(self) -> None:
        """Close the connection and notify the close handler."""
        if self._read_task and not self._read_task.done():
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
        self._read_task = None

        await self._close_writer()
        self._connection_ended(ConnectionClosedError(f"Connection to {self._port} closed"))

    def write(self, text: str) -> None:
        """Write raw command text to the receiver."""
        if not self._connected or self._serial_writer is None:
            raise SerialWriteError(f"Cannot send {text.strip()}: {self._port} is not open")
        try:
            self._serial_writer.write(text.encode("ascii"))
        except Exception as err:
            raise SerialWriteError(f"Failed to send {text.strip()} to {self._port}: {err}") from err
        _LOGGER.debug(f"Wrote {text.encode('ascii')!r} to {self._port}")

    async def _read_loop(self) -> None:
        """Read terminator-delimited lines until the connection ends."""
        reason: Exception = ConnectionClosedError(f"Connection to {self._port} lost")
        try:
            while True:
                try:
                    data = await self._serial_reader.readuntil(self._terminator)
                except asyncio.LimitOverrunError as err:
                    # Line longer than the stream buffer, drop it
                    _LOGGER.warning(f"Discarding oversized data from {self._port}")
                    await self._serial_reader.read(err.consumed)
                    continue

                _LOGGER.debug(f"Raw data received: {data!r}")
                line = data[: -len(self._terminator)].decode("ascii", errors="replace")
                if not line:
                    continue
                self._dispatch_line(line)
        except asyncio.IncompleteReadError:
            _LOGGER.warning(f"Serial port {self._port} reached end of stream")
        except asyncio.CancelledError:
            _LOGGER.debug("Serial read task cancelled")
            raise
        except Exception as err:
            _LOGGER.error(f"Error reading from {self._port}: {err}", exc_info=True)
            reason = ConnectionClosedError(f"Connection to {self._port} failed: {err}")

        await self._close_writer()
        self._connection_ended(reason)

    async def _close_writer(self) -> None:
        writer = self._serial_writer
        self._serial_writer = None
        self._serial_reader = None
        if writer:
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as e:
                _LOGGER.error(f"Error closing serial writer: {e}")

    def _dispatch_line(self, line: str) -> None:
        if self._line_handler is None:
            _LOGGER.debug(f"No line handler registered, dropping {line}")
            return
        try:
            self._line_handler(line)
        except Exception as err:
            _LOGGER.error(f"Error handling line {line}: {err}", exc_info=True)

    def _connection_ended(self, reason: Exception) -> None:
        if not self._connected:
            return
        self._connected = False
        _LOGGER.info(f"Serial port {self._port} closed")
        if self._close_handler is not None:
            self._close_handler(reason)
