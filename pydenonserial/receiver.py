"""
Denon receiver client.

This module provides the DenonReceiver class, which turns power, input, mute and volume operations
into Denon command strings and interprets the response lines. Commands go through a CommandQueue, so
any number of callers can use one receiver concurrently.

The queue resolves a command with the first line that arrives. Around power and input changes the
receiver sometimes answers with a zone status (ZM...) or sound mode (MS...) line first. Set
operations accept those lines as an acknowledgement; get operations reject them.
"""
import asyncio
import concurrent.futures
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .const import (
    CMD_INPUT_QUERY,
    CMD_MUTE_OFF,
    CMD_MUTE_ON,
    CMD_MUTE_QUERY,
    CMD_POWER_ON,
    CMD_POWER_QUERY,
    CMD_POWER_STANDBY,
    CMD_VOLUME_DOWN,
    CMD_VOLUME_UP,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    INPUT_PREFIX,
    LINE_TERMINATOR,
    RECONNECT_INTERVAL,
    REQUIRED_BAUDRATE,
    SOUND_MODE_PREFIX,
    VOLUME_PREFIX,
    ZONE_STATUS_PREFIX,
)
from .controller import CommandQueue
from .exceptions import DenonSerialError, UnexpectedResponseError, UnknownInputError
from .transport import SerialTransport

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputSource:
    """An input the user has configured on the receiver."""

    name: str
    code: str  # What follows "SI" in the protocol, e.g. "TV" or "BD"


class DenonReceiver:
    """Interface to communicate with a Denon receiver over RS232."""

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        inputs: Sequence[InputSource] = (),
        timeout: float = DEFAULT_TIMEOUT,
        baudrate: int = REQUIRED_BAUDRATE,
        transport: Optional[SerialTransport] = None,
    ) -> None:
        """Initialize the receiver."""
        self._port = port
        self._inputs: List[InputSource] = list(inputs)
        self._timeout = timeout
        self._transport = transport or SerialTransport(port, baudrate)
        self._queue: Optional[CommandQueue] = None
        self._last_attempt: Optional[float] = None

    @property
    def port(self) -> str:
        return self._port

    @property
    def connected(self) -> bool:
        """Return the connection status."""
        return self._transport.connected and self._queue is not None

    @property
    def inputs(self) -> List[InputSource]:
        return list(self._inputs)

    @property
    def input_names(self) -> List[str]:
        return [source.name for source in self._inputs]

    async def connect(self) -> None:
        """Open the serial port. Raises SerialConnectionError on failure."""
        await self._transport.open()
        self._queue = CommandQueue(self._transport, self._timeout, loop=asyncio.get_running_loop())
        _LOGGER.info("Successfully connected to Denon receiver at %s", self._port)

    async def reconnect(self) -> bool:
        """Try to connect again, at most once every RECONNECT_INTERVAL seconds.

        Returns True if the receiver is connected afterwards.
        """
        now = asyncio.get_running_loop().time()
        if self._last_attempt is not None and now - self._last_attempt < RECONNECT_INTERVAL:
            _LOGGER.debug("Skipping reconnection attempt, last attempt was too recent")
            return False
        self._last_attempt = now

        _LOGGER.info(f"Attempting to reconnect to Denon receiver at {self._port}")
        try:
            await self.connect()
        except DenonSerialError as err:
            _LOGGER.warning(f"Reconnection to {self._port} failed: {err}")
            return False
        return True

    async def disconnect(self) -> None:
        """Close the serial port, failing any commands still waiting."""
        await self._transport.close()
        if self._queue is not None:
            self._queue.close()

    async def async_send_command(self, command: str) -> str:
        """Send a raw command, terminator included, and return the response line."""
        if self._queue is None:
            raise DenonSerialError(f"Not connected to {self._port}")
        try:
            return await self._queue.async_send(command)
        except DenonSerialError as err:
            _LOGGER.error(str(err))
            raise

    def send_command_threadsafe(self, command: str) -> concurrent.futures.Future:
        """Send a raw command from a thread other than the event loop's."""
        if self._queue is None:
            raise DenonSerialError(f"Not connected to {self._port}")
        return self._queue.send_threadsafe(command)

    async def async_get_power(self) -> bool:
        """Return True if the receiver is on, False if it is in standby."""
        _LOGGER.debug("Getting power state from receiver")
        line = await self.async_send_command(CMD_POWER_QUERY)
        if "PWON" in line or "PWSTANDBY" in line:
            value = "PWON" in line
            _LOGGER.debug(f"{CMD_POWER_QUERY.strip()} received success: ({line}), returning {value}")
            return value
        raise UnexpectedResponseError("get the power state", line)

    async def async_set_power(self, on: bool) -> None:
        """Turn the receiver on or put it in standby. Does nothing if it is already there."""
        if await self.async_get_power() == on:
            return

        command = CMD_POWER_ON if on else CMD_POWER_STANDBY
        line = await self.async_send_command(command)
        if command.strip() in line:
            _LOGGER.debug(f"Set power -> {on}")
        elif line.startswith(ZONE_STATUS_PREFIX):
            _LOGGER.debug(f"{command.strip()} acknowledged with zone status {line}")
        else:
            raise UnexpectedResponseError("set the power state", line)

    async def async_get_input(self) -> int:
        """Return the index of the active input in the configured input list."""
        _LOGGER.debug("Getting input state from receiver")
        line = await self.async_send_command(CMD_INPUT_QUERY)
        if not line.startswith(INPUT_PREFIX):
            raise UnexpectedResponseError("get the input state", line)

        code = line[len(INPUT_PREFIX):]
        for index, source in enumerate(self._inputs):
            if source.code == code:
                _LOGGER.debug(f"Get input -> {index} ({source.name})")
                return index
        raise UnknownInputError(f"Could not find matching input. Make sure you have a '{code}' input defined")

    async def async_set_input(self, index: int) -> None:
        """Switch to the configured input at the given index."""
        if not 0 <= index < len(self._inputs):
            raise UnknownInputError(f"No input configured at index {index}")

        expected = f"{INPUT_PREFIX}{self._inputs[index].code}"
        line = await self.async_send_command(expected + LINE_TERMINATOR)
        if expected in line:
            _LOGGER.debug(f"Set input -> {index}")
        elif line.startswith(SOUND_MODE_PREFIX):
            _LOGGER.debug(f"{expected} acknowledged with sound mode {line}")
        else:
            raise UnexpectedResponseError("set the input", line)

    async def async_select_input(self, name: str) -> None:
        """Switch to the configured input with the given name."""
        for index, source in enumerate(self._inputs):
            if source.name == name:
                await self.async_set_input(index)
                return
        raise UnknownInputError(f"No input named '{name}'")

    async def async_get_mute(self) -> bool:
        """Return True if the receiver is muted."""
        line = await self.async_send_command(CMD_MUTE_QUERY)
        if "MUON" in line or "MUOFF" in line:
            return "MUON" in line
        raise UnexpectedResponseError("get the mute state", line)

    async def async_set_mute(self, mute: bool) -> None:
        """Mute or unmute the receiver."""
        command = CMD_MUTE_ON if mute else CMD_MUTE_OFF
        line = await self.async_send_command(command)
        if command.strip() not in line:
            raise UnexpectedResponseError("mute" if mute else "unmute", line)
        _LOGGER.debug(f"{command.strip()} received success: ({line})")

    async def async_volume_up(self) -> None:
        """Step the master volume up."""
        await self._step_volume(CMD_VOLUME_UP)

    async def async_volume_down(self) -> None:
        """Step the master volume down."""
        await self._step_volume(CMD_VOLUME_DOWN)

    async def _step_volume(self, command: str) -> None:
        line = await self.async_send_command(command)
        if VOLUME_PREFIX not in line:
            raise UnexpectedResponseError("set volume", line)
        _LOGGER.debug(f"{command.strip()} received success: ({line})")


def parse_inputs(value: str) -> List[InputSource]:
    """Parse an input list written as "Name=CODE, Name=CODE"."""
    inputs = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, code = item.partition("=")
        if not sep or not name.strip() or not code.strip():
            raise ValueError(f"Invalid input '{item}', expected Name=CODE")
        inputs.append(InputSource(name.strip(), code.strip().upper()))
    return inputs


def format_inputs(inputs: Sequence[InputSource]) -> str:
    """Format an input list the way parse_inputs reads it."""
    return ", ".join(f"{source.name}={source.code}" for source in inputs)
