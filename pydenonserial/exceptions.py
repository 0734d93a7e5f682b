"""Errors raised by the Denon serial client."""


class DenonSerialError(Exception):
    """Base class for all receiver communication errors."""


class SerialConnectionError(DenonSerialError, ConnectionError):
    """The serial device could not be opened."""


class SerialWriteError(DenonSerialError):
    """A command could not be written to the serial device."""


class ConnectionClosedError(DenonSerialError):
    """The connection closed before the command was answered."""


class CommandTimeoutError(DenonSerialError, TimeoutError):
    """The receiver did not answer a command in time."""

    def __init__(self, command: str, timeout: float) -> None:
        self.command = command.strip()
        self.timeout = timeout
        super().__init__(f"{self.command} timed out after {int(timeout * 1000)}ms. Skipping")


class UnexpectedResponseError(DenonSerialError):
    """The receiver answered with a line that does not fit the command."""

    def __init__(self, action: str, line: str) -> None:
        self.line = line
        super().__init__(f"While attempting to {action}, the serial command returned '{line}'")


class UnknownInputError(DenonSerialError):
    """The input is not in the configured input list."""
