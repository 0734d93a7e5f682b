"""pydenonserial Python Package

Python library for controlling Denon receivers over RS232.
"""

from pydenonserial.controller import CommandQueue
from pydenonserial.exceptions import (
    CommandTimeoutError,
    ConnectionClosedError,
    DenonSerialError,
    SerialConnectionError,
    SerialWriteError,
    UnexpectedResponseError,
    UnknownInputError,
)
from pydenonserial.receiver import DenonReceiver, InputSource
from pydenonserial.transport import SerialTransport

__all__ = [
    "CommandQueue",
    "CommandTimeoutError",
    "ConnectionClosedError",
    "DenonReceiver",
    "DenonSerialError",
    "InputSource",
    "SerialConnectionError",
    "SerialTransport",
    "SerialWriteError",
    "UnexpectedResponseError",
    "UnknownInputError",
]
