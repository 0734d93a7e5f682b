"""Constants for the Denon Serial integration."""
from typing import Final

from pydenonserial.const import DEFAULT_PORT, DEFAULT_TIMEOUT

DOMAIN: Final = "denon_serial"
CONF_SERIAL_PORT: Final = "serial_port"
CONF_INPUTS: Final = "inputs"
CONF_INPUT: Final = "input"
CONF_TIMEOUT: Final = "timeout"

DEFAULT_NAME: Final = "Denon Receiver"
DEFAULT_SERIAL_PORT: Final = DEFAULT_PORT
DEFAULT_RESPONSE_TIMEOUT: Final = DEFAULT_TIMEOUT

# Shown in the config flow when no serial ports were found
MANUAL_ENTRY: Final = "Enter Manually"

# Default inputs offered in the config flow, as "Name=CODE" pairs
DEFAULT_INPUTS: Final = "TV=TV, Blu-ray=BD, Game=GAME, CD=CD, Tuner=TUNER"
