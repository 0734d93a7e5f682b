"""Constants for the Denon serial protocol."""
from typing import Final

DEFAULT_PORT: Final = "/dev/ttyUSB0"
REQUIRED_BAUDRATE: Final = 9600

# Every command and response line ends with a carriage return
LINE_TERMINATOR: Final = "\r"

# Seconds to wait for the response line before moving on to the next command
DEFAULT_TIMEOUT: Final = 0.5

CMD_POWER_QUERY: Final = "PW?\r"
CMD_POWER_ON: Final = "PWON\r"
CMD_POWER_STANDBY: Final = "PWSTANDBY\r"
CMD_INPUT_QUERY: Final = "SI?\r"
CMD_MUTE_QUERY: Final = "MU?\r"
CMD_MUTE_ON: Final = "MUON\r"
CMD_MUTE_OFF: Final = "MUOFF\r"
CMD_VOLUME_UP: Final = "MVUP\r"
CMD_VOLUME_DOWN: Final = "MVDOWN\r"

INPUT_PREFIX: Final = "SI"
VOLUME_PREFIX: Final = "MV"
# Status lines the receiver emits around power and input changes
ZONE_STATUS_PREFIX: Final = "ZM"
SOUND_MODE_PREFIX: Final = "MS"

# Minimum seconds between reconnection attempts
RECONNECT_INTERVAL: Final = 10
