"""The Denon Serial integration."""
import logging
from typing import Any, Dict, List

import voluptuous as vol

from .const import (
    DOMAIN,
    CONF_SERIAL_PORT,
    CONF_INPUTS,
    CONF_INPUT,
    CONF_TIMEOUT,
    DEFAULT_NAME,
    DEFAULT_SERIAL_PORT,
    DEFAULT_RESPONSE_TIMEOUT,
)

from homeassistant.const import CONF_NAME, Platform
from homeassistant.core import HomeAssistant
import homeassistant.helpers.config_validation as cv
from homeassistant.helpers.typing import ConfigType
from homeassistant.config_entries import ConfigEntry

from pydenonserial import DenonReceiver, DenonSerialError, InputSource

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.MEDIA_PLAYER]

INPUT_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_NAME): cv.string,
        vol.Required(CONF_INPUT): cv.string,
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        DOMAIN: vol.Schema(
            {
                vol.Optional(CONF_SERIAL_PORT, default=DEFAULT_SERIAL_PORT): cv.string,
                vol.Optional(CONF_NAME, default=DEFAULT_NAME): cv.string,
                vol.Optional(CONF_TIMEOUT, default=DEFAULT_RESPONSE_TIMEOUT): vol.All(
                    vol.Coerce(float), vol.Range(min=0.05, max=10)
                ),
                vol.Optional(CONF_INPUTS, default=[]): vol.All(cv.ensure_list, [INPUT_SCHEMA]),
            }
        )
    },
    extra=vol.ALLOW_EXTRA,
)


def inputs_from_config(inputs: List[Dict[str, str]]) -> List[InputSource]:
    """Build the receiver's input list from stored config."""
    return [InputSource(item[CONF_NAME], item[CONF_INPUT]) for item in inputs]


# YAML config setup
async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up the Denon Serial integration from YAML."""
    if DOMAIN not in config:
        return True

    conf = config[DOMAIN]
    hass.data.setdefault(DOMAIN, {})

    # Forward the config to be handled by async_setup_entry
    hass.async_create_task(
        hass.config_entries.flow.async_init(
            DOMAIN,
            context={"source": "import"},
            data={
                CONF_SERIAL_PORT: conf[CONF_SERIAL_PORT],
                CONF_NAME: conf[CONF_NAME],
                CONF_TIMEOUT: conf[CONF_TIMEOUT],
                CONF_INPUTS: [dict(item) for item in conf[CONF_INPUTS]],
            },
        )
    )

    return True


# Config entry setup
async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the Denon Serial integration from a config entry."""
    _LOGGER.info("Denon Serial integration setup started from config entry.")

    config: Dict[str, Any] = {**entry.data, **entry.options}
    serial_port = config.get(CONF_SERIAL_PORT)
    if not serial_port:
        _LOGGER.error("Missing required configuration: serial_port.")
        return False

    receiver = DenonReceiver(
        serial_port,
        inputs=inputs_from_config(config.get(CONF_INPUTS, [])),
        timeout=config.get(CONF_TIMEOUT, DEFAULT_RESPONSE_TIMEOUT),
    )

    try:
        await receiver.connect()
    except DenonSerialError as err:
        _LOGGER.error("Failed to connect to Denon receiver during setup: %s", err)
        return False

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = {
        "receiver": receiver,
        "config": {
            "serial_port": serial_port,
            "name": config.get(CONF_NAME, DEFAULT_NAME),
        },
        "entry": entry,
    }

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    _LOGGER.info("Denon Serial integration setup completed successfully.")
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when its options change."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Handle unloading of the Denon Serial integration."""
    _LOGGER.info("Unloading Denon Serial integration")

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok and DOMAIN in hass.data and entry.entry_id in hass.data[DOMAIN]:
        receiver: DenonReceiver = hass.data[DOMAIN][entry.entry_id]["receiver"]

        # Close the serial connection
        await receiver.disconnect()

        hass.data[DOMAIN].pop(entry.entry_id)
        if not hass.data[DOMAIN]:
            hass.data.pop(DOMAIN)

    return unload_ok
