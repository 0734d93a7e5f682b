"""Config flow for Denon Serial integration."""
import logging
from typing import Any, Dict, List, Optional

import serial.tools.list_ports
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.const import CONF_NAME
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult

from pydenonserial import DenonReceiver, DenonSerialError, InputSource
from pydenonserial.receiver import format_inputs, parse_inputs

from .const import (
    DOMAIN,
    CONF_SERIAL_PORT,
    CONF_INPUTS,
    CONF_INPUT,
    CONF_TIMEOUT,
    DEFAULT_NAME,
    DEFAULT_INPUTS,
    DEFAULT_RESPONSE_TIMEOUT,
    MANUAL_ENTRY,
)

_LOGGER = logging.getLogger(__name__)


def _inputs_to_config(value: str) -> List[Dict[str, str]]:
    """Turn "Name=CODE, ..." into the stored list of inputs. Raises ValueError."""
    return [{CONF_NAME: source.name, CONF_INPUT: source.code} for source in parse_inputs(value)]


def _inputs_to_text(inputs: List[Dict[str, str]]) -> str:
    return format_inputs([InputSource(item[CONF_NAME], item[CONF_INPUT]) for item in inputs])


class DenonSerialConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for a Denon receiver."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._discovered_ports: List[str] = []

    async def async_step_import(self, import_data: Dict[str, Any]) -> FlowResult:
        """Import configuration from YAML."""
        _LOGGER.info("Importing configuration from YAML")

        await self.async_set_unique_id(f"denon_serial_{import_data[CONF_SERIAL_PORT]}")
        self._abort_if_unique_id_configured()

        if not await self._test_connection(import_data[CONF_SERIAL_PORT]):
            return self.async_abort(reason="cannot_connect")

        return self.async_create_entry(
            title=f"{import_data[CONF_NAME]} ({import_data[CONF_SERIAL_PORT]})",
            data=import_data,
        )

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None) -> FlowResult:
        """Handle the initial step."""
        errors: Dict[str, str] = {}

        self._discovered_ports = await self.hass.async_add_executor_job(
            self._get_serial_ports
        )

        if user_input is not None and user_input.get(CONF_SERIAL_PORT) != MANUAL_ENTRY:
            serial_port = user_input[CONF_SERIAL_PORT]

            await self.async_set_unique_id(f"denon_serial_{serial_port}")
            self._abort_if_unique_id_configured()

            try:
                inputs = _inputs_to_config(user_input[CONF_INPUTS])
            except ValueError:
                errors[CONF_INPUTS] = "invalid_inputs"
            else:
                if not await self._test_connection(serial_port):
                    errors["base"] = "cannot_connect"
                else:
                    return self.async_create_entry(
                        title=f"{user_input[CONF_NAME]} ({serial_port})",
                        data={
                            CONF_SERIAL_PORT: serial_port,
                            CONF_NAME: user_input[CONF_NAME],
                            CONF_TIMEOUT: DEFAULT_RESPONSE_TIMEOUT,
                            CONF_INPUTS: inputs,
                        },
                    )

        # Offer the discovered ports, or a free text field when there are none
        # or the user picked "Enter Manually"
        if self._discovered_ports and not (
            user_input and user_input.get(CONF_SERIAL_PORT) == MANUAL_ENTRY
        ):
            port_field = vol.In(self._discovered_ports + [MANUAL_ENTRY])
        else:
            port_field = str

        schema = vol.Schema({
            vol.Required(CONF_SERIAL_PORT): port_field,
            vol.Required(CONF_NAME, default=DEFAULT_NAME): str,
            vol.Required(CONF_INPUTS, default=DEFAULT_INPUTS): str,
        })

        return self.async_show_form(
            step_id="user", data_schema=schema, errors=errors
        )

    @staticmethod
    def _get_serial_ports() -> List[str]:
        """Get available serial ports."""
        ports = []
        try:
            for port in serial.tools.list_ports.comports():
                ports.append(port.device)
        except Exception as e:
            _LOGGER.error("Error listing serial ports: %s", e)
        return ports

    async def _test_connection(self, serial_port: str) -> bool:
        """Test if the serial port can be opened."""
        receiver = DenonReceiver(serial_port)
        try:
            await receiver.connect()
        except DenonSerialError as e:
            _LOGGER.error("Error connecting to Denon receiver: %s", e)
            return False
        await receiver.disconnect()
        return True

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Create the options flow."""
        return DenonSerialOptionsFlow()


class DenonSerialOptionsFlow(config_entries.OptionsFlow):
    """Handle options flow for the Denon Serial integration."""

    async def async_step_init(
        self, user_input: Optional[Dict[str, Any]] = None
    ) -> FlowResult:
        """Manage the input list and response timeout."""
        errors: Dict[str, str] = {}
        current = {**self.config_entry.data, **self.config_entry.options}

        if user_input is not None:
            try:
                inputs = _inputs_to_config(user_input[CONF_INPUTS])
            except ValueError:
                errors[CONF_INPUTS] = "invalid_inputs"
            else:
                return self.async_create_entry(
                    title="",
                    data={CONF_INPUTS: inputs, CONF_TIMEOUT: user_input[CONF_TIMEOUT]},
                )

        schema = vol.Schema({
            vol.Required(
                CONF_INPUTS, default=_inputs_to_text(current.get(CONF_INPUTS, []))
            ): str,
            vol.Required(
                CONF_TIMEOUT, default=current.get(CONF_TIMEOUT, DEFAULT_RESPONSE_TIMEOUT)
            ): vol.All(vol.Coerce(float), vol.Range(min=0.05, max=10)),
        })

        return self.async_show_form(
            step_id="init", data_schema=schema, errors=errors
        )
