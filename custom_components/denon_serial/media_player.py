"""Support for Denon receivers connected over RS232."""
from __future__ import annotations

import logging

from homeassistant.components.media_player import (
    MediaPlayerEntity,
    MediaPlayerEntityFeature,
    MediaPlayerState,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from pydenonserial import DenonReceiver, DenonSerialError, UnknownInputError

from .const import DOMAIN, DEFAULT_NAME

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the Denon media player from a config entry."""
    _LOGGER.info("Setting up Denon Serial media player platform from config entry.")

    if DOMAIN not in hass.data or entry.entry_id not in hass.data[DOMAIN]:
        _LOGGER.error("DOMAIN or entry_id not in hass.data, exiting async_setup_entry")
        return

    data = hass.data[DOMAIN][entry.entry_id]
    receiver: DenonReceiver = data["receiver"]
    name = data["config"].get("name", DEFAULT_NAME)

    async_add_entities([DenonReceiverEntity(receiver, name, entry.entry_id)], update_before_add=True)


class DenonReceiverEntity(MediaPlayerEntity):
    """Representation of a Denon receiver."""

    _attr_supported_features = (
        MediaPlayerEntityFeature.TURN_ON
        | MediaPlayerEntityFeature.TURN_OFF
        | MediaPlayerEntityFeature.SELECT_SOURCE
        | MediaPlayerEntityFeature.VOLUME_MUTE
        | MediaPlayerEntityFeature.VOLUME_STEP
    )

    def __init__(self, receiver: DenonReceiver, name: str, unique_id: str) -> None:
        """Initialize the receiver entity."""
        self._receiver = receiver
        self._attr_name = name
        self._attr_unique_id = f"denon_serial_{unique_id}"
        self._attr_source_list = receiver.input_names
        self._attr_available = receiver.connected

    async def async_update(self) -> None:
        """Poll power, input and mute state."""
        if not self._receiver.connected and not await self._receiver.reconnect():
            self._attr_available = False
            return

        try:
            power = await self._receiver.async_get_power()
            self._attr_state = MediaPlayerState.ON if power else MediaPlayerState.OFF
            if power:
                self._attr_is_volume_muted = await self._receiver.async_get_mute()
                try:
                    index = await self._receiver.async_get_input()
                    self._attr_source = self._receiver.input_names[index]
                except UnknownInputError as err:
                    _LOGGER.warning(str(err))
                    self._attr_source = None
        except DenonSerialError as err:
            _LOGGER.warning(f"Failed to update Denon receiver state: {err}")
            self._attr_available = False
            return

        self._attr_available = True

    async def async_turn_on(self) -> None:
        """Turn the receiver on."""
        await self._call(self._receiver.async_set_power(True))
        self._attr_state = MediaPlayerState.ON

    async def async_turn_off(self) -> None:
        """Put the receiver in standby."""
        await self._call(self._receiver.async_set_power(False))
        self._attr_state = MediaPlayerState.OFF

    async def async_mute_volume(self, mute: bool) -> None:
        """Mute the volume."""
        await self._call(self._receiver.async_set_mute(mute))
        self._attr_is_volume_muted = mute

    async def async_volume_up(self) -> None:
        """Step the volume up."""
        await self._call(self._receiver.async_volume_up())

    async def async_volume_down(self) -> None:
        """Step the volume down."""
        await self._call(self._receiver.async_volume_down())

    async def async_select_source(self, source: str) -> None:
        """Select input source."""
        await self._call(self._receiver.async_select_input(source))
        self._attr_source = source

    async def _call(self, operation) -> None:
        try:
            await operation
        except DenonSerialError as err:
            raise HomeAssistantError(str(err)) from err
