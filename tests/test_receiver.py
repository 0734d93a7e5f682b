"""Tests for the receiver command mapping."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest
import pytest_asyncio

from pydenonserial.exceptions import (
    CommandTimeoutError,
    ConnectionClosedError,
    DenonSerialError,
    SerialConnectionError,
    UnexpectedResponseError,
    UnknownInputError,
)
from pydenonserial.receiver import DenonReceiver, InputSource, format_inputs, parse_inputs
from pydenonserial.transport import SerialTransport

INPUTS = [InputSource("TV", "TV"), InputSource("Blu-ray", "BD"), InputSource("Game", "GAME")]


@pytest_asyncio.fixture
async def receiver(transport):
    receiver = DenonReceiver(inputs=INPUTS, timeout=0.05, transport=transport)
    await receiver.connect()
    yield receiver
    await receiver.disconnect()


@pytest.mark.asyncio
async def test_get_power(receiver, transport):
    transport.responses["PW?\r"] = "PWON"
    assert await receiver.async_get_power() is True

    transport.responses["PW?\r"] = "PWSTANDBY"
    assert await receiver.async_get_power() is False


@pytest.mark.asyncio
async def test_get_power_rejects_zone_status(receiver, transport):
    transport.responses["PW?\r"] = "ZMON"

    with pytest.raises(UnexpectedResponseError) as excinfo:
        await receiver.async_get_power()

    assert excinfo.value.line == "ZMON"


@pytest.mark.asyncio
async def test_set_power_skips_when_already_in_state(receiver, transport):
    transport.responses["PW?\r"] = "PWON"

    await receiver.async_set_power(True)

    assert transport.writes == ["PW?\r"]


@pytest.mark.asyncio
async def test_set_power_standby(receiver, transport):
    transport.responses["PW?\r"] = "PWON"
    transport.responses["PWSTANDBY\r"] = "PWSTANDBY"

    await receiver.async_set_power(False)

    assert transport.writes == ["PW?\r", "PWSTANDBY\r"]


@pytest.mark.asyncio
async def test_set_power_accepts_zone_status(receiver, transport):
    """The receiver may answer a power change with its zone status first."""
    transport.responses["PW?\r"] = "PWSTANDBY"
    transport.responses["PWON\r"] = "ZMON"

    await receiver.async_set_power(True)

    assert transport.writes == ["PW?\r", "PWON\r"]


@pytest.mark.asyncio
async def test_set_power_rejects_other_lines(receiver, transport):
    transport.responses["PW?\r"] = "PWSTANDBY"
    transport.responses["PWON\r"] = "MVUP"

    with pytest.raises(UnexpectedResponseError):
        await receiver.async_set_power(True)


@pytest.mark.asyncio
async def test_get_input(receiver, transport):
    transport.responses["SI?\r"] = "SIBD"

    assert await receiver.async_get_input() == 1


@pytest.mark.asyncio
async def test_get_input_not_configured(receiver, transport):
    transport.responses["SI?\r"] = "SICD"

    with pytest.raises(UnknownInputError) as excinfo:
        await receiver.async_get_input()

    assert "'CD'" in str(excinfo.value)


@pytest.mark.asyncio
async def test_get_input_rejects_sound_mode(receiver, transport):
    transport.responses["SI?\r"] = "MSSTEREO"

    with pytest.raises(UnexpectedResponseError):
        await receiver.async_get_input()


@pytest.mark.asyncio
async def test_set_input(receiver, transport):
    transport.responses["SIGAME\r"] = "SIGAME"

    await receiver.async_set_input(2)

    assert transport.writes == ["SIGAME\r"]


@pytest.mark.asyncio
async def test_set_input_accepts_sound_mode(receiver, transport):
    transport.responses["SIBD\r"] = "MSDOLBY DIGITAL"

    await receiver.async_set_input(1)


@pytest.mark.asyncio
async def test_set_input_out_of_range(receiver, transport):
    with pytest.raises(UnknownInputError):
        await receiver.async_set_input(3)

    assert transport.writes == []


@pytest.mark.asyncio
async def test_select_input_by_name(receiver, transport):
    transport.responses["SITV\r"] = "SITV"

    await receiver.async_select_input("TV")
    with pytest.raises(UnknownInputError):
        await receiver.async_select_input("Phono")

    assert transport.writes == ["SITV\r"]


@pytest.mark.asyncio
async def test_mute(receiver, transport):
    transport.responses["MUON\r"] = "MUON"
    transport.responses["MUOFF\r"] = "MUON"
    transport.responses["MU?\r"] = "MUON"

    await receiver.async_set_mute(True)
    assert await receiver.async_get_mute() is True
    with pytest.raises(UnexpectedResponseError) as excinfo:
        await receiver.async_set_mute(False)

    assert "unmute" in str(excinfo.value)


@pytest.mark.asyncio
async def test_volume_steps(receiver, transport):
    transport.responses["MVUP\r"] = "MV51"
    transport.responses["MVDOWN\r"] = "MV50"

    await receiver.async_volume_up()
    await receiver.async_volume_down()

    assert transport.writes == ["MVUP\r", "MVDOWN\r"]


@pytest.mark.asyncio
async def test_volume_rejects_other_lines(receiver, transport):
    transport.responses["MVUP\r"] = "PWON"

    with pytest.raises(UnexpectedResponseError):
        await receiver.async_volume_up()


@pytest.mark.asyncio
async def test_timeout_propagates(receiver, transport):
    with pytest.raises(CommandTimeoutError) as excinfo:
        await receiver.async_get_power()

    assert excinfo.value.command == "PW?"


@pytest.mark.asyncio
async def test_disconnect_fails_pending_command(receiver, transport):
    pending = asyncio.ensure_future(receiver.async_send_command("PW?\r"))
    await asyncio.sleep(0)
    assert transport.writes == ["PW?\r"]

    await receiver.disconnect()

    with pytest.raises(ConnectionClosedError):
        await pending
    assert not receiver.connected


@pytest.mark.asyncio
async def test_commands_before_connect_fail(transport):
    receiver = DenonReceiver(transport=transport)

    assert not receiver.connected
    with pytest.raises(DenonSerialError):
        await receiver.async_get_power()
    assert transport.writes == []


def test_input_names():
    receiver = DenonReceiver(inputs=INPUTS)

    assert receiver.input_names == ["TV", "Blu-ray", "Game"]


def test_parse_inputs():
    assert parse_inputs("TV=TV, Blu-ray=bd,, Game = GAME ") == INPUTS
    assert format_inputs(INPUTS) == "TV=TV, Blu-ray=BD, Game=GAME"
    assert parse_inputs("") == []


@pytest.mark.parametrize("value", ["TV", "=BD", "Game="])
def test_parse_inputs_invalid(value):
    with pytest.raises(ValueError):
        parse_inputs(value)


@pytest.mark.asyncio
async def test_send_raw_command(receiver, transport):
    transport.responses["MV?\r"] = "MV45"

    assert await receiver.async_send_command("MV?\r") == "MV45"


@pytest.mark.asyncio
async def test_connect_twice_keeps_receiver_working():
    """A second connect replaces the serial connection and the receiver keeps answering."""
    old_reader, old_writer = asyncio.StreamReader(), Mock()
    old_writer.wait_closed = AsyncMock()
    new_reader, new_writer = asyncio.StreamReader(), Mock()
    new_writer.wait_closed = AsyncMock()
    new_writer.write.side_effect = lambda data: new_reader.feed_data(b"PWON\r")

    receiver = DenonReceiver(transport=SerialTransport(), timeout=0.5)
    with patch(
        "pydenonserial.transport.serial_asyncio.open_serial_connection",
        AsyncMock(side_effect=[(old_reader, old_writer), (new_reader, new_writer)]),
    ):
        await receiver.connect()
        await receiver.connect()

    assert receiver.connected
    old_writer.close.assert_called_once()
    assert await receiver.async_send_command("PW?\r") == "PWON"
    new_writer.write.assert_called_once_with(b"PW?\r")

    await receiver.disconnect()
    new_writer.close.assert_called_once()


@pytest.mark.asyncio
async def test_reconnect_after_connection_lost(receiver, transport):
    await transport.close()
    assert not receiver.connected

    assert await receiver.reconnect() is True

    assert receiver.connected
    transport.responses["PW?\r"] = "PWON"
    assert await receiver.async_get_power() is True


@pytest.mark.asyncio
async def test_reconnect_is_rate_limited(receiver, transport):
    await transport.close()
    transport.open_error = SerialConnectionError("Could not open serial port /dev/ttyUSB0")
    opens = transport.opens

    assert await receiver.reconnect() is False
    assert await receiver.reconnect() is False

    assert transport.opens == opens + 1
    assert not receiver.connected


@pytest.mark.asyncio
async def test_send_command_threadsafe_right_after_connect(receiver, transport):
    """Threads can send as soon as the receiver is connected."""
    transport.responses["MV?\r"] = "MV45"
    loop = asyncio.get_running_loop()

    line = await loop.run_in_executor(
        None, lambda: receiver.send_command_threadsafe("MV?\r").result(timeout=1)
    )

    assert line == "MV45"
