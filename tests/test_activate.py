"""Tests for firmware activation."""

import logging

import pytest
import serial

from stm32_boot_flasher.config import FLASH_BASE
from stm32_boot_flasher.core.activate import activate
from stm32_boot_flasher.errors import ActivationRejectedError, TransportError

from fakes import FakeBoot, FakePort, RigidPort


def test_go_then_hand_off_port_without_parity():
    port = FakePort()
    boot = FakeBoot(port=port)

    out = activate(boot, base=FLASH_BASE, baud_rate=19200, run_baud_rate=19200)

    assert out is port
    assert boot.calls == [("go", FLASH_BASE), ("into_port",)]
    assert port.parity == serial.PARITY_NONE
    assert port.baudrate == 19200


def test_changes_baud_rate_and_warns(caplog):
    port = FakePort()
    with caplog.at_level(logging.WARNING, logger="stm32_boot_flasher"):
        activate(FakeBoot(port=port), baud_rate=115200, run_baud_rate=19200)
    assert port.baudrate == 19200
    assert "data may be lost" in caplog.text


def test_same_rate_does_not_warn(caplog):
    port = FakePort()
    port.baudrate = 115200
    with caplog.at_level(logging.WARNING, logger="stm32_boot_flasher"):
        activate(FakeBoot(port=port), baud_rate=115200, run_baud_rate=115200)
    assert port.baudrate == 115200
    assert "data may be lost" not in caplog.text


def test_go_rejected_keeps_port_with_session():
    boot = FakeBoot(nack={"go"})
    with pytest.raises(ActivationRejectedError):
        activate(boot, baud_rate=19200, run_baud_rate=19200)
    assert "into_port" not in boot.names()


def test_reconfigure_failure_closes_port():
    port = RigidPort()
    boot = FakeBoot(port=port)
    with pytest.raises(TransportError) as ei:
        activate(boot, baud_rate=19200, run_baud_rate=19200)
    assert isinstance(ei.value.__cause__, serial.SerialException)
    assert port.closed
