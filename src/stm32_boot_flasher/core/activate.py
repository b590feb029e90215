"""Firmware activation: GO command and application-mode port setup."""

import logging

import serial

from stm32_boot_flasher.config import FLASH_BASE
from stm32_boot_flasher.errors import ActivationRejectedError, TransportError
from stm32_boot_flasher.protocol import BootloaderError

from .session import BootSession

logger = logging.getLogger(__name__)


def activate(
    boot: BootSession,
    *,
    base: int = FLASH_BASE,
    baud_rate: int,
    run_baud_rate: int,
) -> serial.Serial:
    """
    Start the flashed firmware and hand back the raw port.

    The bootloader speaks 8E1; the application firmware does not, so parity
    is switched off. The baud rate is only touched when the application
    runs at a different rate than programming used.

    Returns:
        The serial port, reconfigured for the application. The caller owns
        it from here; on a reconfiguration failure it is closed first.

    Raises:
        ActivationRejectedError: Device refused GO
        TransportError: Port could not be reconfigured
    """
    try:
        boot.do_go(base)
    except BootloaderError as e:
        raise ActivationRejectedError(f"GO 0x{base:08X}") from e

    port = boot.into_port()
    try:
        port.parity = serial.PARITY_NONE
        if run_baud_rate != baud_rate:
            port.baudrate = run_baud_rate
            logger.warning("Note: changing baud rate, data may be lost")
    except (serial.SerialException, ValueError) as e:
        port.close()
        raise TransportError("reconfiguring serial port for application mode") from e

    logger.info("GO command succeeded, checking output...")
    return port
