"""
Device session: bootloader contact and identification.

The pipeline stages only talk to the bootloader through the BootSession
interface below; Stm32Boot is the concrete implementation.
"""

import logging
from typing import Optional, Protocol

from stm32_boot_flasher.errors import (
    DeviceUnresponsiveError,
    InfoQueryError,
    TransportError,
    UnsupportedDeviceError,
)
from stm32_boot_flasher.protocol import BootloaderError, DeviceInfo

logger = logging.getLogger(__name__)


class BootSession(Protocol):
    """Operations the flash pipeline needs from a bootloader driver."""

    def drain(self) -> bytes: ...

    def poke(self) -> None: ...

    def info(self) -> DeviceInfo: ...

    def do_erase_memory_global(self) -> None: ...

    def do_extended_erase_memory_global(self) -> None: ...

    def do_write_memory(self, address: int, data: bytes) -> None: ...

    def do_read_memory(self, address: int, length: int) -> bytes: ...

    def do_go(self, address: int) -> None: ...

    def into_port(self): ...


class DeviceSession:
    """
    Establishes contact with the bootloader and identifies the device.

    Example:
        session = DeviceSession(boot)
        info = session.connect()
        session.family  # "G03x"
    """

    def __init__(self, boot: BootSession):
        self.boot = boot
        self.info: Optional[DeviceInfo] = None

    @property
    def family(self) -> str:
        if self.info is None or self.info.product_id is None:
            raise UnsupportedDeviceError("device not identified")
        return self.info.product_id.family

    def connect(self) -> DeviceInfo:
        """
        Drain, probe and query the device.

        Raises:
            TransportError: Receive buffer could not be drained
            DeviceUnresponsiveError: No ACK to the probe byte
            InfoQueryError: Info query failed or returned garbage
            UnsupportedDeviceError: Product ID absent or unrecognized
        """
        try:
            self.boot.drain()
        except BootloaderError as e:
            raise TransportError("unable to drain serial port") from e

        try:
            self.boot.poke()
        except BootloaderError as e:
            raise DeviceUnresponsiveError(
                "unable to contact bootloader "
                "(may not be running or on a different interface)"
            ) from e
        logger.info("Device is responding")

        try:
            info = self.boot.info()
        except BootloaderError as e:
            raise InfoQueryError("getting device info") from e

        if info.product_id is None:
            raise UnsupportedDeviceError("device did not report product ID info")
        if not info.product_id.recognized:
            raise UnsupportedDeviceError(
                f"device reported unrecognized product ID 0x{info.product_id.raw:04X}"
            )

        self.info = info
        logger.info(f"Detected model: {info.product_id.family}")
        return info
