"""Bootloader protocol layer."""

from .stm32_boot import (
    Stm32Boot,
    BootloaderError,
    BootloaderNack,
    BootloaderTimeout,
    Command,
    CommandSupport,
    DeviceInfo,
    ProductId,
    KNOWN_FAMILIES,
)

__all__ = [
    # Session
    "Stm32Boot",
    "BootloaderError",
    "BootloaderNack",
    "BootloaderTimeout",
    # Device model
    "Command",
    "CommandSupport",
    "DeviceInfo",
    "ProductId",
    "KNOWN_FAMILIES",
]
