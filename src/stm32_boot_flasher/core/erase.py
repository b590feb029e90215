"""Global erase command selection."""

import logging

from stm32_boot_flasher.errors import (
    EraseRejectedError,
    NoEraseCapabilityError,
    TransportError,
)
from stm32_boot_flasher.protocol import BootloaderError, Command, CommandSupport

from .session import BootSession

logger = logging.getLogger(__name__)

# Preference order; per-page erase is never used.
ERASE_PREFERENCE = (Command.ERASE_MEMORY, Command.EXTENDED_ERASE_MEMORY)


def select_erase(support: CommandSupport) -> Command:
    """Pick the global erase command the device advertises, plain first."""
    for command in ERASE_PREFERENCE:
        if support[command]:
            return command
    raise NoEraseCapabilityError("No erase command supported")


def global_erase(boot: BootSession, support: CommandSupport) -> Command:
    """
    Erase all flash with the preferred advertised command.

    Returns:
        The command that was issued
    """
    command = select_erase(support)
    logger.info(f"Global erase via {command.name}")
    try:
        boot.drain()
    except BootloaderError as e:
        raise TransportError("unable to drain serial port") from e

    try:
        if command is Command.ERASE_MEMORY:
            boot.do_erase_memory_global()
        else:
            boot.do_extended_erase_memory_global()
    except BootloaderError as e:
        raise EraseRejectedError(f"{command.name} global erase") from e
    return command
