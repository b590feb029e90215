"""
STM32 Boot Flasher - firmware flashing over the STM32 UART bootloader

Erase, program, verify and start firmware from a release archive, then
check the application's setup banner.
"""

__version__ = "0.1.0"

from stm32_boot_flasher.protocol import Stm32Boot
from stm32_boot_flasher.core import flash_firmware

__all__ = [
    "Stm32Boot",
    "flash_firmware",
    "__version__",
]
