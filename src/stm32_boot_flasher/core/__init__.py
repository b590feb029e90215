"""
Core flash pipeline for STM32 Boot Flasher.

This module provides:
- Bootloader contact and identification (session.py)
- Global erase selection (erase.py)
- Chunked programming and verification (program.py)
- Activation and application-mode port setup (activate.py)
- Post-activation banner check (banner.py)
- The ordered pipeline itself (pipeline.py)

The CLI calls flash_firmware(); the stages are exported for reuse and tests.
"""

from .session import BootSession, DeviceSession
from .erase import select_erase, global_erase, ERASE_PREFERENCE
from .program import (
    iter_chunks,
    program_image,
    verify_image,
    Mismatch,
    MismatchRecord,
)
from .activate import activate
from .banner import (
    BANNER_TEMPLATE,
    BannerCheck,
    CaptureState,
    capture_output,
    check_banner,
    expected_banner,
)
from .parsing import parse_address
from .results import FlashResult
from .pipeline import flash_firmware

__all__ = [
    # Session
    "BootSession",
    "DeviceSession",
    # Erase
    "select_erase",
    "global_erase",
    "ERASE_PREFERENCE",
    # Program / verify
    "iter_chunks",
    "program_image",
    "verify_image",
    "Mismatch",
    "MismatchRecord",
    # Activation / output
    "activate",
    "BANNER_TEMPLATE",
    "BannerCheck",
    "CaptureState",
    "capture_output",
    "check_banner",
    "expected_banner",
    # Parsing
    "parse_address",
    # Results
    "FlashResult",
    # Pipeline
    "flash_firmware",
]
