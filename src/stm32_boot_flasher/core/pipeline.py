"""
Flash pipeline.

Runs every stage in order against an open bootloader session:

    connect -> load archive -> global erase -> program -> verify
            -> activate -> capture output -> banner check

Each stage is a hard precondition for the next. Fatal failures propagate
as FlasherError subclasses; only the banner check is advisory. The device
is identified before the archive is opened, so an unsupported device never
causes archive I/O.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional, Union

from stm32_boot_flasher.archive import load_archive
from stm32_boot_flasher.config import FlashConfig

from .activate import activate
from .banner import capture_output, check_banner
from .erase import global_erase
from .program import program_image, verify_image
from .results import FlashResult
from .session import BootSession, DeviceSession

logger = logging.getLogger(__name__)

# progress_cb(stage, done, total); stage is "write" or "verify"
StageProgress = Callable[[str, int, int], None]


class _ListLogHandler(logging.Handler):
    """Capture log records into a list of formatted strings."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.records = []
        self.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(self.format(record))


@contextmanager
def _capture_logs(logger_name: str = "stm32_boot_flasher"):
    """Capture logs for a flash run into a list."""
    target_logger = logging.getLogger(logger_name)
    handler = _ListLogHandler()
    previous_level = target_logger.level
    if previous_level in (logging.NOTSET, logging.WARNING, logging.ERROR, logging.CRITICAL):
        target_logger.setLevel(logging.INFO)
    target_logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        target_logger.removeHandler(handler)
        target_logger.setLevel(previous_level)


def _stage_cb(progress_cb: Optional[StageProgress], stage: str):
    if progress_cb is None:
        return None
    return lambda done, total: progress_cb(stage, done, total)


def flash_firmware(
    boot: BootSession,
    archive_path: Union[str, Path],
    config: FlashConfig,
    progress_cb: Optional[StageProgress] = None,
) -> FlashResult:
    """
    Flash the archive's image for the connected device and start it.

    Args:
        boot: Open bootloader session; ownership of its port passes to
            the activation stage
        archive_path: Firmware ZIP archive
        config: Run options
        progress_cb: Optional progress callback(stage, done, total)

    Returns:
        FlashResult for the completed run

    Raises:
        FlasherError: Any fatal stage failure
    """
    result = FlashResult(ok=False, base=config.flash_base)

    with _capture_logs() as logs:
        session = DeviceSession(boot)
        info = session.connect()
        result.model = session.family

        archive = load_archive(archive_path, session.family)
        result.version = archive.version
        result.image_name = archive.image_name
        logger.info(f"Archive contains firmware for this model ({len(archive.image)} bytes)")

        erase = global_erase(boot, info.command_support)
        result.erase_command = erase.name

        result.bytes_len = program_image(
            boot,
            archive.image,
            base=config.flash_base,
            chunk_size=config.chunk_size,
            progress_cb=_stage_cb(progress_cb, "write"),
        )
        result.mismatches = verify_image(
            boot,
            archive.image,
            base=config.flash_base,
            chunk_size=config.chunk_size,
            verbose=config.verbose,
            progress_cb=_stage_cb(progress_cb, "verify"),
        )

        port = activate(
            boot,
            base=config.flash_base,
            baud_rate=config.baud_rate,
            run_baud_rate=config.run_baud_rate,
        )
        try:
            output = capture_output(port)
        finally:
            port.close()

        result.banner = check_banner(output, archive.version)
        if not result.banner.ok:
            result.add_warning("target's first transmission unexpected")
        result.ok = True

    result.logs = logs
    return result
