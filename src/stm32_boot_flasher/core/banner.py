"""
Post-activation output check.

After GO the application prints a setup banner. We capture everything it
sends until the line goes quiet for one full read timeout, then compare it
against the banner we expect for the flashed version. A mismatch is
reported but does not fail the run: the firmware is already flashed and
running.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List

import serial

from stm32_boot_flasher.config import CAPTURE_READ_SIZE
from stm32_boot_flasher.errors import EncodingError, TransportClosedError, TransportError

logger = logging.getLogger(__name__)

BANNER_TEMPLATE = (
    "\r\n"
    "\r\n"
    "SETUP MODE\r\n"
    "Firmware version: {version}\r\n"
    "\r\n"
    "Press+hold any keypad button.\r\n"
    "Type ESC here if no more.\r\n"
)


class CaptureState(Enum):
    """Output capture loop state."""
    ACCUMULATING = "accumulating"
    DONE = "done"


def expected_banner(version: str) -> str:
    """Banner the application prints for a given firmware version."""
    return BANNER_TEMPLATE.format(version=version)


def capture_output(port: serial.Serial, read_size: int = CAPTURE_READ_SIZE) -> bytes:
    """
    Read from port until one read times out with nothing received.

    An empty read that returns before the port timeout has elapsed is not a
    quiet period; it means the device went away.

    Raises:
        TransportClosedError: Empty read without a timeout
        TransportError: Read failed
    """
    buffer = bytearray()
    state = CaptureState.ACCUMULATING
    while state is CaptureState.ACCUMULATING:
        started = time.monotonic()
        try:
            data = port.read(read_size)
        except serial.SerialException as e:
            raise TransportError(f"reading target output: {e}") from e

        if data:
            buffer.extend(data)
            continue

        elapsed = time.monotonic() - started
        if port.timeout is not None and elapsed < port.timeout:
            raise TransportClosedError(
                f"read returned no data after {elapsed:.3f}s "
                f"(timeout {port.timeout}s); device reset or disconnected?"
            )
        state = CaptureState.DONE

    logger.debug(f"Captured {len(buffer)} bytes of target output")
    return bytes(buffer)


@dataclass(frozen=True)
class BannerCheck:
    """Outcome of comparing the target's first words to the expected banner."""
    ok: bool
    expected: str
    actual: str

    def escaped_lines(self) -> List[str]:
        """
        Actual output, one escaped line per entry.

        Lines end at LF, dropping one preceding CR. A lone CR or any other
        separator stays inside its line and shows up escaped.
        """
        lines = self.actual.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return [repr(line[:-1] if line.endswith("\r") else line) for line in lines]


def check_banner(output: bytes, version: str) -> BannerCheck:
    """
    Compare captured output against the expected banner for version.

    Raises:
        EncodingError: Output is not valid UTF-8
    """
    try:
        text = output.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError("Output from target was not UTF-8!") from e

    expected = expected_banner(version)
    check = BannerCheck(ok=text == expected, expected=expected, actual=text)
    if not check.ok:
        logger.debug(f"Banner mismatch: expected {expected!r}, got {text!r}")
    return check
