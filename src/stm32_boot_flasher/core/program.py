"""
Programming and read-back verification.

Both stages walk the image with iter_chunks() so they address exactly the
same windows: [base, base + len(image)) split into chunk_size pieces, the
last one possibly shorter.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

from stm32_boot_flasher.config import CHUNK_SIZE, FLASH_BASE
from stm32_boot_flasher.errors import ReadBackError, VerificationFailedError, WriteError
from stm32_boot_flasher.protocol import BootloaderError

from .session import BootSession

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def iter_chunks(
    image: bytes,
    base: int = FLASH_BASE,
    chunk_size: int = CHUNK_SIZE,
) -> Iterator[Tuple[int, bytes]]:
    """
    Yield (address, chunk) pairs covering the image in address order.

    The address advances by exactly len(chunk) each step, so the final
    address reached is base + len(image).
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    address = base
    for offset in range(0, len(image), chunk_size):
        chunk = image[offset:offset + chunk_size]
        yield address, chunk
        address += len(chunk)


@dataclass(frozen=True)
class Mismatch:
    """One byte that read back differently from the image."""
    address: int
    expected: int
    observed: int

    def __str__(self) -> str:
        return (
            f"mismatch at {self.address:08x}: "
            f"sought {self.expected:#x}, got {self.observed:#x}"
        )


@dataclass
class MismatchRecord:
    """Mismatch count; details are only kept in verbose mode."""
    count: int = 0
    details: List[Mismatch] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.count == 0

    @property
    def addresses(self) -> List[int]:
        return [m.address for m in self.details]


def program_image(
    boot: BootSession,
    image: bytes,
    *,
    base: int = FLASH_BASE,
    chunk_size: int = CHUNK_SIZE,
    progress_cb: Optional[ProgressCallback] = None,
) -> int:
    """
    Write the image to flash in chunk_size pieces.

    Returns:
        Number of bytes written

    Raises:
        WriteError: A chunk write failed; flash is left partially written
    """
    total = len(image)
    written = 0
    for address, chunk in iter_chunks(image, base, chunk_size):
        try:
            boot.do_write_memory(address, chunk)
        except BootloaderError as e:
            raise WriteError(address) from e
        written += len(chunk)
        if progress_cb:
            progress_cb(written, total)
    logger.info(f"Wrote {written} bytes at 0x{base:08X}")
    return written


def compare_chunk(
    address: int,
    expected: bytes,
    observed: bytes,
    record: MismatchRecord,
    verbose: bool = False,
) -> None:
    """Count (and, if verbose, record) every differing byte of a chunk."""
    for offset, (sought, got) in enumerate(zip(expected, observed)):
        if sought != got:
            record.count += 1
            if verbose:
                mismatch = Mismatch(address + offset, sought, got)
                record.details.append(mismatch)
                logger.info(str(mismatch))


def verify_image(
    boot: BootSession,
    image: bytes,
    *,
    base: int = FLASH_BASE,
    chunk_size: int = CHUNK_SIZE,
    verbose: bool = False,
    progress_cb: Optional[ProgressCallback] = None,
) -> MismatchRecord:
    """
    Read the image range back and compare it byte for byte.

    The scan always runs to the end; the failure is raised afterwards.

    Raises:
        ReadBackError: A chunk read failed or came back short
        VerificationFailedError: One or more bytes differ
    """
    record = MismatchRecord()
    total = len(image)
    checked = 0
    for address, chunk in iter_chunks(image, base, chunk_size):
        try:
            observed = boot.do_read_memory(address, len(chunk))
        except BootloaderError as e:
            raise ReadBackError(address) from e
        if len(observed) != len(chunk):
            raise ReadBackError(address)
        compare_chunk(address, chunk, observed, record, verbose)
        checked += len(chunk)
        if progress_cb:
            progress_cb(checked, total)

    if not record.ok:
        raise VerificationFailedError(record.count, record.details)
    logger.info(f"Verified {checked} bytes")
    return record
