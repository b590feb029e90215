"""
Flash configuration.

Constants shared by the pipeline stages and the CLI, plus the frozen
FlashConfig the CLI builds from its options.
"""

from dataclasses import dataclass

# Start of main flash on STM32 parts. Kept as configuration rather than
# derived from the detected family.
FLASH_BASE = 0x0800_0000

# Maximum payload of a single WRITE_MEMORY / READ_MEMORY command.
CHUNK_SIZE = 256

DEFAULT_BAUD_RATE = 19_200
SERIAL_TIMEOUT = 0.5  # seconds, read and write
ERASE_TIMEOUT = 30.0  # mass erase of a large part can take many seconds
CAPTURE_READ_SIZE = 512


@dataclass(frozen=True)
class FlashConfig:
    """
    Options for a single flash run.

    Attributes:
        port: Serial port (e.g., "/dev/ttyUSB0", "COM3")
        baud_rate: Programming-phase baud rate
        run_baud_rate: Baud rate the application firmware transmits at
        verbose: Report every mismatching byte during verification
        flash_base: Address the image is written to and started from
        chunk_size: Bytes per write/read command
        timeout: Serial read/write timeout in seconds
    """
    port: str
    baud_rate: int = DEFAULT_BAUD_RATE
    run_baud_rate: int = DEFAULT_BAUD_RATE
    verbose: bool = False
    flash_base: int = FLASH_BASE
    chunk_size: int = CHUNK_SIZE
    timeout: float = SERIAL_TIMEOUT

    @property
    def changes_baud_rate(self) -> bool:
        """True if the application runs at a different rate than programming."""
        return self.run_baud_rate != self.baud_rate
