"""Domain-specific errors for stm32_boot_flasher."""


class FlasherError(Exception):
    """Base error for stm32_boot_flasher."""


# Archive / content errors

class ArchiveError(FlasherError):
    """Raised when the firmware archive cannot be opened or its index read."""


class MissingVersionError(ArchiveError):
    """Raised when the archive has no VERSION entry."""


class ImageNotFoundError(ArchiveError):
    """Raised when the archive has no image for the detected family."""

    def __init__(self, entry_name: str):
        super().__init__(f"can't find {entry_name} in archive")
        self.entry_name = entry_name


class ReadError(ArchiveError):
    """Raised when an archive entry is truncated or cannot be read."""


class EncodingError(FlasherError):
    """Raised when bytes that must be text are not valid UTF-8."""


# Transport / device errors

class TransportError(FlasherError):
    """Raised on serial transport failures (open, drain, read, write)."""


class TransportClosedError(TransportError):
    """Raised when a read returns nothing before its timeout elapsed."""


class DeviceUnresponsiveError(FlasherError):
    """Raised when the bootloader does not answer the probe byte."""


class InfoQueryError(FlasherError):
    """Raised when the device info query fails or returns garbage."""


class UnsupportedDeviceError(FlasherError):
    """Raised when the device reports no, or an unrecognized, product ID."""


# Capability / command errors

class NoEraseCapabilityError(FlasherError):
    """Raised when the device advertises no global erase command."""


class EraseRejectedError(FlasherError):
    """Raised when the device refuses the erase command."""


class WriteError(FlasherError):
    """Raised when writing a chunk fails."""

    def __init__(self, address: int):
        super().__init__(f"writing memory at 0x{address:08X}")
        self.address = address


class ReadBackError(FlasherError):
    """Raised when reading a chunk back for verification fails."""

    def __init__(self, address: int):
        super().__init__(f"reading memory at 0x{address:08X}")
        self.address = address


class VerificationFailedError(FlasherError):
    """Raised when read-back contents differ from the image."""

    def __init__(self, count: int, mismatches=()):
        super().__init__(f"memory contents failed to match at {count} addresses.")
        self.count = count
        self.mismatches = list(mismatches)


class ActivationRejectedError(FlasherError):
    """Raised when the device refuses the GO command."""
