"""
Result object for a flash run.

The pipeline raises on every fatal failure, so a FlashResult always
describes a completed run; the only thing that can still be wrong is the
advisory banner check, which is carried as a warning.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .banner import BannerCheck
from .program import MismatchRecord


@dataclass
class FlashResult:
    """
    Outcome of a completed flash run.

    Attributes:
        ok: Whether every fatal stage completed
        model: Detected device family
        version: Firmware version from the archive
        image_name: Archive entry that was flashed
        bytes_len: Number of bytes written and verified
        base: Flash base address
        erase_command: Name of the erase command issued
        mismatches: Verification record (always empty on success)
        banner: Result of the advisory output check
        warnings: Non-blocking issues encountered
        logs: Captured log lines from the run
    """
    ok: bool
    model: str = ""
    version: str = ""
    image_name: str = ""
    bytes_len: int = 0
    base: int = 0
    erase_command: str = ""
    mismatches: MismatchRecord = field(default_factory=MismatchRecord)
    banner: Optional[BannerCheck] = None
    warnings: List[str] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)

    @property
    def banner_ok(self) -> bool:
        return self.banner is not None and self.banner.ok

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def to_summary(self) -> str:
        """
        Generate a human-readable summary string.

        Suitable for CLI output or simple logging.
        """
        status = "SUCCESS" if self.ok else "FAILED"
        lines = [f"[{status}] flash"]

        if self.model:
            lines.append(f"  Model: {self.model}")
        if self.version:
            lines.append(f"  Version: {self.version}")
        if self.image_name:
            lines.append(f"  Image: {self.image_name}")
        if self.bytes_len:
            lines.append(f"  Bytes: {self.bytes_len:,} at 0x{self.base:08X}")
        if self.erase_command:
            lines.append(f"  Erase: {self.erase_command}")
        if self.banner is not None:
            lines.append(f"  Banner: {'OK' if self.banner.ok else 'UNEXPECTED'}")

        if self.warnings:
            lines.append("  Warnings:")
            for warn in self.warnings:
                lines.append(f"    - {warn}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": self.ok,
            "model": self.model,
            "version": self.version,
            "image_name": self.image_name,
            "bytes_len": self.bytes_len,
            "base": self.base,
            "erase_command": self.erase_command,
            "mismatches": {
                "count": self.mismatches.count,
                "addresses": self.mismatches.addresses,
            },
            "banner": None if self.banner is None else {
                "ok": self.banner.ok,
                "expected": self.banner.expected,
                "actual": self.banner.actual,
            },
            "warnings": self.warnings,
            "logs": self.logs,
        }
