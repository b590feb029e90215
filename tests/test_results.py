"""Tests for the flash result renderings."""

import json

from stm32_boot_flasher.core.banner import check_banner, expected_banner
from stm32_boot_flasher.core.program import Mismatch, MismatchRecord
from stm32_boot_flasher.core.results import FlashResult


def _completed(banner_text: str) -> FlashResult:
    result = FlashResult(
        ok=True,
        model="StmXY",
        version="1.2.0",
        image_name="StmXY.bin",
        bytes_len=300,
        base=0x08000000,
        erase_command="EXTENDED_ERASE_MEMORY",
        banner=check_banner(banner_text.encode(), "1.2.0"),
        logs=["INFO stm32_boot_flasher.core.session: Detected model: StmXY"],
    )
    if not result.banner_ok:
        result.add_warning("target's first transmission unexpected")
    return result


class TestSummary:
    """Test the human-readable summary."""

    def test_success(self):
        summary = _completed(expected_banner("1.2.0")).to_summary()
        lines = summary.splitlines()
        assert lines[0] == "[SUCCESS] flash"
        assert "  Model: StmXY" in lines
        assert "  Bytes: 300 at 0x08000000" in lines
        assert "  Banner: OK" in lines
        assert "Warnings" not in summary

    def test_warnings_listed(self):
        summary = _completed("Hello\r\n").to_summary()
        assert "  Banner: UNEXPECTED" in summary
        assert "    - target's first transmission unexpected" in summary

    def test_empty_fields_skipped(self):
        assert FlashResult(ok=False).to_summary() == "[FAILED] flash"


class TestDict:
    """Test the JSON-ready rendering."""

    def test_fields(self):
        data = _completed("Hello\r\n").to_dict()
        assert data["ok"] is True
        assert data["model"] == "StmXY"
        assert data["base"] == 0x08000000
        assert data["banner"]["ok"] is False
        assert data["banner"]["actual"] == "Hello\r\n"
        assert data["warnings"] == ["target's first transmission unexpected"]
        assert data["logs"] == ["INFO stm32_boot_flasher.core.session: Detected model: StmXY"]

    def test_mismatch_addresses(self):
        record = MismatchRecord(count=1, details=[Mismatch(0x08000004, 0x12, 0x00)])
        data = FlashResult(ok=False, mismatches=record).to_dict()
        assert data["mismatches"] == {"count": 1, "addresses": [0x08000004]}
        assert data["banner"] is None

    def test_serializable(self):
        text = json.dumps(_completed(expected_banner("1.2.0")).to_dict())
        assert json.loads(text)["version"] == "1.2.0"
