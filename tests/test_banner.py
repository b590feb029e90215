"""Tests for output capture and the banner check."""

import pytest

from stm32_boot_flasher.core.banner import (
    capture_output,
    check_banner,
    expected_banner,
)
from stm32_boot_flasher.errors import EncodingError, TransportClosedError

from fakes import FakePort

BANNER_1_2_0 = (
    "\r\n\r\nSETUP MODE\r\n"
    "Firmware version: 1.2.0\r\n\r\n"
    "Press+hold any keypad button.\r\n"
    "Type ESC here if no more.\r\n"
)


class TestCapture:
    """Test the read-until-quiet loop."""

    def test_accumulates_until_timeout(self):
        port = FakePort([b"\r\n\r\nSETUP", b" MODE\r\n", b"rest"])
        assert capture_output(port) == b"\r\n\r\nSETUP MODE\r\nrest"
        # three data reads plus the one that timed out
        assert port.reads == 4

    def test_silent_target(self):
        assert capture_output(FakePort()) == b""

    def test_empty_read_before_timeout_is_fatal(self):
        port = FakePort([b"partial"], early_eof=True)
        with pytest.raises(TransportClosedError):
            capture_output(port)


class TestBanner:
    """Test check_banner."""

    def test_template(self):
        assert expected_banner("1.2.0") == BANNER_1_2_0

    def test_exact_match(self):
        check = check_banner(BANNER_1_2_0.encode(), "1.2.0")
        assert check.ok
        assert "Firmware version: 1.2.0" in check.expected

    def test_prefix_is_not_enough(self):
        check = check_banner(BANNER_1_2_0.encode() + b"extra", "1.2.0")
        assert not check.ok

    def test_embedded_whitespace_matters(self):
        text = expected_banner("1.2  beta").encode()
        assert check_banner(text, "1.2  beta").ok
        assert not check_banner(text, "1.2 beta").ok

    def test_non_utf8_output(self):
        with pytest.raises(EncodingError):
            check_banner(b"\xff\xfeSETUP", "1.2.0")

    def test_escaped_lines(self):
        check = check_banner(b"SETUP MODE\r\nFirmware version: 9\r\n", "1.2.0")
        assert not check.ok
        assert check.escaped_lines() == ["'SETUP MODE'", "'Firmware version: 9'"]

    def test_escaped_lines_split_only_on_line_feed(self):
        check = check_banner(b"one\rtwo\r\nthree\x0bfour\nfive", "1.2.0")
        assert check.escaped_lines() == ["'one\\rtwo'", "'three\\x0bfour'", "'five'"]

    def test_escaped_lines_keep_blank_lines(self):
        check = check_banner(b"\r\n\r\nSETUP\r\n", "1.2.0")
        assert check.escaped_lines() == ["''", "''", "'SETUP'"]

    def test_mismatch_is_not_logged_as_warning(self, caplog):
        with caplog.at_level("DEBUG", logger="stm32_boot_flasher"):
            check_banner(b"Hello\r\n", "1.2.0")
        assert not [r for r in caplog.records if r.levelname == "WARNING"]
