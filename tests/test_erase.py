"""Tests for global erase selection."""

import pytest

from stm32_boot_flasher.core.erase import global_erase, select_erase
from stm32_boot_flasher.errors import EraseRejectedError, NoEraseCapabilityError
from stm32_boot_flasher.protocol import Command, CommandSupport

from fakes import FakeBoot


def test_prefers_plain_erase_when_both_advertised():
    support = CommandSupport([Command.ERASE_MEMORY, Command.EXTENDED_ERASE_MEMORY])
    assert select_erase(support) is Command.ERASE_MEMORY


def test_extended_only_when_plain_absent():
    support = CommandSupport([Command.GET, Command.EXTENDED_ERASE_MEMORY])
    assert select_erase(support) is Command.EXTENDED_ERASE_MEMORY


def test_no_erase_capability():
    support = CommandSupport([Command.GET, Command.WRITE_MEMORY, Command.READ_MEMORY])
    with pytest.raises(NoEraseCapabilityError):
        select_erase(support)


def test_global_erase_issues_selected_command():
    boot = FakeBoot()
    support = CommandSupport([Command.ERASE_MEMORY, Command.EXTENDED_ERASE_MEMORY])

    assert global_erase(boot, support) is Command.ERASE_MEMORY
    assert boot.names() == ["drain", "erase"]


def test_global_erase_extended():
    boot = FakeBoot()
    support = CommandSupport([Command.EXTENDED_ERASE_MEMORY])

    assert global_erase(boot, support) is Command.EXTENDED_ERASE_MEMORY
    assert boot.names() == ["drain", "extended_erase"]


def test_global_erase_never_touches_device_without_capability():
    boot = FakeBoot()
    with pytest.raises(NoEraseCapabilityError):
        global_erase(boot, CommandSupport())
    assert boot.calls == []


def test_nack_is_erase_rejected():
    boot = FakeBoot(nack={"erase"})
    with pytest.raises(EraseRejectedError):
        global_erase(boot, CommandSupport([Command.ERASE_MEMORY]))
