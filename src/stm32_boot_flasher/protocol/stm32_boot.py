"""
STM32 UART Bootloader Session

Handles low-level serial communication with the STM32 system-memory
bootloader (ST application note AN3155).

This module provides:
- Serial port initialization (8E1, as the bootloader requires)
- Probe byte / ACK handshake
- GET and GET_ID queries (command set and product ID)
- Global erase, memory write/read and GO commands

Framing:
    command:  [opcode | opcode ^ 0xFF]          -> ACK (0x79) or NACK (0x1F)
    address:  [a3 | a2 | a1 | a0 | xor(a3..a0)]  -> ACK
    payload:  [bytes... | xor(bytes)]            -> ACK
"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import Dict, FrozenSet, Iterable, Iterator, Optional

import serial

from stm32_boot_flasher.config import ERASE_TIMEOUT, SERIAL_TIMEOUT

logger = logging.getLogger(__name__)

PROBE = b"\x7F"
ACK = b"\x79"
NACK = b"\x1F"

MAX_TRANSFER = 256


class BootloaderError(Exception):
    """Base exception for bootloader session errors"""
    pass


class BootloaderNack(BootloaderError):
    """Device answered a command or payload with NACK"""
    pass


class BootloaderTimeout(BootloaderError):
    """Device did not answer within the port timeout"""
    pass


class Command(Enum):
    """Bootloader command opcodes."""
    GET = 0x00
    GET_VERSION = 0x01
    GET_ID = 0x02
    READ_MEMORY = 0x11
    GO = 0x21
    WRITE_MEMORY = 0x31
    ERASE_MEMORY = 0x43
    EXTENDED_ERASE_MEMORY = 0x44
    WRITE_PROTECT = 0x63
    WRITE_UNPROTECT = 0x73
    READOUT_PROTECT = 0x82
    READOUT_UNPROTECT = 0x92


class CommandSupport:
    """
    Set of commands a device advertised, indexed by Command.

    Example:
        support = CommandSupport.from_opcodes(b"\\x00\\x01\\x02\\x44")
        support[Command.EXTENDED_ERASE_MEMORY]  # True
        support[Command.ERASE_MEMORY]           # False
    """

    def __init__(self, commands: Iterable[Command] = ()):
        self._supported: FrozenSet[Command] = frozenset(commands)

    @classmethod
    def from_opcodes(cls, opcodes: bytes) -> "CommandSupport":
        """Build from raw GET response bytes. Unknown opcodes are ignored."""
        known = {cmd.value: cmd for cmd in Command}
        return cls(known[op] for op in opcodes if op in known)

    def __getitem__(self, command: Command) -> bool:
        return command in self._supported

    def __iter__(self) -> Iterator[Command]:
        return (cmd for cmd in Command if cmd in self._supported)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommandSupport):
            return NotImplemented
        return self._supported == other._supported

    def __hash__(self) -> int:
        return hash(self._supported)

    def __repr__(self) -> str:
        names = ", ".join(cmd.name for cmd in self)
        return f"CommandSupport({names})"


# Product IDs from AN2606, rendered as the family tag used to name images.
KNOWN_FAMILIES: Dict[int, str] = {
    0x412: "F10xLow",
    0x410: "F10xMedium",
    0x414: "F10xHigh",
    0x430: "F10xXL",
    0x418: "F10xConnectivity",
    0x420: "F100Medium",
    0x428: "F100High",
    0x444: "F03x",
    0x445: "F04x",
    0x440: "F05x",
    0x448: "F07x",
    0x442: "F09x",
    0x422: "F30x",
    0x438: "F33x",
    0x413: "F40x",
    0x419: "F42x",
    0x466: "G03x",
    0x460: "G07x",
    0x468: "G43x",
    0x417: "L05x",
    0x447: "L07x",
    0x435: "L43x",
    0x415: "L47x",
}


@dataclass(frozen=True)
class ProductId:
    """Raw product ID and the family it maps to (None if unrecognized)."""
    raw: int
    family: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: int) -> "ProductId":
        return cls(raw, KNOWN_FAMILIES.get(raw))

    @property
    def recognized(self) -> bool:
        return self.family is not None


@dataclass(frozen=True)
class DeviceInfo:
    """Result of the info query. Built once per session."""
    bootloader_version: int
    product_id: Optional[ProductId]
    command_support: CommandSupport


def _xor(data: bytes) -> int:
    return reduce(lambda acc, b: acc ^ b, data, 0)


class Stm32Boot:
    """
    Bootloader session over an open serial port.

    The session owns the port until into_port() hands it back.

    Example:
        boot = Stm32Boot.open("/dev/ttyUSB0", baudrate=19200)
        boot.drain()
        boot.poke()
        info = boot.info()
        boot.do_extended_erase_memory_global()
        boot.do_write_memory(0x08000000, data)
        boot.do_go(0x08000000)
        port = boot.into_port()
    """

    def __init__(self, ser: serial.Serial):
        self.ser: Optional[serial.Serial] = ser

    @classmethod
    def open(
        cls,
        port: str,
        baudrate: int,
        timeout: float = SERIAL_TIMEOUT,
    ) -> "Stm32Boot":
        """
        Open serial port configured for the bootloader (even parity).

        Raises:
            BootloaderError: If port cannot be opened
        """
        try:
            ser = serial.Serial(
                port=port,
                baudrate=baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_EVEN,
                stopbits=serial.STOPBITS_ONE,
                timeout=timeout,
                write_timeout=timeout,
            )
        except serial.SerialException as e:
            raise BootloaderError(f"Cannot open port {port}: {e}") from e
        logger.debug(f"Opened {port} at {baudrate} bps 8E1 (timeout={timeout}s)")
        return cls(ser)

    def close(self) -> None:
        """Close serial port, unless it was already handed off."""
        if self.ser and self.ser.is_open:
            self.ser.close()

    def into_port(self) -> serial.Serial:
        """Release the underlying port. The session is unusable afterwards."""
        ser = self._port()
        self.ser = None
        return ser

    def _port(self) -> serial.Serial:
        if not self.ser or not self.ser.is_open:
            raise BootloaderError("Serial port not open")
        return self.ser

    def _write(self, data: bytes) -> None:
        ser = self._port()
        try:
            written = ser.write(data)
        except serial.SerialException as e:
            raise BootloaderError(f"Write error: {e}") from e
        if written != len(data):
            raise BootloaderError(f"Incomplete write: sent {written}/{len(data)} bytes")
        logger.debug(f">>> {data.hex().upper()}")

    def _read_exact(self, length: int, timeout_override: Optional[float] = None) -> bytes:
        ser = self._port()
        old_timeout = None
        try:
            if timeout_override is not None:
                old_timeout = ser.timeout
                ser.timeout = timeout_override
            data = ser.read(length)
        except serial.SerialException as e:
            raise BootloaderError(f"Read error: {e}") from e
        finally:
            if old_timeout is not None:
                ser.timeout = old_timeout

        if len(data) < length:
            raise BootloaderTimeout(
                f"Device did not respond (got {len(data)}/{length} bytes)"
            )
        logger.debug(f"<<< {data.hex().upper()}")
        return data

    def _wait_ack(self, timeout_override: Optional[float] = None) -> None:
        reply = self._read_exact(1, timeout_override)
        if reply == NACK:
            raise BootloaderNack("NACK byte received")
        if reply != ACK:
            raise BootloaderError(f"Unknown ACK/NACK byte received: 0x{reply[0]:02X}")

    def _send_command(self, command: Command) -> None:
        self._write(bytes([command.value, command.value ^ 0xFF]))
        self._wait_ack()

    def _send_address(self, address: int) -> None:
        raw = address.to_bytes(4, "big")
        self._write(raw + bytes([_xor(raw)]))
        self._wait_ack()

    def drain(self) -> bytes:
        """
        Discard any stale bytes in the receive buffer without blocking.

        Returns:
            Bytes that were drained (for logging)
        """
        ser = self._port()
        old_timeout = ser.timeout
        junk = b""
        try:
            ser.timeout = 0
            while True:
                chunk = ser.read(max(ser.in_waiting, 1))
                if not chunk:
                    break
                junk += chunk
        except serial.SerialException as e:
            raise BootloaderError(f"Drain error: {e}") from e
        finally:
            ser.timeout = old_timeout
        if junk:
            logger.debug(f"Drained {len(junk)} bytes of junk from buffer")
        return junk

    def poke(self) -> None:
        """Send the probe byte and require ACK. Not retried."""
        self._write(PROBE)
        self._wait_ack()

    def info(self) -> DeviceInfo:
        """
        Query bootloader version, supported commands and product ID.

        Protocol:
            GET:    ACK | N | version | N command bytes | ACK
            GET_ID: ACK | N | PID (N+1 bytes, big-endian) | ACK

        GET_ID is only issued when the device advertises it; otherwise the
        product ID is reported as absent.
        """
        self._send_command(Command.GET)
        count = self._read_exact(1)[0] + 1
        body = self._read_exact(count)
        self._wait_ack()
        version, opcodes = body[0], body[1:]
        support = CommandSupport.from_opcodes(opcodes)
        logger.info(
            f"Bootloader v{version >> 4}.{version & 0x0F}, "
            f"commands: {opcodes.hex().upper()}"
        )

        product_id = None
        if support[Command.GET_ID]:
            self._send_command(Command.GET_ID)
            count = self._read_exact(1)[0] + 1
            pid = self._read_exact(count)
            self._wait_ack()
            product_id = ProductId.from_raw(int.from_bytes(pid, "big"))
            logger.info(f"Product ID: 0x{product_id.raw:04X}")

        return DeviceInfo(
            bootloader_version=version,
            product_id=product_id,
            command_support=support,
        )

    def do_erase_memory_global(self) -> None:
        """Erase all flash with the legacy ERASE_MEMORY command."""
        self._send_command(Command.ERASE_MEMORY)
        self._write(b"\xFF\x00")
        self._wait_ack(timeout_override=ERASE_TIMEOUT)

    def do_extended_erase_memory_global(self) -> None:
        """Erase all flash with EXTENDED_ERASE_MEMORY (special code 0xFFFF)."""
        self._send_command(Command.EXTENDED_ERASE_MEMORY)
        self._write(b"\xFF\xFF\x00")
        self._wait_ack(timeout_override=ERASE_TIMEOUT)

    def do_write_memory(self, address: int, data: bytes) -> None:
        """
        Write up to 256 bytes at address.

        The bootloader requires a multiple of 4 bytes; a short tail is padded
        with 0xFF (the erased-flash value).
        """
        if not 0 < len(data) <= MAX_TRANSFER:
            raise ValueError(f"Wrong data size for write memory: {len(data)}")
        padded = bytes(data) + b"\xFF" * (-len(data) % 4)
        self._send_command(Command.WRITE_MEMORY)
        self._send_address(address)
        frame = bytes([len(padded) - 1]) + padded
        self._write(frame + bytes([_xor(frame)]))
        self._wait_ack()
        logger.debug(f"Wrote {len(data)} bytes at {address:08X}")

    def do_read_memory(self, address: int, length: int) -> bytes:
        """Read up to 256 bytes starting at address."""
        if not 0 < length <= MAX_TRANSFER:
            raise ValueError(f"Wrong data size for read memory: {length}")
        self._send_command(Command.READ_MEMORY)
        self._send_address(address)
        n = length - 1
        self._write(bytes([n, n ^ 0xFF]))
        self._wait_ack()
        return self._read_exact(length)

    def do_go(self, address: int) -> None:
        """Jump to the application at address."""
        self._send_command(Command.GO)
        self._send_address(address)
        logger.debug(f"GO 0x{address:08X} acknowledged")
