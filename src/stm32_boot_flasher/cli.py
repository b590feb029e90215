"""
STM32 Boot Flasher CLI

Single-command interface: erase, program, verify and start the firmware
from a release archive, then check the application's setup banner.
"""

import sys
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, BarColumn, TextColumn

from stm32_boot_flasher.config import DEFAULT_BAUD_RATE, FLASH_BASE, FlashConfig
from stm32_boot_flasher.core.banner import BannerCheck
from stm32_boot_flasher.core.parsing import parse_address as _parse_address_core
from stm32_boot_flasher.core.pipeline import flash_firmware
from stm32_boot_flasher.core.results import FlashResult
from stm32_boot_flasher.errors import FlasherError, TransportError
from stm32_boot_flasher.protocol import BootloaderError, Stm32Boot

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True)],
)
logger = logging.getLogger("stm32_boot_flasher")

# Setup Rich console
console = Console()

app = typer.Typer(help="STM32 Boot Flasher - program firmware over the UART bootloader")

STAGE_LABELS = {
    "write": "Writing...",
    "verify": "Verifying...",
}


def print_header(text: str) -> None:
    """Print fancy header."""
    console.print(Panel(text, expand=False, style="bold blue"))


def print_success(text: str) -> None:
    """Print success message."""
    console.print(f"✓ {text}", style="green")


def print_warning(text: str) -> None:
    """Print warning message."""
    console.print(f"⚠️  {text}", style="yellow")


def print_error(text: str) -> None:
    """Print error message."""
    console.print(f"❌ {text}", style="red")


def print_error_chain(exc: BaseException) -> None:
    """Print an error followed by each chained cause."""
    print_error(f"Error: {escape(str(exc))}")
    cause = exc.__cause__
    if cause is not None:
        console.print("\nCaused by:", style="red")
    depth = 0
    while cause is not None:
        console.print(f"  {depth}: {cause}", style="red", markup=False)
        cause = cause.__cause__
        depth += 1


def print_banner_mismatch(check: BannerCheck) -> None:
    """Show expected and actual target output, escaped, for diagnosis."""
    console.print(f"Expected: {check.expected!r}", markup=False)
    console.print("--- BEGIN ESCAPED LINES ---")
    for line in check.escaped_lines():
        console.print(line, markup=False, highlight=False)
    console.print("--- END ESCAPED LINES ---")


def print_result(result: FlashResult) -> None:
    """Print a summary table of the run."""
    table = Table(title="Flash Summary")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Model", result.model)
    table.add_row("Version", result.version)
    table.add_row("Image", result.image_name)
    table.add_row("Bytes", f"{result.bytes_len:,}")
    table.add_row("Address", f"0x{result.base:08X}")
    table.add_row("Erase", result.erase_command)
    table.add_row("Banner", "OK" if result.banner_ok else "UNEXPECTED")

    console.print(table)


def parse_address(value: Optional[str]) -> Optional[int]:
    """
    Parse address value from string.

    CLI wrapper around core.parsing.parse_address that converts
    ValueError to typer.BadParameter for proper CLI error handling.
    """
    try:
        return _parse_address_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def open_bootloader(config: FlashConfig) -> Stm32Boot:
    """Open the serial port in bootloader framing (8E1)."""
    try:
        return Stm32Boot.open(config.port, config.baud_rate, config.timeout)
    except BootloaderError as exc:
        raise TransportError(f"opening serial port {config.port}") from exc


@app.command()
def flash(
    archive: Path = typer.Argument(..., help="Firmware archive (ZIP with VERSION and <Model>.bin)"),
    port: str = typer.Option(..., "--port", "-p", help="Serial port"),
    baud_rate: int = typer.Option(
        DEFAULT_BAUD_RATE,
        "--baud-rate", "-b",
        help="Programming baud rate. Rates up to 115200 work, but the target's "
             "first words may be corrupted when the run baud rate differs.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Report every mismatching byte"),
    run_baud_rate: int = typer.Option(
        DEFAULT_BAUD_RATE,
        "--run-baud-rate",
        help="Baud rate the flashed firmware transmits at. Must match firmware.",
    ),
    flash_base: str = typer.Option(
        f"0x{FLASH_BASE:08X}",
        "--flash-base",
        help="Flash start address: decimal, hex (0x08000000), or suffix (08000000h)",
    ),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output the run summary as JSON for scripting"),
) -> None:
    """
    Erase, program, verify and start firmware on an STM32 in bootloader mode.

    Example:
        stm32-boot-flasher -p /dev/ttyUSB0 firmware-1.2.0.zip
    """
    base = parse_address(flash_base)
    config = FlashConfig(
        port=port,
        baud_rate=baud_rate,
        run_baud_rate=run_baud_rate,
        verbose=verbose,
        flash_base=FLASH_BASE if base is None else base,
    )

    if not output_json:
        print_header("STM32 Boot Flasher")
        console.print(f"Port:       {config.port} @ {config.baud_rate} bps")
        console.print(f"Archive:    {archive}")
        console.print(f"Flash base: 0x{config.flash_base:08X}")
        console.print()

    try:
        boot = open_bootloader(config)
    except FlasherError as exc:
        print_error_chain(exc)
        sys.exit(1)

    try:
        with Progress(
            TextColumn("[{task.description}]"),
            BarColumn(),
            TextColumn("[{task.percentage:.0f}%]"),
            console=console,
            disable=output_json,
        ) as progress:
            tasks = {}

            def on_progress(stage: str, done: int, total: int) -> None:
                if stage not in tasks:
                    tasks[stage] = progress.add_task(STAGE_LABELS[stage], total=total)
                progress.update(tasks[stage], completed=done)

            result = flash_firmware(boot, archive, config, progress_cb=on_progress)
    except FlasherError as exc:
        print_error_chain(exc)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user; re-run to erase and program again[/yellow]")
        sys.exit(1)
    finally:
        boot.close()

    if output_json:
        console.print(json.dumps(result.to_dict(), indent=2), markup=False, highlight=False, soft_wrap=True)
        return

    console.print()
    for warning in result.warnings:
        print_warning(warning)
    if result.banner_ok:
        print_success("OK")
    else:
        print_banner_mismatch(result.banner)
    print_result(result)


def main() -> None:
    """Main entry point."""
    try:
        app()
    except Exception as e:
        console.print(f"\n[red bold]Fatal error:[/red bold] {escape(str(e))}")
        sys.exit(1)


if __name__ == "__main__":
    main()
