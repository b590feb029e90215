"""
Parsing helpers for CLI values.
"""

from typing import Optional


def parse_address(value: Optional[str]) -> Optional[int]:
    """
    Parse an address from string, supporting multiple formats.

    Accepts:
        - Decimal: "134217728"
        - Hex with 0x prefix: "0x08000000" or "0X08000000"
        - Hex with h suffix: "08000000h" or "08000000H"
        - Underscore separators: "0x0800_0000"
        - None or empty for "not given"

    Returns:
        Parsed integer address, or None if value is None or empty.

    Raises:
        ValueError: If value cannot be parsed or is negative.
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    try:
        if value.lower().startswith("0x"):
            address = int(value, 16)
        elif value.lower().endswith("h"):
            address = int(value[:-1], 16)
        else:
            address = int(value)
    except ValueError:
        raise ValueError(
            f"Invalid address '{value}'. Use decimal, hex (0x08000000), or suffix (08000000h)."
        )

    if address < 0 or address > 0xFFFF_FFFF:
        raise ValueError(f"Address out of 32-bit range: {value}")
    return address
