"""Byte count formatting for report cells."""
from __future__ import annotations

MISSING = "-"


def human_size(num_bytes: int | float, suffix: str = "B", decimals: int = 1) -> str:
    """Convert bytes to a human-readable string like '2.3 MB'."""
    value = float(num_bytes)
    for unit in ("", "K", "M", "G", "T", "P", "E", "Z"):
        if abs(value) < 1024.0:
            if unit == "":
                return f"{round(value)} {suffix}"
            return f"{value:.{decimals}f} {unit}{suffix}"
        value /= 1024.0
    return f"{value:.{decimals}f} Y{suffix}"


def format_bytes(value: int | float | None, human: bool = False, missing: str = MISSING) -> str:
    """
    Render one size cell. None (an empty folder has no minimum, median, ...)
    becomes *missing*, never '0'. Interpolated quartiles are rounded to
    whole bytes.
    """
    if value is None:
        return missing
    if human:
        return human_size(value)
    return str(round(value))
