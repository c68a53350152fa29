"""
Text patterns shared by the assemblers.

Each heuristic is an ordered table; the first matching entry decides.
"""

import re
from typing import Optional, Pattern, Tuple

# Prescaler divider in a value name or caption ("clk/64", "divided by 8", ...).
DIVIDER_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"divided\s+by\s+(\d+)", re.IGNORECASE),
    re.compile(r"(?:clk|clock)\s*/\s*(\d+)", re.IGNORECASE),
    re.compile(r"/\s*(\d+)"),
    re.compile(r"div(?:ide)?[_\s]*(\d+)", re.IGNORECASE),
    re.compile(r"prescal\w*\s*(?:of\s*)?(\d+)", re.IGNORECASE),
)

# (phrase, divider) for values without a number; None means the clock is stopped.
DIVIDER_PHRASES: Tuple[Tuple[str, Optional[int]], ...] = (
    ("no prescal", 1),
    ("stop", None),
    ("no clock", None),
)

FREQUENCY_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(MHz|kHz|Hz)", re.IGNORECASE)
STARTUP_PATTERN = re.compile(r"Start-up time[^:;]*:\s*([^;]+)", re.IGNORECASE)
VOLTAGE_PATTERN = re.compile(r"(\d+\.?\d*)\s*V\b", re.IGNORECASE)

_FREQUENCY_SCALE = {"mhz": 1_000_000.0, "khz": 1_000.0, "hz": 1.0}


def extract_divider(*texts: str) -> Optional[int]:
    """Divider named by any of ``texts``; ``None`` when there is none."""
    joined = " ".join(t for t in texts if t)
    for pattern in DIVIDER_PATTERNS:
        match = pattern.search(joined)
        if match:
            divider = int(match.group(1))
            return divider if divider > 0 else None
    # Some value groups name the divider with a bare number ("64").
    for text in texts:
        if text and text.strip().isdigit() and int(text) > 0:
            return int(text)
    lowered = joined.lower()
    for phrase, divider in DIVIDER_PHRASES:
        if phrase in lowered:
            return divider
    return None


def extract_frequency(text: str) -> Optional[float]:
    """Frequency in Hz (``"8.0 MHz"`` -> ``8000000.0``)."""
    match = FREQUENCY_PATTERN.search(text or "")
    if not match:
        return None
    return float(match.group(1)) * _FREQUENCY_SCALE[match.group(2).lower()]


def extract_startup_time(text: str) -> Optional[str]:
    match = STARTUP_PATTERN.search(text or "")
    return match.group(1).strip() if match else None


def extract_voltage(text: str) -> str:
    """Reference voltage named by an ADC reference caption."""
    match = VOLTAGE_PATTERN.search(text or "")
    if match:
        return f"{match.group(1)}V"
    lowered = (text or "").lower()
    if "external" in lowered or "aref" in lowered:
        return "Variable"
    if "vcc" in lowered:
        return "VCC"
    return "Unknown"
