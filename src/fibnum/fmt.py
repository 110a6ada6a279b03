# src/fibnum/fmt.py
from __future__ import annotations

import re

from colorama import Fore, Style

from fibnum.runtime import CFG

# Single source of truth for ANSI stripping
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(s: str) -> str:
    return ANSI_RE.sub("", s)


def abbr_digits(s: str, head: int = 10, tail: int = 10, threshold: int = 35, ellipsis: str = "…") -> str:
    """Abbreviate a long decimal string as first<head>…last<tail>."""
    if len(s) <= threshold or head + tail >= len(s):
        return s
    return f"{s[:head]}{ellipsis}{s[-tail:]}"


def format_decimal(s: str, *, abbreviate: bool | None = None) -> str:
    """Apply the DISPLAY.* abbreviation settings to a rendered number."""
    if abbreviate is None:
        abbreviate = bool(CFG("DISPLAY.ABBREVIATE", False))
    if not abbreviate:
        return s
    return abbr_digits(
        s,
        int(CFG("DISPLAY.ABBR_HEAD", 20)),
        int(CFG("DISPLAY.ABBR_TAIL", 20)),
        int(CFG("DISPLAY.ABBR_THRESHOLD", 60)),
        CFG("DISPLAY.ELLIPSIS", "…"),
    )


def format_elapsed(ns: int) -> str:
    """Human-readable duration: 812 ns, 15.3 µs, 2.41 ms, 1.07 s."""
    if ns < 1_000:
        return f"{ns} ns"
    if ns < 1_000_000:
        return f"{ns / 1_000:.1f} µs"
    if ns < 1_000_000_000:
        return f"{ns / 1_000_000:.2f} ms"
    return f"{ns / 1_000_000_000:.2f} s"


def format_result_line(index: int, digits: str, *, ndigits: int | None = None) -> str:
    """'F(93) = 12200160415121876738' with the index highlighted; digit count added when abbreviated."""
    tail = ""
    if ndigits is not None and len(digits) != ndigits:
        tail = f" {Style.DIM}({ndigits} digits){Style.RESET_ALL}"
    return f"{Fore.YELLOW}F({index}){Style.RESET_ALL} = {digits}{tail}"
