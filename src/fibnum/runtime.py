# runtime.py
from __future__ import annotations

import sys
from contextvars import ContextVar
from dataclasses import dataclass, field
from importlib.util import find_spec
from typing import Any

from colorama import Fore, Style

_MISSING = object()


@dataclass
class Runtime:
    """Active profile of the current run: its name, its nested tables, the debug switch."""

    profile_name: str = "default"
    settings: dict[str, Any] = field(default_factory=dict)
    debug: bool = False

    def apply(self, settings: Any) -> None:
        if isinstance(settings, dict):
            tables, name = settings, "custom"
        else:
            tables, name = settings.as_dict(), settings.name
        self.profile_name = name
        self.settings = {section: dict(values) if isinstance(values, dict) else values
                         for section, values in tables.items()}

        flag = self.get("BEHAVIOUR.DEBUG")
        if isinstance(flag, bool):
            self.debug = flag

    def get(self, key: str, default: Any = None) -> Any:
        """Dotted lookup, e.g. 'DISPLAY.ABBR_HEAD'; a bare key reads a top-level entry."""
        node: Any = self.settings
        for part in key.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node


_current_runtime: ContextVar[Runtime | None] = ContextVar("fibnum_runtime", default=None)


def current() -> Runtime:
    rt = _current_runtime.get()
    if rt is None:
        rt = reset()
    return rt


def reset() -> Runtime:
    rt = Runtime()
    _current_runtime.set(rt)
    return rt


def APPLY(settings: Any) -> None:
    current().apply(settings)


def CFG(key: str, default: Any = None) -> Any:
    return current().get(key, default)


def debug(msg: str) -> None:
    if current().debug:
        print(f"{Fore.CYAN}[debug]{Style.RESET_ALL} {msg}", file=sys.stderr)


def ensure_runtime_deps(strict: bool = True) -> bool:
    """
    The --check run compares every result with gmpy2.fib.
    Prints an install hint and returns False (when strict) if gmpy2 is absent.
    """
    if find_spec("gmpy2") is not None:
        return True
    print(f"{Fore.RED}{Style.BRIGHT}--check needs gmpy2.{Style.RESET_ALL} "
          f"Install with: {Fore.YELLOW}pip install gmpy2{Style.RESET_ALL}", file=sys.stderr)
    return not strict
