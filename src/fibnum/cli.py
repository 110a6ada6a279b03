# src/fibnum/cli.py

"""
fibnum - exact Fibonacci numbers on 64-bit limbs

usage: fibnum [index] [--strategy S] [--profile P] [--max N] [--check]
              [--timing] [--abbreviate] [--output OUTPUT] [--quiet] [--debug]

With an index, prints F(index). Without one, sweeps 0..max upward and then
back down, one line per index, for regression and timing runs.
"""

from __future__ import annotations

import argparse
import faulthandler
import sys
import textwrap
import traceback
from importlib.resources import files as pkg_files

from colorama import Fore, Style
from colorama import init as colorama_init

from fibnum import __version__ as _ver
from fibnum import config as CONFIG
from fibnum.errors import FibnumError, UserInputError
from fibnum.fibonacci import Strategy, estimate_limbs
from fibnum.fmt import format_decimal, format_elapsed, format_result_line
from fibnum.limbs import LIMB_BYTES, limbs_to_int, unpack_limbs
from fibnum.output_manager import OutputManager, validate_output_setting
from fibnum.progress import Progress
from fibnum.render import render_decimal
from fibnum.runtime import APPLY, CFG, ensure_runtime_deps
from fibnum.runtime import current as _rt_current
from fibnum.runtime import debug as _debug
from fibnum.session import MAX_INDEX, FibonacciDevice, Session
from fibnum.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

COMMANDS = ("init", "where", "profiles")


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    faulthandler.enable()

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if not msg.startswith("Error:"):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


def _parse_index(token: str) -> int:
    try:
        n = int(token.replace("_", ""))
    except ValueError:
        raise UserInputError(f"Invalid input: '{token}' is not an index or a command ({', '.join(COMMANDS)}).") from None
    if n < 0:
        raise UserInputError(f"Invalid input: index must be non-negative, got {n}.")
    return n


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      init        Create the workspace and copy the packaged profiles if missing.
      where       Show the workspace and package paths.
      profiles    List the available profiles.

    strategies:
      iterative       O(k) additions, the correctness baseline
      fast-doubling   O(log k) schoolbook multiplications (default)
      karatsuba       fast doubling with the recursive multiplier
    """)

    p = argparse.ArgumentParser(
        prog="fibnum",
        description="Exact Fibonacci numbers on 64-bit limbs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("item", nargs="?", metavar="index|command",
                   help="index k to compute F(k) for; omit to run the up/down sweep")
    p.add_argument("--strategy", default=None, help="iterative, fast-doubling or karatsuba (profile ENGINE.STRATEGY)")
    p.add_argument("--profile", default=None, help="profile name from the workspace (default: 'default')")
    p.add_argument("--max", type=int, default=None, dest="max_index", help="upper index of the sweep (profile SWEEP.MAX_INDEX)")
    p.add_argument("--check", action="store_true", help="cross-check every result against gmpy2.fib")
    p.add_argument("--timing", action="store_true", help="show the compute time of every request")
    p.add_argument("--abbreviate", action="store_true", help="shorten long numbers to head…tail")
    p.add_argument("--output", default=None, help="Write results to a file instead of the screen")
    p.add_argument("--quiet", action="store_true", help="Suppress screen output and progress")
    p.add_argument("--debug", action="store_true", help="Show profile and request traces, full tracebacks")
    p.add_argument("--version", action="version", version=f"%(prog)s {_ver}")
    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except UserInputError as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = "--debug" in (argv if argv is not None else sys.argv)
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


class _Reporter:
    """Renders responses into lines and keeps the --check tally."""

    def __init__(self, om: OutputManager, *, check: bool, timing: bool, abbreviate: bool):
        self.om = om
        self.check = check
        self.timing = timing
        self.abbreviate = abbreviate
        self.mismatches: list[int] = []
        self._fib = None
        if check:
            import gmpy2
            self._fib = gmpy2.fib

    def emit(self, session: Session, index: int) -> None:
        session.seek(index)
        # the reader sizes its buffer from the same closed-form estimate as the engine
        payload = session.read(estimate_limbs(index) * LIMB_BYTES)
        limbs = unpack_limbs(payload)
        resp = session.last
        digits = render_decimal(limbs)
        shown = format_decimal(digits, abbreviate=True if self.abbreviate else None)
        line = format_result_line(resp.index, shown, ndigits=len(digits))

        if self.timing:
            line += f"  {Style.DIM}[{resp.strategy.value} {format_elapsed(resp.elapsed_ns)}]{Style.RESET_ALL}"
        if self._fib is not None:
            if limbs_to_int(limbs) == int(self._fib(resp.index)):
                line += f"  {Fore.GREEN}ok{Style.RESET_ALL}"
            else:
                self.mismatches.append(resp.index)
                line += f"  {Fore.RED}MISMATCH{Style.RESET_ALL}"
        _debug(f"F({resp.index}): {len(limbs)} limb(s), {len(payload)} bytes, {resp.elapsed_ns} ns")
        self.om.write(line)


def _sweep_indices(top: int) -> list[int]:
    up = list(range(top + 1))
    return up + up[::-1]


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init()

    parser = _build_parser()
    args = parser.parse_args(argv)
    rt = _rt_current()
    rt.debug = bool(args.debug)

    _install_loud_error_handlers(args.debug)

    # --- commands ---
    if args.item == "init":
        ws, copied = seed_workspace(overwrite=False)
        print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied.get('profiles', 0)}")
        return 0
    if args.item == "where":
        print(f"Workspace: {workspace_dir()}")
        print(f"Package:   {pkg_files('fibnum')}")
        return 0

    ensure_workspace_seeded()

    if args.item == "profiles":
        for name in CONFIG.list_all_profiles():
            print(f"  {name:<16} {CONFIG.load_settings(name).description}")
        return 0

    # --- profile ---
    profile_name = args.profile or "default"
    if not CONFIG.has_profile(profile_name):
        raise UserInputError(
            f"Unknown profile: '{profile_name}'. Available profiles: {', '.join(CONFIG.list_all_profiles())}"
        )
    selected = CONFIG.load_settings(profile_name)
    APPLY(selected)
    if args.debug:
        rt.debug = True
    _debug(f"active profile: {selected.name} ({selected._source})")

    try:
        strategy = Strategy.parse(args.strategy or CFG("ENGINE.STRATEGY", Strategy.FAST_DOUBLING.value))
    except ValueError as e:
        raise UserInputError(str(e)) from None
    max_index = int(CFG("ENGINE.MAX_INDEX", MAX_INDEX))
    _debug(f"strategy: {strategy.value}, max index: {max_index}")

    if args.check and not ensure_runtime_deps(strict=True):
        return 1

    try:
        output_target = validate_output_setting(args.output or CFG("OUTPUT.OUTPUT_FILE", None))
    except ValueError as e:
        raise UserInputError(f"--output: {e}") from None

    if args.item is not None:
        indices = [_parse_index(args.item)]
        if indices[0] > max_index:
            print(f"{Fore.YELLOW}Note:{Style.RESET_ALL} index {indices[0]} exceeds the maximum, "
                  f"clamped to {max_index}.", file=sys.stderr)
    else:
        top = args.max_index if args.max_index is not None else int(CFG("SWEEP.MAX_INDEX", 100))
        if top < 0:
            raise UserInputError(f"--max must be non-negative, got {top}")
        indices = _sweep_indices(min(top, max_index))

    # with a file target the lines go to the file and the screen shows progress
    to_file = bool(output_target)
    progress = Progress(len(indices), enabled=to_file and not args.quiet and len(indices) > 1)
    device = FibonacciDevice(max_index=max_index, strategy=strategy)
    with OutputManager(output_file=output_target, quiet=args.quiet or to_file) as om:
        reporter = _Reporter(om, check=args.check, timing=args.timing, abbreviate=args.abbreviate)
        try:
            with device.open() as session:
                for done, k in enumerate(indices):
                    reporter.emit(session, k)
                    progress.update(done + 1, f"F({k})")
        except FibnumError as e:
            if rt.debug:
                traceback.print_exc()
            _print_user_error(f"{e.__class__.__name__}: {e}")
            return 1
        finally:
            progress.done()

    if to_file and not args.quiet:
        print(f"Wrote {om.lines} line(s) to {om.path}")
    if reporter.mismatches:
        shown = ", ".join(str(k) for k in reporter.mismatches[:10])
        print(f"{Fore.RED}{len(reporter.mismatches)} mismatch(es) against gmpy2:{Style.RESET_ALL} {shown}",
              file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
