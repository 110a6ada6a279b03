# output_manager.py

import os

from fibnum.fmt import strip_ansi
from fibnum.workspace import workspace_dir


def resolve_output_path(path: str, workspace_root: str) -> str:
    """
    Resolve user-provided output path.

    Rules:
    - '~' expanded to user home
    - Absolute paths unchanged
    - Relative paths are relative to workspace_root
    """
    if not path:
        raise ValueError("Output path is empty")

    path = os.path.expanduser(path)
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(workspace_root, path))


def validate_output_setting(output_file: str | None) -> str | None:
    """
    - None / "" => ok (screen only)
    - path/to/file => must name a file, not a directory or a source file
    Returns the output_file unchanged, or raises ValueError.
    """
    if not output_file:
        return output_file
    if output_file.endswith(("/", "\\")) or output_file in (".", ".."):
        raise ValueError(f"'{output_file}' is a directory; give a file name")
    if os.path.splitext(output_file)[1].lower() in {".py", ".toml"}:
        raise ValueError(f"refusing to write results into '{output_file}'")
    return output_file


class OutputManager:
    """
    Handles all printing/output, to screen and/or one file.

    Usage:
        om = OutputManager(output_file="results/sweep.txt")
        om.write("Hello")   # prints and appends (ANSI stripped)
        om.close()
    """

    def __init__(self, output_file: str | None = None, quiet: bool = False):
        """
        Parameters:
            output_file:
                None or ""       => screen only
                path/to/file.txt => append all lines to this file
            quiet: if True, no output to screen (only to file)
        """
        self.quiet = quiet
        self.output_file = output_file or ""
        self._path: str | None = None
        self._fh = None
        self.lines = 0

        if self.output_file:
            path = resolve_output_path(self.output_file, str(workspace_dir()))
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            self._path = path

    @property
    def path(self) -> str | None:
        return self._path

    def write(self, *args, sep: str = " ", end: str = "\n") -> None:
        """Write to screen and file (if configured)."""
        text = sep.join(str(a) for a in args) + end
        self.lines += 1
        if not self.quiet:
            print(text, end="")
        if self._path:
            if self._fh is None:
                self._fh = open(self._path, "a", encoding="utf-8")  # noqa: SIM115  closed in close()
            self._fh.write(strip_ansi(text))

    def close(self) -> None:
        if self._fh is not None:
            self._fh.write("\n")  # one empty line between runs
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
