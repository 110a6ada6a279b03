from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:
    import tomllib as toml
except Exception:
    import tomli as toml  # type: ignore

from fibnum.errors import UserInputError
from fibnum.fibonacci import Strategy
from fibnum.workspace import ensure_workspace_seeded, workspace_dir


SECTIONS = ("ENGINE", "SWEEP", "DISPLAY", "OUTPUT", "BEHAVIOUR")


@dataclass
class Settings:
    """
    Wrap the full TOML dict (without the [_PROFILE_] section).
    .as_dict() feeds runtime.apply().
    """
    data: dict[str, Any]
    name: str
    description: str
    _source: Path | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.data


# --- Paths -----------------------------------------------------------------

def _profiles_dir() -> Path:
    return workspace_dir() / "profiles"


def _profile_path(name: str) -> Path:
    return _profiles_dir() / f"{name}.toml"


# --- I/O -------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return toml.load(f)
    except OSError as e:
        raise UserInputError(f"reading {path.name}: {e.strerror or e}.") from None
    except toml.TOMLDecodeError as e:
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        msg = getattr(e, "msg", str(e))
        where = []
        if lineno is not None:
            where.append(f"line {lineno}")
        if colno is not None:
            where.append(f"column {colno}")
        loc = f" (at {', '.join(where)})" if where else ""
        # No traceback chaining
        raise UserInputError(f"reading {path.name}: {msg}{loc}.") from None


def _split_profile_data(raw: dict[str, Any], fallback_name: str) -> tuple[dict[str, Any], str, str]:
    meta = raw.get("_PROFILE_") or {}
    data = {k: v for k, v in raw.items() if k != "_PROFILE_"}
    name = str(meta.get("name") or fallback_name)
    description = " ".join(str(meta.get("description") or "").split()) or "(no description)"
    return data, name, description


def _validate(data: dict[str, Any], path: Path) -> None:
    for section in SECTIONS:
        if section in data and not isinstance(data[section], dict):
            raise UserInputError(f"{path.name}: [{section}] must be a table, got {data[section]!r}")
    engine = data.get("ENGINE") or {}
    if "STRATEGY" in engine:
        try:
            engine["STRATEGY"] = Strategy.parse(engine["STRATEGY"]).value
        except ValueError as e:
            raise UserInputError(f"{path.name}: ENGINE.STRATEGY: {e}") from None
    for key in ("ENGINE.MAX_INDEX", "SWEEP.MAX_INDEX"):
        section, field_name = key.split(".")
        value = (data.get(section) or {}).get(field_name)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            raise UserInputError(f"{path.name}: {key} must be a non-negative integer, got {value!r}")


# --- Public API ------------------------------------------------------------


def list_all_profiles() -> list[str]:
    ensure_workspace_seeded()
    pdir = _profiles_dir()
    if not pdir.exists():
        return []
    return sorted(p.stem for p in pdir.glob("*.toml"))


def has_profile(name: str) -> bool:
    return _profile_path(name).exists()


def load_settings(name: str | None) -> Settings:
    """
    Load a profile by name (default 'default'), strip the [_PROFILE_] metadata,
    validate the engine keys and return Settings(data=..., name=..., description=..., _source=path).
    """
    if not name:
        name = "default"

    path = _profile_path(name)
    if not path.exists():
        raise UserInputError(f"Profile '{name}' not found at {path}")

    raw = _load_toml(path)
    data, resolved_name, description = _split_profile_data(raw, path.stem)
    _validate(data, path)
    return Settings(data=data, name=resolved_name, description=description, _source=path)
