from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Dict, List, Tuple, TypeAlias
import tomllib

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from shortgate.exceptions import ConfigError
from shortgate.model import ForbiddenCallSpec

DEFAULT_CONFIG_NAME = "shortgate.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

DEFAULT_FORBIDDEN_CALLS: Tuple[str, ...] = ("time.sleep", "testing.short")
DEFAULT_EXCLUDE_DIRS: Tuple[str, ...] = (
    ".git",
    ".tox",
    ".venv",
    "__pycache__",
    "node_modules",
    "venv",
)


class LayoutSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    test_suffix: str = "_test.py"
    integration_suffix: str = "_integ_test.py"
    e2e_dir: str = "e2e"
    integration_dir: str = "integ"

    @field_validator("test_suffix", "integration_suffix", "e2e_dir", "integration_dir")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class CheckSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    forbidden_calls: Tuple[str, ...] = DEFAULT_FORBIDDEN_CALLS
    short_predicate: str = "testing.short"
    skip_calls: Tuple[str, ...] = ("pytest.skip",)
    context_skip_methods: Tuple[str, ...] = ("skipTest",)
    test_prefix: str = "test"

    @field_validator("forbidden_calls", "skip_calls", mode="before")
    @classmethod
    def _normalize_calls(cls, value: TomlValue) -> Tuple[str, ...]:
        names = _normalize_name_list(value)
        for name in names:
            _require_qualified(name)
        return tuple(dict.fromkeys(names))

    @field_validator("context_skip_methods", mode="before")
    @classmethod
    def _normalize_methods(cls, value: TomlValue) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(_normalize_name_list(value)))

    @field_validator("short_predicate")
    @classmethod
    def _qualified_predicate(cls, value: str) -> str:
        return _require_qualified(value).qualified_name

    @field_validator("test_prefix")
    @classmethod
    def _prefix(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    def forbidden_specs(self) -> Tuple[ForbiddenCallSpec, ...]:
        return tuple(ForbiddenCallSpec.parse(name) for name in self.forbidden_calls)

    def predicate_spec(self) -> ForbiddenCallSpec:
        return ForbiddenCallSpec.parse(self.short_predicate)

    def skip_specs(self) -> Tuple[ForbiddenCallSpec, ...]:
        return tuple(ForbiddenCallSpec.parse(name) for name in self.skip_calls)


class WhitelistSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    paths: Tuple[str, ...] = ()

    @field_validator("paths", mode="before")
    @classmethod
    def _normalize_paths(cls, value: TomlValue) -> Tuple[str, ...]:
        # Paths may legitimately contain commas, so they are not split.
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("expected a list of paths")
        return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


class WalkSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    exclude_dirs: Tuple[str, ...] = DEFAULT_EXCLUDE_DIRS

    @field_validator("exclude_dirs", mode="before")
    @classmethod
    def _normalize_dirs(cls, value: TomlValue) -> Tuple[str, ...]:
        return tuple(_normalize_name_list(value))


class FixSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    skip_reason: str = "slow test: skipped in short mode"
    # Import statement to add when a guard needs a namespace the module lacks.
    imports: Dict[str, str] = {
        "testing": "from shortgate import testing",
        "pytest": "import pytest",
    }


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    layout: LayoutSettings = LayoutSettings()
    checks: CheckSettings = CheckSettings()
    whitelist: WhitelistSettings = WhitelistSettings()
    walk: WalkSettings = WalkSettings()
    fix: FixSettings = FixSettings()
    root: Path = Path(".")


def _load_toml(path: Path, *, required: bool) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if required:
            raise ConfigError("config file not found", path=str(path)) from None
        return {}
    except OSError as exc:
        raise ConfigError(f"unable to read config: {exc}", path=str(path)) from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML: {exc}", path=str(path)) from exc
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        return _load_toml(base / DEFAULT_CONFIG_NAME, required=False)
    return _load_toml(config_path, required=True)


def load_settings(root: Path | None = None, config_path: Path | None = None) -> Settings:
    """Build validated settings from compiled-in defaults and an optional TOML file.

    Relative whitelist entries resolve against the directory holding the config
    file, or ``root`` when no explicit file is given.
    """
    data = load_config(root=root, config_path=config_path)
    if config_path is not None:
        base = config_path.resolve().parent
    else:
        base = (root if root is not None else Path.cwd()).resolve()
    return settings_from_table(data, base=base, source=str(config_path or DEFAULT_CONFIG_NAME))


def settings_from_table(data: TomlTable, *, base: Path, source: str = "<config>") -> Settings:
    payload: dict[str, object] = {
        key: value for key, value in data.items() if isinstance(value, dict)
    }
    unknown = sorted(key for key, value in data.items() if not isinstance(value, dict))
    if unknown:
        raise ConfigError(f"unexpected top-level keys: {', '.join(unknown)}", path=source)
    payload["root"] = base
    try:
        return Settings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(_validation_summary(exc), path=source) from exc


def _require_qualified(name: str) -> ForbiddenCallSpec:
    try:
        return ForbiddenCallSpec.parse(name)
    except ConfigError as exc:
        raise ValueError(str(exc)) from exc


def _validation_summary(exc: ValidationError) -> str:
    parts: List[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "invalid configuration"


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]
