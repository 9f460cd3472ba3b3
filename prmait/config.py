"""Layered config loading and merging."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta, timezone
from pathlib import Path
from typing import Mapping

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path("~/.config/prmait/config.yaml")
ENV_PREFIX = "PRMAIT_"


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

@dataclass
class JournalConfig:
    path: str | None = None
    file_name_format: str | None = None


@dataclass
class TaskConfig:
    path: str | None = None
    file_name_format: str | None = None


@dataclass
class Colors:
    background: str = "0x002b36"
    border_focused: str = "0x93a1a1"
    border_unfocused: str = "0x586e75"
    border_urgent: str = "0xdc322f"


@dataclass
class Pointer:
    name: str = "pointer"


@dataclass
class Lid:
    name: str = "switch"
    on_lid_close: str = "systemctl suspend"
    on_lid_open: str = "true"


@dataclass
class Hardware:
    pointer: Pointer = field(default_factory=Pointer)
    lid: Lid = field(default_factory=Lid)


@dataclass
class Apps:
    terminal: str = "foot"
    launcher: str = "fuzzel"
    player_ctl: str = "playerctl"
    volume_down: str = "pamixer -d 5"
    volume_up: str = "pamixer -i 5"
    volume_mute: str = "pamixer -t"
    brightness_up: str = "brightnessctl set +5%"
    brightness_down: str = "brightnessctl set 5%-"


@dataclass
class CommandSet:
    executable: str = ""
    args: list[str] = field(default_factory=list)


@dataclass
class RiverConfig:
    border_width: int = 2
    control_binary: str = "riverctl"
    colors: Colors = field(default_factory=Colors)
    hardware: Hardware = field(default_factory=Hardware)
    apps: Apps = field(default_factory=Apps)
    startups: list[CommandSet] = field(default_factory=list)


@dataclass
class Config:
    time_offset: list[int] | None = None  # [hours, minutes, seconds]
    git: str = "git"
    journal: JournalConfig = field(default_factory=JournalConfig)
    task: TaskConfig = field(default_factory=TaskConfig)
    river: RiverConfig = field(default_factory=RiverConfig)
    config_path: str = ""

    # -- accessors ----------------------------------------------------

    def journal_path(self) -> Path:
        if not self.journal.path:
            raise ConfigError("journal.path is not set")
        return Path(self.journal.path).expanduser().absolute()

    def task_path(self) -> Path:
        if not self.task.path:
            raise ConfigError("task.path is not set")
        return Path(self.task.path).expanduser().absolute()

    def journal_file_name_format(self) -> str:
        if not self.journal.file_name_format:
            raise ConfigError("journal.file_name_format is not set")
        return self.journal.file_name_format

    def task_file_name_format(self) -> str:
        if not self.task.file_name_format:
            raise ConfigError("task.file_name_format is not set")
        return self.task.file_name_format

    def utc_offset(self) -> timezone:
        """The configured ``time_offset`` as a fixed timezone."""
        if self.time_offset is None:
            raise ConfigError("time_offset is not set")
        try:
            hours, minutes, seconds = (int(v) for v in self.time_offset)
            return timezone(timedelta(hours=hours, minutes=minutes, seconds=seconds))
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                f"time_offset must be [hours, minutes, seconds], got {self.time_offset!r}"
            ) from exc


DEFAULT_CONFIG_TEMPLATE = """\
# prmait configuration
# Every value can be overridden with PRMAIT_<SECTION>__<KEY> variables,
# e.g. PRMAIT_TASK__PATH=~/notes/tasks

time_offset: [0, 0, 0]  # [hours, minutes, seconds] from UTC
git: git

journal:
  path: ~/notes/journal
  file_name_format: "%Y-%m-%d-%H-%M-%S.json"

task:
  path: ~/notes/tasks
  file_name_format: "%Y-%m-%d-%H-%M-%S.json"

river:
  border_width: 2
  control_binary: riverctl
  apps:
    terminal: foot
    launcher: fuzzel
  startups: []
  # - executable: waybar
  #   args: []
"""


# ---------------------------------------------------------------------------
# Deep merge
# ---------------------------------------------------------------------------

def deep_merge(base: dict, override: dict) -> dict:
    """Field-level deep merge. Lists are replaced, None values ignored."""
    result = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# ---------------------------------------------------------------------------
# Environment layer
# ---------------------------------------------------------------------------

def env_overrides(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> dict:
    """Nested dict from ``PRMAIT_A__B=value`` style variables.

    Values go through ``yaml.safe_load`` so numbers and lists keep their type.
    """
    data: dict = {}
    for name, raw in environ.items():
        if not name.startswith(prefix):
            continue
        keys = [k.lower() for k in name[len(prefix):].split("__") if k]
        if not keys:
            continue
        try:
            value = yaml.safe_load(raw) if raw else raw
        except yaml.YAMLError:
            value = raw
        node = data
        for key in keys[:-1]:
            node = node.setdefault(key, {})
            if not isinstance(node, dict):
                raise ConfigError(f"{name} conflicts with another variable")
        node[keys[-1]] = value
    return data


# ---------------------------------------------------------------------------
# Dict → Config mapping
# ---------------------------------------------------------------------------

def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _build_river(data: dict) -> RiverConfig:
    rc = RiverConfig()
    c = _section(data, "colors")
    colors = Colors(
        background=str(c.get("background", rc.colors.background)),
        border_focused=str(c.get("border_focused", rc.colors.border_focused)),
        border_unfocused=str(c.get("border_unfocused", rc.colors.border_unfocused)),
        border_urgent=str(c.get("border_urgent", rc.colors.border_urgent)),
    )

    h = _section(data, "hardware")
    p = _section(h, "pointer")
    lid = _section(h, "lid")
    hardware = Hardware(
        pointer=Pointer(name=p.get("name", rc.hardware.pointer.name)),
        lid=Lid(
            name=lid.get("name", rc.hardware.lid.name),
            on_lid_close=lid.get("on_lid_close", rc.hardware.lid.on_lid_close),
            on_lid_open=lid.get("on_lid_open", rc.hardware.lid.on_lid_open),
        ),
    )

    a = _section(data, "apps")
    apps = Apps(**{
        name: str(a.get(name, getattr(rc.apps, name)))
        for name in Apps.__dataclass_fields__
    })

    startups = []
    for item in data.get("startups") or []:
        if isinstance(item, str):
            startups.append(CommandSet(executable=item))
        elif isinstance(item, dict) and "executable" in item:
            startups.append(CommandSet(
                executable=str(item["executable"]),
                args=[str(x) for x in item.get("args") or []],
            ))
        else:
            raise ConfigError(f"invalid river startup command: {item!r}")

    try:
        border_width = int(data.get("border_width", rc.border_width))
    except (TypeError, ValueError) as exc:
        raise ConfigError("river.border_width must be an integer") from exc

    return RiverConfig(
        border_width=border_width,
        control_binary=data.get("control_binary", rc.control_binary),
        colors=colors,
        hardware=hardware,
        apps=apps,
        startups=startups,
    )


def _dict_to_config(data: dict, config_path: str) -> Config:
    cfg = Config(config_path=config_path)

    if "time_offset" in data:
        cfg.time_offset = data["time_offset"]
    if "git" in data:
        cfg.git = str(data["git"])

    j = _section(data, "journal")
    cfg.journal = JournalConfig(
        path=j.get("path"),
        file_name_format=j.get("file_name_format"),
    )

    t = _section(data, "task")
    cfg.task = TaskConfig(
        path=t.get("path"),
        file_name_format=t.get("file_name_format"),
    )

    cfg.river = _build_river(_section(data, "river"))
    return cfg


# ---------------------------------------------------------------------------
# Load config
# ---------------------------------------------------------------------------

def _read_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        parsed = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"could not read {path}: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigError(
            f"Invalid {path.name}: expected mapping, got {type(parsed).__name__}"
        )
    return parsed


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load and merge config from its layers.

    Priority (highest first):
      1. ``PRMAIT_*`` environment variables
      2. the config file (YAML, or JSON)
      3. built-in defaults
    """
    environ = os.environ if environ is None else environ
    config_path = Path(path or DEFAULT_CONFIG_PATH).expanduser()

    merged = deep_merge(_read_file(config_path), env_overrides(environ))
    return _dict_to_config(merged, str(config_path))


def editor_from_env(environ: Mapping[str, str] | None = None) -> str:
    """The editor command line from ``EDITOR``."""
    environ = os.environ if environ is None else environ
    editor = environ.get("EDITOR", "").strip()
    if not editor:
        raise ConfigError("the EDITOR environment variable is not set")
    return editor
