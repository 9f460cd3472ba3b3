"""River window manager bring-up through its control binary."""

from __future__ import annotations

import shlex

from .config import CommandSet, RiverConfig
from .effects import EffectMachine, RunExternalCommand, RunNestedMachine

SET_FOCUS = "set-focused-tags"
SET_VIEW = "set-view-tags"
TOGGLE_FOCUS = "toggle-focused-tags"
TOGGLE_VIEW = "toggle-view-tags"

ALL_TAGS = (1 << 32) - 1

FLOATING_APPS = [
    ("app-id", "Rofi"),
    ("app-id", "Fuzzel"),
    ("app-id", "float"),
    ("app-id", "popup"),
    ("app-id", "pinentry-qt"),
    ("app-id", "pinentry-gtk"),
    ("title", "Picture-in-Picture"),
    ("app-id", "launcher"),
]
SERVER_SIDE_DECORATED = ["Rofi", "Fuzzel", "launcher"]


def _machine(rows: list[list[str]], control_binary: str) -> EffectMachine:
    machine = EffectMachine()
    for args in rows:
        machine.append(RunExternalCommand(control_binary, args), forgiving=False)
    return machine


def option_rows(river: RiverConfig) -> list[list[str]]:
    """Options, input devices, rules and key mappings, one argv each."""
    colors, apps = river.colors, river.apps
    pointer, lid = river.hardware.pointer.name, river.hardware.lid
    player = apps.player_ctl

    rows = [
        ["background-color", colors.background],
        ["border-color-focused", colors.border_focused],
        ["border-color-unfocused", colors.border_unfocused],
        ["border-color-urgent", colors.border_urgent],
        ["border-width", str(river.border_width)],
        ["input", pointer, "drag", "enabled"],
        ["input", pointer, "tap", "enabled"],
        ["input", pointer, "events", "enabled"],
        ["input", pointer, "natural-scroll", "enabled"],
        ["input", pointer, "scroll-method", "two-finger"],
        ["input", lid.name, "events", "enable"],
        ["map-switch", "normal", "lid", "open", "spawn", lid.on_lid_open],
        ["map-switch", "normal", "lid", "close", "spawn", lid.on_lid_close],
        ["set-repeat", "50", "300"],
    ]
    rows += [["float-filter-add", kind, value] for kind, value in FLOATING_APPS]
    rows += [["csd-filter-add", "app-id", app] for app in SERVER_SIDE_DECORATED]
    rows += [
        ["focus-follows-cursor", "normal"],
        ["set-cursor-warp", "no-output-change"],
        ["attach-mode", "bottom"],
        ["default-layout", "rivertile"],
        ["map-pointer", "normal", "Super", "BTN_LEFT", "move-view"],
        ["map-pointer", "normal", "Super", "BTN_RIGHT", "resize-view"],
        ["map", "normal", "Super", "Return", "spawn", apps.terminal],
        ["map", "normal", "Super", "D", "spawn", apps.launcher],
        ["map", "normal", "Super", "J", "focus-view", "next"],
        ["map", "normal", "Super", "K", "focus-view", "previous"],
        ["map", "normal", "Super", "space", "zoom"],
        ["map", "normal", "Super", "Q", "close"],
        ["map", "normal", "Super", "Period", "focus-output", "next"],
        ["map", "normal", "Super", "Comma", "focus-output", "previous"],
        ["map", "normal", "Super+Shift", "Period", "send-to-output", "next"],
        ["map", "normal", "Super+Shift", "Comma", "send-to-output", "previous"],
        ["map", "normal", "Super", "H", "send-layout-cmd", "rivertile", "main-ratio -0.05"],
        ["map", "normal", "Super", "L", "send-layout-cmd", "rivertile", "main-ratio +0.05"],
        ["map", "normal", "Super+Alt+Shift", "H", "resize", "horizontal -100"],
        ["map", "normal", "Super+Alt+Shift", "J", "resize", "vertical 100"],
        ["map", "normal", "Super+Alt+Shift", "K", "resize", "vertical -100"],
        ["map", "normal", "Super+Alt+Shift", "L", "resize", "horizontal 100"],
        ["map", "normal", "Super+Shift", "F", "toggle-float"],
        ["map", "normal", "Super", "F", "toggle-fullscreen"],
    ]
    for key, location in [("Up", "top"), ("Right", "right"), ("Down", "bottom"), ("Left", "left")]:
        rows.append([
            "map", "normal", "Super", key,
            "send-layout-cmd", "rivertile", f"main-location {location}",
        ])
    for key, command in [
        ("XF86AudioMedia", f"{player} play-pause"),
        ("XF86AudioPlay", f"{player} play-pause"),
        ("XF86AudioPrev", f"{player} previous"),
        ("XF86AudioNext", f"{player} next"),
        ("XF86AudioRaiseVolume", apps.volume_up),
        ("XF86AudioLowerVolume", apps.volume_down),
        ("XF86AudioMute", apps.volume_mute),
        ("XF86MonBrightnessUp", apps.brightness_up),
        ("XF86MonBrightnessDown", apps.brightness_down),
    ]:
        rows.append(["map", "normal", "None", key, "spawn", command])
    return rows


def tag_rows() -> list[list[str]]:
    """Tags 1..9 on the number keys, and every tag at once on 0."""
    rows = []
    for i in range(1, 10):
        tag = str(1 << (i - 1))
        rows += [
            ["map", "normal", "Super", str(i), SET_FOCUS, tag],
            ["map", "normal", "Super+Shift", str(i), SET_VIEW, tag],
            ["map", "normal", "Super+Control", str(i), TOGGLE_FOCUS, tag],
            ["map", "normal", "Super+Shift+Control", str(i), TOGGLE_VIEW, tag],
        ]
    rows += [
        ["map", "normal", "Super", "0", SET_FOCUS, str(ALL_TAGS)],
        ["map", "normal", "Super+Shift", "0", SET_VIEW, str(ALL_TAGS)],
    ]
    return rows


def startup_command(command: CommandSet) -> str:
    return shlex.join([command.executable, *command.args])


def run(river: RiverConfig, control_binary: str | None = None) -> EffectMachine:
    """Configuration, tag bindings, then the startup programs.

    Each group runs its commands concurrently; a failing startup program does
    not fail the bring-up.
    """
    control_binary = control_binary or river.control_binary
    startups = [["spawn", startup_command(c)] for c in river.startups]

    machine = EffectMachine()
    machine.append(RunNestedMachine(_machine(option_rows(river), control_binary)), forgiving=False)
    machine.append(RunNestedMachine(_machine(tag_rows(), control_binary)), forgiving=False)
    machine.append(RunNestedMachine(_machine(startups, control_binary)), forgiving=True)
    return machine
