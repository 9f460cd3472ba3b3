"""Tests for the river bring-up machine."""

import pytest

from prmait import river
from prmait.config import CommandSet, RiverConfig
from prmait.effects import RunNestedMachine


def test_three_nested_groups():
    """Options and tags are fatal, startup programs are forgiving."""
    machine = river.run(RiverConfig())
    effects = list(machine)
    assert len(effects) == 3
    assert all(isinstance(e.description, RunNestedMachine) for e in effects)
    assert [e.forgiving for e in effects] == [False, False, True]


def test_tag_bindings():
    """Four bindings per tag 1..9, plus all tags on 0."""
    rows = river.tag_rows()
    assert len(rows) == 9 * 4 + 2
    assert ["map", "normal", "Super", "1", "set-focused-tags", "1"] in rows
    assert ["map", "normal", "Super+Shift+Control", "9", "toggle-view-tags", "256"] in rows
    assert ["map", "normal", "Super", "0", "set-focused-tags", "4294967295"] in rows
    assert ["map", "normal", "Super+Shift", "0", "set-view-tags", "4294967295"] in rows


def test_options_use_config():
    config = RiverConfig(border_width=5)
    config.apps.terminal = "kitty"
    config.hardware.pointer.name = "touchpad-1"
    rows = river.option_rows(config)
    assert ["border-width", "5"] in rows
    assert ["map", "normal", "Super", "Return", "spawn", "kitty"] in rows
    assert ["input", "touchpad-1", "tap", "enabled"] in rows
    assert ["map", "normal", "None", "XF86AudioPlay", "spawn", "playerctl play-pause"] in rows


def test_control_binary_and_startups():
    config = RiverConfig(
        control_binary="/opt/riverctl",
        startups=[CommandSet("waybar"), CommandSet("swaybg", ["-i", "my bg.png"])],
    )
    groups = [e.description.machine for e in river.run(config)]
    startups = groups[2].descriptions
    assert [d.args for d in startups] == [
        ("spawn", "waybar"),
        ("spawn", "swaybg -i 'my bg.png'"),
    ]
    assert {d.program for g in groups for d in g.descriptions} == {"/opt/riverctl"}


@pytest.mark.asyncio
async def test_startup_failure_is_forgiven(executor, runner):
    """A startup program that fails does not fail the bring-up."""
    runner.fail = {"waybar": 1}
    config = RiverConfig(startups=[CommandSet("waybar")])

    result = await river.run(config).run_sequential(executor)

    assert len(result.forgiven) == 1
    assert result.applied == 2
    assert sum(1 for argv in runner.argvs if argv[0] == "riverctl") == (
        len(river.option_rows(config)) + len(river.tag_rows()) + 1
    )
