"""Tests for the display-free parts of the UI: stepping, reset, counts and the control dock."""

from __future__ import annotations

import random

from sim import Beaker, ParticleKind, SolutionRegion
from src.ui.controllers import SimulationController, population_counts
from src.ui.panels import SPEED_STEPS, ControlDockPanel


LABELS = {
    "Proton": "Proton (H+)",
    "StrongConjugateBase": "Strong base",
    "WeakConjugateBase": "Weak base",
}


def make_beaker(clock, seed: int = 1) -> Beaker:
    return Beaker(SolutionRegion(x=0.0, y=0.0, width=300.0, height=200.0), clock=clock, rng=random.Random(seed))


def make_dock(speed_changes, actions=None, speed: float = 1.0) -> ControlDockPanel:
    actions = actions if actions is not None else []
    return ControlDockPanel(
        rect=None,
        font=None,
        particle_kinds=[kind.value for kind in ParticleKind],
        on_toggle_run=lambda: actions.append("run"),
        on_step=lambda: actions.append("step"),
        on_reset=lambda: actions.append("reset"),
        on_add=lambda kind: actions.append(f"add {kind}"),
        on_remove=lambda kind: actions.append(f"remove {kind}"),
        on_speed_change=speed_changes.append,
        speed_multiplier=speed,
    )


def test_update_steps_by_speed_multiplier(clock) -> None:
    beaker = make_beaker(clock)
    controller = SimulationController(beaker, is_running=True, speed_multiplier=0.5)
    controller.update()
    assert beaker.current_step == 0
    controller.update()
    assert beaker.current_step == 1

    controller.speed_multiplier = 2.0
    controller.update()
    assert beaker.current_step == 3


def test_paused_controller_does_not_step(clock) -> None:
    beaker = make_beaker(clock)
    controller = SimulationController(beaker)
    controller.update()
    assert beaker.current_step == 0
    controller.step(2)
    assert beaker.current_step == 2


def test_reset_keeps_run_state_and_speed(clock) -> None:
    first = make_beaker(clock)
    controller = SimulationController(first, is_running=True, speed_multiplier=0.5)
    controller.update()
    assert controller._step_accumulator == 0.5

    second = make_beaker(clock, seed=2)
    controller.reset(second)
    assert controller.beaker is second
    assert controller.is_running
    assert controller.speed_multiplier == 0.5
    assert controller._step_accumulator == 0.0

    controller.update()
    controller.update()
    assert second.current_step == 1
    assert first.current_step == 0


def test_population_counts_include_absent_kinds_as_zero(clock) -> None:
    beaker = make_beaker(clock)
    beaker.add_particles(ParticleKind.PROTON, 3)
    counts = population_counts(beaker.snapshot(), LABELS)
    assert counts == {
        "Proton (H+)": 3,
        "Strong base": 0,
        "Weak base": 0,
        "Bonded pairs": 0,
    }


def test_population_counts_report_bonded_pairs(clock) -> None:
    beaker = make_beaker(clock)
    (base,) = beaker.add_particles(ParticleKind.WEAK_CONJUGATE_BASE, 1)
    protons = beaker.add_particles(ParticleKind.PROTON, 2)
    assert base.capture(protons[0], now_ms=clock(), fraction=0.5)

    counts = population_counts(beaker.snapshot(), {})
    assert counts["Proton"] == 2
    assert counts["WeakConjugateBase"] == 1
    assert counts["StrongConjugateBase"] == 0
    assert counts["Bonded pairs"] == 1
    assert all(isinstance(value, int) for value in counts.values())


def test_dock_speed_buttons_move_one_notch_and_clamp() -> None:
    changes = []
    dock = make_dock(changes)
    dock.dispatch("faster")
    dock.dispatch("faster")
    dock.dispatch("faster")
    assert dock.speed_multiplier == SPEED_STEPS[-1]
    assert changes == [2.0, 4.0, 4.0]

    changes.clear()
    for _ in range(len(SPEED_STEPS) + 1):
        dock.dispatch("slower")
    assert dock.speed_multiplier == SPEED_STEPS[0]
    assert changes[-1] == 0.25


def test_dock_speed_snaps_from_off_step_value() -> None:
    changes = []
    dock = make_dock(changes, speed=1.3)
    dock.dispatch("slower")
    assert changes == [0.5]


def test_dock_routes_buttons_to_callbacks() -> None:
    actions = []
    dock = make_dock([], actions)
    for key in ("run", "step", "reset", "add:Proton", "remove:WeakConjugateBase", "unknown"):
        dock.dispatch(key)
    assert actions == ["run", "step", "reset", "add Proton", "remove WeakConjugateBase"]
