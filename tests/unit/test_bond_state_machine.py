"""Tests for the conjugate base capture/release timers."""

from __future__ import annotations

import pytest

from sim import BondPhase, Proton, ReactionContext, StrongConjugateBase, WeakConjugateBase, base_captures_proton


def make_pair(depth_base: float = 2.0, depth_proton: float = 1.0):
    base = StrongConjugateBase(id=1, position=(50.0, 50.0), depth=depth_base)
    proton = Proton(id=2, position=(55.0, 50.0), depth=depth_proton)
    return base, proton


def test_capture_sets_release_time_and_links_both_sides() -> None:
    base, proton = make_pair()
    assert base.capture(proton, now_ms=1000.0, fraction=0.25)
    # 1000 + 5000 + 10000 * 0.25
    assert base.bond.release_after == pytest.approx(8500.0)
    assert base.bond.proton is proton
    assert proton.bonded_base is base
    assert base.bond.restore_depth == 1.0
    assert proton.depth == pytest.approx(2.5)
    assert base.bond_phase(1000.0) is BondPhase.BONDED


def test_release_delay_is_offset_plus_scaled_spread() -> None:
    base = WeakConjugateBase(id=1, position=(0.0, 0.0))
    base.bond.release_after_range = (300.0, 100.0)
    proton = Proton(id=2, position=(0.0, 0.0))
    base.capture(proton, now_ms=0.0, fraction=1.0)
    # Not clamped to [300, 100]: 300 + 100 * 1.0
    assert base.bond.release_after == pytest.approx(400.0)


def test_already_bonded_particles_do_not_rebond() -> None:
    base, proton = make_pair()
    other_base = StrongConjugateBase(id=3, position=(50.0, 50.0))
    other_proton = Proton(id=4, position=(50.0, 50.0))
    base.capture(proton, now_ms=0.0, fraction=0.0)

    assert not other_base.capture(proton, now_ms=10.0, fraction=0.0)
    assert not base.capture(other_proton, now_ms=10.0, fraction=0.0)
    assert proton.bonded_base is base
    assert other_base.bond.proton is None
    assert other_proton.bonded_base is None


def test_reaction_handler_draws_fraction_only_when_capturing(fixed_random) -> None:
    base, proton = make_pair()
    fixed_random.value = 0.5
    base_captures_proton(base, proton, ReactionContext(now_ms=0.0, random=fixed_random))
    assert base.bond.release_after == pytest.approx(10000.0)

    other = StrongConjugateBase(id=3, position=(50.0, 50.0))
    base_captures_proton(other, proton, ReactionContext(now_ms=5.0, random=fixed_random))
    assert other.bond.proton is None


def test_bonded_update_pins_proton_to_offset() -> None:
    base, proton = make_pair()
    base.capture(proton, now_ms=0.0, fraction=0.0)
    base.position = (70.0, 30.0)
    base.update(100.0)
    assert proton.position == (80.0, 20.0)


def test_releasing_phase_lets_proton_drift_but_keeps_bond() -> None:
    base, proton = make_pair()
    base.capture(proton, now_ms=0.0, fraction=0.0)
    release_at = base.bond.release_after
    proton.position = (5.0, 5.0)
    base.update(release_at)
    assert proton.position == (5.0, 5.0)
    assert base.bond_phase(release_at) is BondPhase.RELEASING
    assert proton.bonded_base is base
    assert not StrongConjugateBase(id=9, position=(5.0, 5.0)).capture(proton, release_at, 0.0)


def test_cooldown_end_frees_both_sides_and_restores_depth() -> None:
    base, proton = make_pair()
    base.capture(proton, now_ms=0.0, fraction=0.0)
    free_at = base.bond.release_after + base.bond.post_release_duration
    base.update(free_at - 1.0)
    assert proton.bonded_base is base
    base.update(free_at)
    assert base.bond.proton is None
    assert base.bond.release_after is None
    assert base.bond.restore_depth is None
    assert proton.bonded_base is None
    assert proton.depth == 1.0
    assert base.bond_phase(free_at) is BondPhase.FREE


def test_detach_from_proton_side_clears_base() -> None:
    base, proton = make_pair()
    base.capture(proton, now_ms=0.0, fraction=0.0)
    proton.detach()
    assert base.bond.proton is None
    assert proton.bonded_base is None
    assert proton.depth == 1.0


def test_update_without_bond_is_noop() -> None:
    base = WeakConjugateBase(id=1, position=(1.0, 2.0))
    base.update(123.0)
    assert base.bond_phase(123.0) is BondPhase.FREE
