"""
Test the four replacement rules.

Scripted random sources replay exact draw sequences for the hand-worked
scenarios; seeded generators drive the long-run property checks.
"""

import sys
import numpy as np
import pytest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from forest import rules
from forest.forest import Forest
from forest.simulation import ForestSimulation
from forest.data_types import ForestConfig, SpeciesDef
from forest.loader import RejectionLimitError
from forest.constants import VACANT, NEIGHBORHOOD_CENTER
from forest.tests.scripted_rng import ScriptedRng


AB = [SpeciesDef("A", "#ff0000"), SpeciesDef("B", "#0000ff")]
OLIVE_ORANGE = [SpeciesDef("olive", "#808000"), SpeciesDef("orange", "#FFA500")]
TEN = [SpeciesDef(f"sp{i}", "#808080") for i in range(10)]


def make_sim(variant, species, labels=None, side=5, rng=None, **overrides):
    """Build a simulation, optionally over an explicit layout and scripted rng."""
    config = ForestConfig(variant=variant, species=species, trees_per_row=side, seed=11, **overrides)
    forest = None
    if labels is not None:
        forest = Forest.from_labels(side, species, labels)
    return ForestSimulation(config, rng=rng, forest=forest)


def census_invariant(sim):
    forest = sim.forest
    assert forest.census.sum() + forest.vacant_count() == forest.N
    assert np.array_equal(forest.census, forest.recount())
    assert np.all(forest.census >= 0)


# ============================================================================
# Plain drift
# ============================================================================

def test_drift_scripted_step():
    """5x5, {A:13, B:12}: B at cell 0 replaced by the A at cell 12"""
    labels = ["A" if i % 2 == 0 else "B" for i in range(25)]
    labels[0], labels[1] = "B", "A"
    sim = make_sim("drift", AB, labels, rng=ScriptedRng(integers=[0, 12]))

    assert sim.forest.census_dict() == {"A": 13, "B": 12}

    event = sim.step()

    print(f"[OK] Drift step: {event}")
    assert sim.forest.census_dict() == {"A": 14, "B": 11}
    assert sim.forest.name_at(0) == "A"
    assert event.departing_idx == 0
    assert event.old_species == 1 and event.new_species == 0
    assert sim.step_count == 1
    assert sim.rng.exhausted


def test_drift_same_species_is_noop_on_census():
    labels = ["A"] * 25
    sim = make_sim("drift", AB, labels, rng=ScriptedRng(integers=[3, 17]))
    sim.step()

    assert sim.forest.census_dict() == {"A": 25, "B": 0}
    assert sim.step_count == 1


def test_drift_census_invariant_long_run():
    sim = make_sim("drift", TEN, side=10)
    for _ in range(5000):
        sim.step()
    census_invariant(sim)
    assert sim.step_count == 5000


# ============================================================================
# Immigration
# ============================================================================

def test_immigrant_revives_extinct_species():
    """Step 0 is an immigration step: arrival comes from the species list"""
    sim = make_sim("immigration", AB, ["A"] * 25, rng=ScriptedRng(integers=[3, 1]))

    event = sim.step()

    assert event.immigrant
    assert sim.forest.census_dict() == {"A": 24, "B": 1}
    assert sim.forest.name_at(3) == "B"


def test_non_immigration_step_copies_living_tree():
    labels = ["A"] * 25
    labels[9] = "B"
    sim = make_sim("immigration", AB, labels, rng=ScriptedRng(integers=[2, 9]))
    sim.step_count = 7  # not a multiple of 100

    event = sim.step()

    assert not event.immigrant
    assert sim.forest.name_at(2) == "B"
    assert sim.step_count == 8


def test_immigration_only_on_interval_steps():
    """Immigrant arrivals happen exactly when step % interval == 0"""
    sim = make_sim("immigration", TEN, side=10, immigration_interval=10)

    immigrant_steps = []
    for _ in range(2000):
        event = sim.step()
        if event.immigrant:
            immigrant_steps.append(event.step)

    print(f"[OK] {len(immigrant_steps)} immigrants in 2000 steps")
    assert immigrant_steps == list(range(0, 2000, 10))
    census_invariant(sim)


def test_interval_one_makes_every_step_immigration():
    sim = make_sim("immigration", TEN, side=10, immigration_interval=1)
    events = [sim.step() for _ in range(500)]
    assert all(e.immigrant for e in events)
    census_invariant(sim)


def test_runtime_interval_change_takes_effect_next_step():
    sim = make_sim("immigration", TEN, side=10)
    sim.step_count = 200
    sim.set_immigration_interval(1000)
    assert not sim.step().immigrant  # 200 % 1000 != 0


# ============================================================================
# Two-resource competition
# ============================================================================

def test_pressure_factors():
    f0, f1 = rules.pressure_factors(np.array([40, 60]), (50.0, 50.0), 0.25)
    assert f0 == pytest.approx(50.0 / 55.0)
    assert f1 == pytest.approx(50.0 / 70.0)


def test_competition_rejections_do_not_advance_clock():
    """Two rejected draws then an acceptance: one step, three draws"""
    labels = ["olive"] * 13 + ["orange"] * 12
    # Split 1:5 -> olive factor 1/16, orange factor 5/15.25
    sim = make_sim(
        "coexist", OLIVE_ORANGE, labels,
        rng=ScriptedRng(integers=[0, 1, 2, 20], reals=[0.95, 0.95, 0.0]),
        resource_total=6, resource_split=1
    )

    event = sim.step()

    print(f"[OK] Accepted after {event.draws} draws")
    assert event.draws == 3
    assert sim.step_count == 1
    assert sim.forest.name_at(0) == "orange"
    assert sim.forest.census_dict() == {"olive": 12, "orange": 13}
    assert sim.rng.exhausted


def test_competition_rejection_cap(monkeypatch):
    """A forest nobody can reproduce into fails loudly instead of spinning"""
    monkeypatch.setattr(rules, "MAX_REJECTION_DRAWS", 3)
    sim = make_sim(
        "coexist", OLIVE_ORANGE, ["olive"] * 25,
        rng=ScriptedRng(integers=[0, 1, 2, 3], reals=[0.99, 0.99, 0.99]),
        resource_total=6, resource_split=1
    )

    with pytest.raises(RejectionLimitError):
        sim.step()
    assert sim.step_count == 0
    assert sim.forest.census_dict() == {"olive": 25, "orange": 0}


def test_competition_runs_to_extinction():
    """A lopsided split drives the weaker species out"""
    sim = make_sim("coexist", OLIVE_ORANGE, side=5, resource_total=6, resource_split=1)

    steps = 0
    while np.all(sim.forest.census > 0) and steps < 100000:
        factors = rules.pressure_factors(sim.forest.census, sim.capacities, sim.poaching_coef)
        assert all(0.0 < f <= 1.0 for f in factors)
        event = sim.step()
        assert event.draws >= 1
        steps += 1
        census_invariant(sim)

    print(f"[OK] Extinction after {steps} steps: {sim.forest.census_dict()}")
    assert sim.step_count == steps
    assert np.any(sim.forest.census == 0)


# ============================================================================
# Neighbourhood exclusion
# ============================================================================

def test_socialdx_no_candidate_leaves_vacancy():
    """3x3 torus with 2 species: every species is in every neighbourhood"""
    labels = ["A", "B", "A", "B", "A", "B", "A", "B", "A"]
    sim = make_sim("socialdx", AB, labels, side=3, rng=ScriptedRng(integers=[4, 0]))

    event = sim.step()

    print(f"[OK] Centre vacated: {sim.forest.to_dict()['labels']}")
    assert event.vacated
    assert sim.forest.species[4] == VACANT
    assert sim.forest.census_dict() == {"A": 4, "B": 4}
    assert sim.forest.vacant_count() == 1
    assert sim.step_count == 1
    census_invariant(sim)


def test_socialdx_scan_wraps_and_skips_excluded():
    """Scan starts near the end, wraps past index 0, finds the only outsider"""
    s = [SpeciesDef(n) for n in ("A", "B", "C")]
    labels = ["A", "B"] * 8
    labels[10] = "C"  # col 2, row 2: outside cell 0's neighbourhood on a 4x4 torus
    sim = make_sim("socialdx", s, labels, side=4, rng=ScriptedRng(integers=[0, 14]))

    event = sim.step()

    assert sim.forest.name_at(0) == "C"
    assert event.new_species == 2
    assert sim.forest.census_dict() == {"A": 6, "B": 8, "C": 2}


def test_socialdx_refills_vacant_cell():
    """A vacant departing cell has nothing to decrement"""
    s = [SpeciesDef(n) for n in ("A", "B", "C")]
    labels = ["A", "B"] * 8
    labels[0] = None
    labels[10] = "C"
    sim = make_sim("socialdx", s, labels, side=4, rng=ScriptedRng(integers=[0, 0]))

    event = sim.step()

    assert event.old_species == VACANT
    assert sim.forest.name_at(0) == "C"
    assert sim.forest.census_dict() == {"A": 6, "B": 8, "C": 2}
    assert sim.forest.vacant_count() == 0


def test_socialdx_arrival_never_matches_neighbors():
    sim = make_sim("socialdx", TEN, side=10)
    ring_slots = [i for i in range(9) if i != NEIGHBORHOOD_CENTER]

    for _ in range(3000):
        event = sim.step()
        if event.vacated:
            continue
        ring = sim.forest.neighbors[event.departing_idx, ring_slots]
        assert event.new_species not in sim.forest.species[ring].tolist()

    census_invariant(sim)


def test_socialdx_conflicts_never_increase():
    sim = make_sim("socialdx", TEN, side=10)
    conflicts = sim.forest.count_conflicts()
    start = conflicts

    for _ in range(1000):
        sim.step()
        now = sim.forest.count_conflicts()
        assert now <= conflicts
        conflicts = now

    print(f"[OK] Conflicts {start} -> {conflicts}")
