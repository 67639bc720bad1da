"""
Replacement rules.

Each rule performs exactly one accepted replacement on the simulation
context it is given: pick a departing tree, decide the arriving species,
relabel the cell (which keeps the census in step), and return a Replacement
record. Advancing the step count is the caller's job (ForestSimulation.step),
so a rule is charged exactly one step however many candidates it rejects.

Random draws (in order) per rule:
    drift:             departing cell, source cell
    immigration:       departing cell, then source cell or immigrant species
    competition:       departing cell, then (candidate cell, coin) pairs
    social_distancing: departing cell, scan start index
"""

from typing import Callable, Dict

from .data_types import Replacement
from .loader import RejectionLimitError
from .rng import flip_biased_coin
from .constants import (
    VACANT,
    MAX_REJECTION_DRAWS,
    VARIANT_DRIFT,
    VARIANT_IMMIGRATION,
    VARIANT_COEXIST,
    VARIANT_SOCIALDX,
)


def drift(sim) -> Replacement:
    """
    Pure neutral drift.

    The arriving species is copied from a second tree chosen uniformly at
    random, so each species reproduces in proportion to its abundance.
    """
    forest = sim.forest
    departing = int(sim.rng.integers(forest.N))
    source = int(sim.rng.integers(forest.N))
    arriving = int(forest.species[source])

    old = forest.relabel(departing, arriving)
    return Replacement(sim.step_count, departing, old, arriving)


def immigration(sim) -> Replacement:
    """
    Drift with a migrant every ``immigration_interval`` steps.

    On steps that are a multiple of the interval the arriving species comes
    from the full species set rather than from a living tree, which is how
    an extinct species can reappear.
    """
    forest = sim.forest
    departing = int(sim.rng.integers(forest.N))

    immigrant = sim.step_count % sim.immigration_interval == 0
    if immigrant:
        arriving = int(sim.rng.integers(len(forest.species_defs)))
    else:
        arriving = int(forest.species[int(sim.rng.integers(forest.N))])

    old = forest.relabel(departing, arriving)
    return Replacement(sim.step_count, departing, old, arriving, immigrant=immigrant)


def pressure_factors(census, capacities, poaching_coef: float):
    """
    Per-species acceptance probability for the two-resource model.

    Each species lives on its own resource plus a poached fraction of the
    other's: factor_i = capacity_i / (n_i + poaching_coef * n_j).
    """
    n0, n1 = int(census[0]), int(census[1])
    f0 = capacities[0] / (n0 + poaching_coef * n1) if n0 + poaching_coef * n1 > 0 else 1.0
    f1 = capacities[1] / (n1 + poaching_coef * n0) if n1 + poaching_coef * n0 > 0 else 1.0
    return f0, f1


def competition(sim) -> Replacement:
    """
    Two species competing for two resources.

    Candidates are drawn uniformly and accepted with probability equal to
    their species' pressure factor; rejected draws cost nothing on the clock.

    Raises:
        RejectionLimitError: No candidate accepted within MAX_REJECTION_DRAWS
    """
    forest = sim.forest
    factors = pressure_factors(forest.census, sim.capacities, sim.poaching_coef)
    departing = int(sim.rng.integers(forest.N))

    for draws in range(1, MAX_REJECTION_DRAWS + 1):
        candidate = int(forest.species[int(sim.rng.integers(forest.N))])
        if flip_biased_coin(sim.rng, factors[candidate]):
            old = forest.relabel(departing, candidate)
            return Replacement(sim.step_count, departing, old, candidate, draws=draws)

    raise RejectionLimitError(
        f"No replacement accepted after {MAX_REJECTION_DRAWS} draws "
        f"(pressure factors {factors[0]:.3g}, {factors[1]:.3g})"
    )


def social_distancing(sim) -> Replacement:
    """
    Neighbourhood exclusion.

    The replacement may not belong to any species already present in the
    departing tree's 3x3 neighbourhood (itself included). Candidates are
    scanned in circular order from a random start; if the whole forest holds
    no eligible species the cell is left vacant.
    """
    forest = sim.forest
    departing = int(sim.rng.integers(forest.N))
    excluded = forest.neighborhood_species(departing)

    start = int(sim.rng.integers(forest.N))
    labels = forest.species
    arriving = VACANT
    for i in range(forest.N):
        label = int(labels[(start + i) % forest.N])
        if label != VACANT and label not in excluded:
            arriving = label
            break

    old = forest.relabel(departing, arriving)
    return Replacement(sim.step_count, departing, old, arriving)


RULES: Dict[str, Callable] = {
    VARIANT_DRIFT: drift,
    VARIANT_IMMIGRATION: immigration,
    VARIANT_COEXIST: competition,
    VARIANT_SOCIALDX: social_distancing,
}
