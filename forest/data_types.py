"""
Data types mirroring YAML scenario structures and simulation results.

Configuration dataclasses are populated by loader.py from YAML files
(or built directly in code and checked with loader.validate_config).
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
from enum import Enum

from .constants import (
    DEFAULT_TREES_PER_ROW,
    DEFAULT_CANVAS_SIZE,
    BATCH_SIZE,
    MAX_STEPS,
    IMMIGRATION_INTERVAL_DEFAULT,
    RESOURCE_TOTAL,
    RESOURCE_SPLIT_DEFAULT,
    POACHING_COEF_DEFAULT,
    VARIANT_DRIFT,
)


# ============================================================================
# Species Definition
# ============================================================================

@dataclass(frozen=True)
class SpeciesDef:
    """A tree species and its display colour"""
    name: str
    color: str = "#808080"


# ============================================================================
# Scenario Configuration
# ============================================================================

@dataclass
class ForestConfig:
    """Complete configuration for one simulation run"""
    variant: str = VARIANT_DRIFT
    species: List[SpeciesDef] = field(default_factory=list)
    trees_per_row: int = DEFAULT_TREES_PER_ROW
    canvas_size: int = DEFAULT_CANVAS_SIZE
    batch_size: int = BATCH_SIZE
    max_steps: int = MAX_STEPS
    seed: Optional[int] = None
    immigration_interval: int = IMMIGRATION_INTERVAL_DEFAULT
    resource_total: int = RESOURCE_TOTAL
    resource_split: int = RESOURCE_SPLIT_DEFAULT
    poaching_coef: float = POACHING_COEF_DEFAULT
    timeline_interval: Optional[int] = None  # None = timeline off
    name: Optional[str] = None
    description: Optional[str] = None

    @property
    def species_names(self) -> List[str]:
        return [sp.name for sp in self.species]

    @property
    def color_map(self) -> Dict[str, str]:
        return {sp.name: sp.color for sp in self.species}


# ============================================================================
# Run State
# ============================================================================

class SimulationState(Enum):
    """Start/stop state machine states"""
    IDLE = "idle"        # ready to start; initial state and after reset
    RUNNING = "running"  # scheduler is invoking run_batch()
    PAUSED = "paused"    # stopped by user or step ceiling; resumable
    DONE = "done"        # one species extinct (competition only); terminal


class BatchStatus(Enum):
    """Outcome of a batch, reported to the scheduler"""
    CONTINUE = "continue"  # keep invoking
    CEILING = "ceiling"    # step ceiling reached; run paused, resumable
    EXTINCT = "extinct"    # a species died out; run done


# ============================================================================
# Results
# ============================================================================

@dataclass
class Replacement:
    """One accepted replacement event"""
    step: int  # step count at which the event happened (before increment)
    departing_idx: int
    old_species: int  # species index, or VACANT
    new_species: int  # species index, or VACANT when no candidate existed
    immigrant: bool = False
    draws: int = 1  # candidate draws (>1 only after rejections)

    @property
    def vacated(self) -> bool:
        return self.new_species < 0


@dataclass
class BatchResult:
    """Return information from ForestSimulation.run_batch()"""
    steps: int
    step_count: int
    status: BatchStatus
    state: SimulationState
    census: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict (enum values as strings)"""
        return {
            'steps': int(self.steps),
            'step_count': int(self.step_count),
            'status': self.status.value,
            'state': self.state.value,
            'census': {name: int(count) for name, count in self.census.items()},
        }
