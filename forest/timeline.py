"""
Census timeline.

Optional append-only record of species abundance over time, for graphs of
fluctuations, extinctions, and monodominance. Samples are taken every
``interval`` steps; there is no bound on length and no file format.
"""

import numpy as np
from typing import Dict, List, Sequence


class Timeline:
    """Per-species census snapshots plus species-present counts."""

    def __init__(self, species_names: Sequence[str], interval: int):
        self.interval = interval
        self.names: List[str] = list(species_names)
        self.steps: List[int] = []
        self.counts: Dict[str, List[int]] = {name: [] for name in self.names}
        self.species_present: List[int] = []

    def __len__(self) -> int:
        return len(self.steps)

    def due(self, step: int) -> bool:
        return step % self.interval == 0

    def sample(self, step: int, census: np.ndarray):
        """Append one snapshot of the census taken at ``step``."""
        self.steps.append(int(step))
        present = 0
        for name, count in zip(self.names, census):
            self.counts[name].append(int(count))
            if count > 0:
                present += 1
        self.species_present.append(present)

    def to_dict(self) -> dict:
        return {
            'interval': self.interval,
            'steps': list(self.steps),
            'counts': {name: list(values) for name, values in self.counts.items()},
            'species_present': list(self.species_present),
        }
