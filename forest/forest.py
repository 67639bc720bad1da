"""
Forest grid and census.

The forest is a square grid of N = side^2 trees stored as structure-of-arrays
(species labels, columns, rows, birthdates) with a row-major linear index.
The census is a per-species count array kept in step with the labels by
relabel(); it is never recomputed from scratch during a run.

For neighbourhood-aware rules each cell's 3x3 toroidal neighbourhood (itself
plus 8 wraparound neighbours) is precomputed once as an (N, 9) index table.
"""

import numpy as np
from typing import Dict, Iterator, List, Optional, Sequence, Set, Union

from .tree import Tree
from .data_types import SpeciesDef
from .loader import ConfigError
from .constants import (
    DEFAULT_CANVAS_SIZE,
    VACANT,
    VACANT_COLOR,
    NEIGHBORHOOD_CENTER,
)

# Column offset outer, row offset inner; entry 4 is the cell itself
_NEIGHBOR_DCOL = np.array([-1, -1, -1, 0, 0, 0, 1, 1, 1], dtype=np.int64)
_NEIGHBOR_DROW = np.array([-1, 0, 1, -1, 0, 1, -1, 0, 1], dtype=np.int64)

Label = Union[int, str, None]


class Forest:
    """
    Square grid of trees with an incrementally maintained census.

    Attributes:
        side: Trees along one edge
        N: Total trees (side^2)
        species_defs: Ordered species set; a label is an index into it
        species: (N,) int16 array of labels, VACANT (-1) for empty cells
        census: (S,) int64 array of live counts per species
        neighbors: (N, 9) read-only index table, or None until built
    """

    def __init__(
        self,
        trees_per_row: int,
        species: Sequence[SpeciesDef],
        rng,
        canvas_size: int = DEFAULT_CANVAS_SIZE,
        neighborhoods: bool = False
    ):
        """
        Plant a forest with every tree's species drawn uniformly at random.

        Args:
            trees_per_row: Edge length of the square grid
            species: Ordered species set (at least one)
            rng: numpy Generator used for the initial layout
            canvas_size: Canvas edge in pixels (disk geometry only)
            neighborhoods: Precompute toroidal neighbourhoods now
        """
        self._init_geometry(trees_per_row, species, canvas_size)
        labels = rng.integers(0, len(self.species_defs), size=self.N)
        self._plant(np.asarray(labels, dtype=np.int16))

        if neighborhoods:
            self.build_neighborhoods()

    @classmethod
    def from_labels(
        cls,
        trees_per_row: int,
        species: Sequence[SpeciesDef],
        labels: Sequence[Label],
        canvas_size: int = DEFAULT_CANVAS_SIZE,
        neighborhoods: bool = False
    ) -> 'Forest':
        """
        Build a forest from an explicit row-major layout.

        Args:
            labels: N entries; species names, species indices, or None (vacant)

        Raises:
            ConfigError: Wrong number of labels or unknown species
        """
        forest = cls.__new__(cls)
        forest._init_geometry(trees_per_row, species, canvas_size)

        if len(labels) != forest.N:
            raise ConfigError(
                f"Expected {forest.N} labels for a {trees_per_row}x{trees_per_row} forest, "
                f"got {len(labels)}"
            )

        forest._plant(np.array([forest.label_of(lab) for lab in labels], dtype=np.int16))

        if neighborhoods:
            forest.build_neighborhoods()
        return forest

    def _init_geometry(self, trees_per_row: int, species: Sequence[SpeciesDef], canvas_size: int):
        if trees_per_row < 1:
            raise ConfigError(f"trees_per_row must be >= 1, got {trees_per_row}")
        if len(species) == 0:
            raise ConfigError("Forest needs at least one species")

        self.side: int = int(trees_per_row)
        self.N: int = self.side * self.side
        self.species_defs: List[SpeciesDef] = list(species)
        self.names: List[str] = [sp.name for sp in self.species_defs]
        self._index_of_name: Dict[str, int] = {name: i for i, name in enumerate(self.names)}
        if len(self._index_of_name) != len(self.names):
            raise ConfigError(f"Duplicate species names: {self.names}")

        idx = np.arange(self.N, dtype=np.int64)
        self.cols: np.ndarray = idx % self.side
        self.rows: np.ndarray = idx // self.side
        self.birthdate: np.ndarray = np.zeros(self.N, dtype=np.int64)

        # Half the centre-to-centre spacing; disks shrink by a pixel to leave air
        self.canvas_size = canvas_size
        self._R: float = canvas_size / (self.side * 2)
        self._r: float = self._R - 1

        self.neighbors: Optional[np.ndarray] = None

    def _plant(self, labels: np.ndarray):
        """Assign labels and count the census once."""
        self.species: np.ndarray = labels
        live = labels[labels != VACANT]
        self.census: np.ndarray = np.bincount(live, minlength=len(self.species_defs)).astype(np.int64)

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def build_neighborhoods(self):
        """
        Precompute each cell's 3x3 toroidal neighbourhood.

        Left edge wraps to right edge, top wraps to bottom. Topology never
        changes during a run, so the table is built once and frozen.
        """
        if self.neighbors is not None:
            return

        ncols = (self.cols[:, np.newaxis] + _NEIGHBOR_DCOL[np.newaxis, :]) % self.side
        nrows = (self.rows[:, np.newaxis] + _NEIGHBOR_DROW[np.newaxis, :]) % self.side
        table = ncols + nrows * self.side
        table.flags.writeable = False
        self.neighbors = table

    def neighborhood_species(self, idx: int) -> Set[int]:
        """Species present in the 9-cell neighbourhood of idx (vacant ignored)."""
        if self.neighbors is None:
            self.build_neighborhoods()
        present = set(self.species[self.neighbors[idx]].tolist())
        present.discard(VACANT)
        return present

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def relabel(self, idx: int, new_species: int) -> int:
        """
        Give cell idx a new species label and update the census.

        Vacating a cell only decrements; filling a vacant cell only increments.

        Returns:
            The old label
        """
        old = int(self.species[idx])
        if old != VACANT:
            self.census[old] -= 1
        if new_species != VACANT:
            self.census[new_species] += 1
        self.species[idx] = new_species
        return old

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def label_of(self, label: Label) -> int:
        """Normalize a species name / index / None into an internal label."""
        if label is None:
            return VACANT
        if isinstance(label, str):
            if label not in self._index_of_name:
                raise ConfigError(f"Unknown species '{label}' (known: {self.names})")
            return self._index_of_name[label]
        label = int(label)
        if label != VACANT and not 0 <= label < len(self.species_defs):
            raise ConfigError(f"Species index {label} out of range")
        return label

    def species_name(self, label: int) -> Optional[str]:
        """Name for an internal label, None for vacant."""
        label = int(label)
        return None if label == VACANT else self.names[label]

    def name_at(self, idx: int) -> Optional[str]:
        return self.species_name(self.species[idx])

    def index(self, col: int, row: int) -> int:
        return col + row * self.side

    def vacant_count(self) -> int:
        return int(np.count_nonzero(self.species == VACANT))

    def species_present(self) -> int:
        """Number of species with at least one live tree."""
        return int(np.count_nonzero(self.census))

    def census_dict(self) -> Dict[str, int]:
        """Census keyed by species name, in species-set order."""
        return {name: int(count) for name, count in zip(self.names, self.census)}

    def recount(self) -> np.ndarray:
        """Census computed from the labels (verification only, O(N))."""
        live = self.species[self.species != VACANT]
        return np.bincount(live, minlength=len(self.species_defs)).astype(np.int64)

    def count_conflicts(self) -> int:
        """
        Count pairs of conspecific neighbours.

        Neighbourhood exclusion forbids these, so once the random initial
        layout has been worked through the count should stay at zero.
        Vacant cells never conflict.
        """
        if self.neighbors is None:
            self.build_neighborhoods()

        ring = np.delete(self.neighbors, NEIGHBORHOOD_CENTER, axis=1)  # (N, 8)
        centre = self.species[:, np.newaxis]
        same = (self.species[ring] == centre) & (centre != VACANT)
        return int(np.count_nonzero(same)) // 2  # each pair seen from both ends

    # ------------------------------------------------------------------
    # Renderer surface
    # ------------------------------------------------------------------

    def color_of(self, idx: int) -> str:
        label = int(self.species[idx])
        if label == VACANT:
            return VACANT_COLOR
        return self.species_defs[label].color

    def tree(self, idx: int) -> Tree:
        col = int(self.cols[idx])
        row = int(self.rows[idx])
        return Tree(
            idx=int(idx),
            col=col,
            row=row,
            x=2 * self._R * col + self._R,
            y=2 * self._R * row + self._R,
            r=self._r,
            species=self.name_at(idx),
            birthdate=int(self.birthdate[idx])
        )

    def trees(self) -> Iterator[Tree]:
        """Yield every tree in linear order (full repaint)."""
        for idx in range(self.N):
            yield self.tree(idx)

    def to_dict(self) -> dict:
        return {
            'trees_per_row': self.side,
            'census': self.census_dict(),
            'vacant': self.vacant_count(),
            'labels': [self.name_at(i) for i in range(self.N)],
        }
