"""
Tree runtime representation.

A Tree is a read-only view of one grid cell, built on demand from the
Forest arrays for renderers and snapshots. Trees are never created or
destroyed during a run; replacement only relabels the cell's species.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Tree:
    """
    One cell of the forest grid.

    Attributes:
        idx: Linear index within the forest (row-major: col + row * side)
        col: Column, numbered left to right
        row: Row, numbered top to bottom
        x: Disk centre x in canvas pixels
        y: Disk centre y in canvas pixels
        r: Disk radius in canvas pixels (one pixel smaller than half the spacing)
        species: Species name, or None when the cell is vacant
        birthdate: Step count when the cell was created (0 for every tree today)
    """
    idx: int
    col: int
    row: int
    x: float
    y: float
    r: float
    species: Optional[str]
    birthdate: int = 0

    @property
    def vacant(self) -> bool:
        return self.species is None

    def to_dict(self) -> dict:
        """
        Serialize tree to JSON-compatible dict.

        Returns:
            Dict with all tree fields
        """
        return {
            'idx': self.idx,
            'col': self.col,
            'row': self.row,
            'x': self.x,
            'y': self.y,
            'r': self.r,
            'species': self.species,
            'birthdate': self.birthdate,
        }

