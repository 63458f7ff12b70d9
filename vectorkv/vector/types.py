"""
Record and result types for the vector pipeline.
"""

from dataclasses import dataclass, field
from typing import List

import numpy as np


@dataclass
class Ranked:
    """One scored candidate of a similarity ranking."""

    score: float
    """Cosine similarity to the query, NaN when undefined"""

    vector: np.ndarray
    """The candidate vector as decoded from its key"""


@dataclass
class NearestResult:
    """Outcome of a nearest-neighbour lookup."""

    text: str
    """Text stored under the top-ranked vector"""

    ranked: List[Ranked] = field(default_factory=list)
    """Every candidate, best first"""

    @property
    def top(self) -> Ranked:
        return self.ranked[0]
