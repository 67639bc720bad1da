"""
Deterministic RNG utilities for forest simulations.

Uses SHA256 hashing to derive stable seeds from hierarchical components
(run_seed, stream_name). All randomness uses numpy.random.Generator(PCG64)
so a seeded run is reproducible across sessions and resets.

Replacement rules only ever call ``rng.integers(n)`` and ``rng.random()``,
so any object with those two methods can stand in for a Generator.
"""

import hashlib
import numpy as np
from typing import Any, Optional


def make_seed(*components: Any) -> int:
    """
    Generate deterministic 64-bit seed from hierarchical components.

    Uses SHA256 to hash components into stable seed value.

    Args:
        *components: Seed components (run_seed, stream name, etc.)

    Returns:
        64-bit integer seed for numpy RNG

    Example:
        layout_seed = make_seed(run_seed, "layout")
        dynamics_seed = make_seed(run_seed, "dynamics")
    """
    # Join all components with colon separator
    hash_input = ":".join(str(c) for c in components)

    # SHA256 hash and extract 64-bit integer
    hash_bytes = hashlib.sha256(hash_input.encode('utf-8')).digest()
    seed = int.from_bytes(hash_bytes[:8], byteorder='big')

    return seed


def make_rng(seed: Optional[int], stream: str) -> np.random.Generator:
    """
    Build a PCG64 generator for one named random stream.

    Args:
        seed: Run seed, or None for fresh OS entropy (not reproducible)
        stream: Stream name ("layout", "dynamics"); keeps streams independent

    Returns:
        numpy Generator
    """
    if seed is None:
        return np.random.Generator(np.random.PCG64())
    return np.random.Generator(np.random.PCG64(make_seed(seed, stream)))


def flip_biased_coin(rng, bias: float) -> bool:
    """True with probability ``bias`` (always True when bias >= 1)."""
    return rng.random() < bias
