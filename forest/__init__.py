"""
Forest Tree-Replacement Simulations

Headless ecological drift and coexistence models on a square grid of trees.
A tree dies, a replacement arrives, the census moves by one.

Architecture: ForestSimulation is the source of truth. Renderers and
schedulers are consumers.
"""

__version__ = "0.1.0"
