"""
League Ranking: Bayesian team ranking with leakage-free backtesting.

This package provides:
- A point-in-time feature store for league schedules
- Hierarchical margin and win/loss models fit with PyMC
- Rating-system, classifier and heuristic baselines behind one interface
- Walk-forward backtesting with per-model accuracy
- Posterior rankings against a generic opponent, with close-game luck
"""

__version__ = "0.1.0"
