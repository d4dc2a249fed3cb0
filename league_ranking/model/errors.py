"""
Exception taxonomy for league ranking.

- DataIntegrityError: malformed or inconsistent input, aborts the run
- ModelFitError: a single model could not be fit on a window
    - InsufficientDataError: not enough teams/games/classes to fit
    - SamplingNonConvergenceError: MCMC diagnostics flag unreliable draws
"""

from __future__ import annotations


class DataIntegrityError(ValueError):
    """Input games or teams are inconsistent."""


class ModelFitError(RuntimeError):
    """A candidate model failed to fit on a training window."""


class InsufficientDataError(ModelFitError):
    """Too few teams or games in the training window."""


class SamplingNonConvergenceError(ModelFitError):
    """Posterior draws failed convergence checks."""

    def __init__(self, message: str, diagnostics: dict | None = None):
        super().__init__(message)
        self.diagnostics = diagnostics or {}
