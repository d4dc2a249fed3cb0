"""Shared utilities for league-ranking project."""

from .logging import (
    setup_logging,
    print_section,
    print_subsection,
    print_success,
    print_error,
    print_warning,
    print_info,
    print_accuracy,
    print_failures,
    print_rankings,
)
from .constants import (
    SITE_HOME,
    SITE_AWAY,
    SITE_NEUTRAL,
    VALID_SITES,
    BASE_RATING,
    DEFAULT_N_SIMULATIONS,
    RECORD_FEATURES,
)

__all__ = [
    "setup_logging",
    "print_section",
    "print_subsection",
    "print_success",
    "print_error",
    "print_warning",
    "print_info",
    "print_accuracy",
    "print_failures",
    "print_rankings",
    "SITE_HOME",
    "SITE_AWAY",
    "SITE_NEUTRAL",
    "VALID_SITES",
    "BASE_RATING",
    "DEFAULT_N_SIMULATIONS",
    "RECORD_FEATURES",
]
