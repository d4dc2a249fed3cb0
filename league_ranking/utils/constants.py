"""Shared constants for league-ranking models."""

# Site indicators, relative to the team in a row
SITE_HOME = 1
SITE_AWAY = -1
SITE_NEUTRAL = 0
VALID_SITES = frozenset({SITE_HOME, SITE_AWAY, SITE_NEUTRAL})

# Outcome values
WIN = 1.0
LOSS = 0.0
TIE = 0.5

# Rating systems
BASE_RATING = 1500.0
RATING_SCALE = 400.0

# Simulations per team against the generic opponent
DEFAULT_N_SIMULATIONS = 20_000

# Features used by the classifiers (all known before kickoff)
RECORD_FEATURES = (
    "site",
    "wins",
    "losses",
    "opp_wins",
    "opp_losses",
    "games_ahead",
)
