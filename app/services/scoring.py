"""Keyword opportunity score and difficulty estimate.

Pure functions over provider metrics; both return integers in [0, 100].
Out-of-range inputs are clamped rather than rejected.
"""

import math

VOLUME_WEIGHT = 0.4
COMPETITION_WEIGHT = 0.4
CPC_WEIGHT = 0.2

# log10(100_000) == 5: volumes of 100k and above earn the full volume sub-score
VOLUME_LOG_CEILING = 5
CPC_CEILING = 20.0

DIFFICULTY_COMPETITION_MAX = 60
VOLUME_SURCHARGE_TIERS = ((1000, 10), (10000, 10))


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _finite(value, default: float = 0.0) -> float:
    value = float(value or 0)
    return value if math.isfinite(value) else default


def compute_opportunity_score(search_volume: float, competition_score: float, cpc: float) -> int:
    """Blend volume (log scale), inverted competition and CPC into a 0-100 score."""
    volume = max(0.0, _finite(search_volume))
    competition = _clamp(_finite(competition_score), 0.0, 1.0)
    cpc = _finite(cpc)

    volume_score = min(100.0, math.log10(volume + 1) / VOLUME_LOG_CEILING * 100)
    low_competition_score = (1 - competition) * 100
    cpc_score = 0.0 if cpc <= 0 else min(100.0, cpc / CPC_CEILING * 100)

    score = volume_score * VOLUME_WEIGHT + low_competition_score * COMPETITION_WEIGHT + cpc_score * CPC_WEIGHT
    return int(_clamp(_round_half_up(score)))


def estimate_difficulty(competition_score: float, search_volume: float) -> int:
    """competition * 60, plus 10 above 1,000 searches and another 10 above 10,000.

    The volume surcharge is applied even when competition is 0.
    """
    competition = _clamp(_finite(competition_score), 0.0, 1.0)
    volume = max(0.0, _finite(search_volume))

    difficulty = competition * DIFFICULTY_COMPETITION_MAX
    for threshold, surcharge in VOLUME_SURCHARGE_TIERS:
        if volume > threshold:
            difficulty += surcharge
    return int(_clamp(_round_half_up(difficulty)))


def score_label(score: int) -> str:
    if score >= 70:
        return "Great"
    if score >= 50:
        return "Good"
    if score >= 30:
        return "Fair"
    return "Low"


def difficulty_label(difficulty: int) -> str:
    if difficulty <= 30:
        return "Easy"
    if difficulty <= 60:
        return "Medium"
    return "Hard"
