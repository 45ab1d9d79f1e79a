"""Opportunity score and difficulty estimate."""

import pytest

from app.services.scoring import (
    compute_opportunity_score,
    difficulty_label,
    estimate_difficulty,
    score_label,
)

VOLUMES = [0, 1, 10, 99, 100, 1000, 1001, 9999, 10000, 10001, 50000, 100000, 10_000_000]
COMPETITIONS = [0.0, 0.1, 0.25, 0.5, 0.75, 0.9, 1.0]
CPCS = [0.0, 0.5, 1.0, 2.0, 5.0, 19.99, 20.0, 50.0]


def test_strong_opportunity():
    assert compute_opportunity_score(50000, 0.1, 2) >= 70


def test_weak_opportunity():
    assert 10 <= compute_opportunity_score(100, 0.9, 0.5) <= 40


def test_zero_competition_low_volume_difficulty_is_zero():
    assert estimate_difficulty(0, 500) == 0


def test_max_competition_high_volume_difficulty():
    assert estimate_difficulty(1, 50000) == 80


def test_volume_surcharge_applies_without_competition():
    assert estimate_difficulty(0, 1001) == 10
    assert estimate_difficulty(0, 10001) == 20


@pytest.mark.parametrize("competition", [0.0, 0.2, 0.5, 0.8])
def test_difficulty_tiers_are_exclusive(competition):
    assert estimate_difficulty(competition, 999) == estimate_difficulty(competition, 1000)
    assert estimate_difficulty(competition, 1000) + 10 == estimate_difficulty(competition, 1001)
    assert estimate_difficulty(competition, 10000) + 10 == estimate_difficulty(competition, 10001)


def test_edge_inputs():
    # volume 0 -> volume part 0; competition 0 -> full competition part; cpc 0 -> cpc part 0
    assert compute_opportunity_score(0, 0, 0) == 40
    assert compute_opportunity_score(0, 1, 0) == 0
    assert compute_opportunity_score(0, 1, -5) == 0
    assert compute_opportunity_score(10_000_000, 0, 1000) == 100


def test_out_of_range_inputs_are_clamped():
    assert compute_opportunity_score(-50, 1.5, -1) == 0
    assert compute_opportunity_score(-50, -0.5, 0) == 40
    assert estimate_difficulty(2.0, 50000) == 80
    assert estimate_difficulty(-1.0, -10) == 0


def test_bounded_integers():
    for v in VOLUMES:
        for c in COMPETITIONS:
            d = estimate_difficulty(c, v)
            assert isinstance(d, int) and 0 <= d <= 100
            for cpc in CPCS:
                s = compute_opportunity_score(v, c, cpc)
                assert isinstance(s, int) and 0 <= s <= 100


def test_score_monotonic_in_volume():
    for c in COMPETITIONS:
        for cpc in CPCS:
            scores = [compute_opportunity_score(v, c, cpc) for v in VOLUMES]
            assert scores == sorted(scores)


def test_score_non_increasing_in_competition():
    for v in VOLUMES:
        for cpc in CPCS:
            scores = [compute_opportunity_score(v, c, cpc) for c in COMPETITIONS]
            assert scores == sorted(scores, reverse=True)


def test_score_monotonic_in_cpc():
    for v in VOLUMES:
        for c in COMPETITIONS:
            scores = [compute_opportunity_score(v, c, cpc) for cpc in CPCS]
            assert scores == sorted(scores)


def test_cpc_capped_at_twenty():
    assert compute_opportunity_score(1000, 0.5, 20) == compute_opportunity_score(1000, 0.5, 500)


def test_deterministic():
    assert compute_opportunity_score(1234, 0.37, 3.21) == compute_opportunity_score(1234, 0.37, 3.21)


@pytest.mark.parametrize(
    "score,label",
    [(100, "Great"), (70, "Great"), (69, "Good"), (50, "Good"), (49, "Fair"), (30, "Fair"), (29, "Low"), (0, "Low")],
)
def test_score_label(score, label):
    assert score_label(score) == label


@pytest.mark.parametrize(
    "difficulty,label",
    [(0, "Easy"), (30, "Easy"), (31, "Medium"), (60, "Medium"), (61, "Hard"), (100, "Hard")],
)
def test_difficulty_label(difficulty, label):
    assert difficulty_label(difficulty) == label
