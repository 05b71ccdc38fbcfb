import math

import pytest

from services.embeddings import EmbeddingStore
from services.scoring import (
    NEEDS_UPSKILLING,
    NOT_READY,
    QUALIFIED,
    aggregate_percentage,
    calculate_skill_gap,
    classify_status,
    overall_gap_percentage,
    parse_years_of_experience,
    score_category,
    score_experience,
)


def _unit(similarity):
    """2-d unit vector whose cosine with [1, 0] equals ``similarity``."""
    return [similarity, math.sqrt(1 - similarity ** 2)]


def test_partial_match_without_embeddings():
    result = score_category("coding_languages", ["python", "sql"], ["python"])
    assert result.green == ["python"]
    assert result.red == ["sql"]
    assert result.score == pytest.approx(5.0)
    assert result.contributes is True


def test_empty_requirements_do_not_contribute():
    result = score_category("tools", [], ["burp suite", "nmap"])
    assert result.contributes is False
    assert result.score == 0
    assert result.green == []
    assert result.red == []
    assert sorted(result.yellow) == ["burp suite", "nmap"]


def test_full_containment_scores_ten():
    result = score_category("tools", ["nmap", "burp suite"], ["burp suite", "nmap", "wireshark"])
    assert result.score == pytest.approx(10.0)
    assert result.red == []
    assert result.yellow == ["wireshark"]


def test_fuzzy_match_above_threshold_counts_green():
    embeddings = EmbeddingStore({"tools": {"burp suite": [1.0, 0.0], "burp suite pro": _unit(0.9)}})
    result = score_category("tools", ["burp suite"], ["burp suite pro"], embeddings)
    assert result.green == ["burp suite"]
    assert result.red == []
    assert result.score == pytest.approx(10.0)
    # yellow is judged on exact membership, so the fuzzy partner stays yellow too
    assert result.yellow == ["burp suite pro"]


def test_similarity_at_or_below_threshold_is_red():
    embeddings = EmbeddingStore({"tools": {"burp suite": [1.0, 0.0], "zap": _unit(0.8)}})
    result = score_category("tools", ["burp suite"], ["zap"], embeddings)
    assert result.green == []
    assert result.red == ["burp suite"]
    assert result.score == 0


def test_best_candidate_similarity_is_used():
    embeddings = EmbeddingStore(
        {"skills": {"security testing": [1.0, 0.0], "qa": _unit(0.2), "pentest": _unit(0.95)}}
    )
    result = score_category("skills", ["security testing"], ["qa", "pentest"], embeddings)
    assert result.green == ["security testing"]


def test_required_term_without_vector_is_red():
    embeddings = EmbeddingStore({"tools": {"burp suite pro": [1.0, 0.0]}})
    result = score_category("tools", ["burp suite"], ["burp suite pro"], embeddings)
    assert result.red == ["burp suite"]


def test_embeddings_of_other_category_are_ignored():
    embeddings = EmbeddingStore({"skills": {"burp suite": [1.0, 0.0], "burp suite pro": [1.0, 0.0]}})
    result = score_category("tools", ["burp suite"], ["burp suite pro"], embeddings)
    assert result.red == ["burp suite"]


def test_score_category_tolerates_malformed_input():
    result = score_category("tools", "nmap", None)
    assert result.contributes is False
    assert result.yellow == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("3", 3.0),
        ("2.5", 2.5),
        ("3-5", 3.0),
        ("5+", 5.0),
        (" 10 years", 10.0),
        (4, 4.0),
        (1.5, 1.5),
        ("", 0.0),
        ("senior", 0.0),
        (None, 0.0),
        (-2, 0.0),
        (float("nan"), 0.0),
        (True, 0.0),
    ],
)
def test_parse_years_of_experience(raw, expected):
    assert parse_years_of_experience(raw) == expected


def test_experience_partial_credit():
    result = score_experience("5+", "3")
    assert result.contributes is True
    assert result.job_years == 5.0
    assert result.score == pytest.approx(6.0)


def test_experience_full_credit():
    result = score_experience("3-5", 4)
    assert result.score == pytest.approx(10.0)
    assert result.contributes is True


@pytest.mark.parametrize("job_years, candidate_years", [("", "3"), ("3", ""), ("none", 0), (0, 0)])
def test_experience_zero_on_either_side_does_not_contribute(job_years, candidate_years):
    result = score_experience(job_years, candidate_years)
    assert result.contributes is False
    assert result.score == 0


def test_aggregate_uses_only_contributing_categories():
    pairs = [(10.0, True), (5.0, True), (0.0, False), (0.0, False)]
    assert aggregate_percentage(pairs) == 75


def test_aggregate_with_no_contributing_category_is_zero():
    assert aggregate_percentage([(0.0, False), (10.0, False)]) == 0
    assert aggregate_percentage([]) == 0


def test_aggregate_rounds_half_up_and_returns_int():
    result = aggregate_percentage([(10.0, True), (10.0, True), (0.0, True)])
    assert result == 67
    assert isinstance(result, int)
    assert aggregate_percentage([(10.0, True), (0.05, True)]) == 50
    # 1/8 = 12.5% rounds up, not to even
    assert aggregate_percentage([(10.0, True)] + [(0.0, True)] * 7) == 13


@pytest.mark.parametrize(
    "percentage, status",
    [(100, QUALIFIED), (70, QUALIFIED), (69, NEEDS_UPSKILLING), (30, NEEDS_UPSKILLING), (29, NOT_READY), (0, NOT_READY)],
)
def test_classify_status(percentage, status):
    assert classify_status(percentage) == status


def test_skill_gap_ignores_yellow():
    assert calculate_skill_gap(["a", "b", "c"], ["d"]) == {"match_pct": 75, "missing_pct": 25, "total_required": 4}
    assert calculate_skill_gap([], []) == {"match_pct": 100, "missing_pct": 0, "total_required": 0}
    assert calculate_skill_gap(None, ["x"])["match_pct"] == 0


def test_overall_gap_percentage_pools_categories():
    categories = {
        "skills": {"green": ["a"], "red": ["b"], "yellow": ["z"]},
        "tools": {"green": ["c", "d"], "red": [], "yellow": []},
    }
    assert overall_gap_percentage(categories) == 75
    assert overall_gap_percentage({"skills": {"green": [], "red": [], "yellow": ["x"]}}) == 100
