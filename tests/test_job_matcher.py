import json
import math
import shutil
from pathlib import Path

import pytest

from services import job_matcher
from services.embeddings import EmbeddingStore
from services.job_matcher import MatchingEngine, analyze, load_job_catalog, run_matching
from services.taxonomy import MATCH_CATEGORIES, TermNormalizer, load_taxonomy


FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="module")
def normalizer():
    return TermNormalizer(load_taxonomy(FIXTURES / "taxonomy.json"))


@pytest.fixture(scope="module")
def jobs():
    return load_job_catalog(FIXTURES / "jobs.json")


@pytest.fixture
def engine(normalizer, jobs):
    return MatchingEngine(normalizer, EmbeddingStore(), jobs)


def _by_id(result):
    return {entry["job_id"]: entry for entry in result["all_roles"]}


def test_alias_in_profile_matches_canonical_requirement(engine):
    result = engine.run_matching({"codingLanguages": ["JS"]})
    web = _by_id(result)["job-web"]
    langs = web["categories"]["coding_languages"]
    assert langs["green"] == ["javascript"]
    assert langs["red"] == []
    assert web["percentage"] == 100
    assert web["status"] == "qualified"
    assert result["qualified_roles"][0]["job_id"] == "job-web"


def test_partial_match_lands_in_upskill_tier(engine):
    result = engine.run_matching({"coding_languages": ["python"]})
    data = _by_id(result)["job-data"]
    assert data["categories"]["coding_languages"]["green"] == ["python"]
    assert data["categories"]["coding_languages"]["red"] == ["sql"]
    assert data["percentage"] == 50
    assert data["status"] == "needs_upskilling"
    assert [entry["job_id"] for entry in result["upskill_roles"]] == ["job-data"]

    senior = _by_id(result)["job-senior"]
    # five categories required, only coding languages matched
    assert senior["percentage"] == 20
    assert senior["status"] == "not_ready"
    assert senior not in result["qualified_roles"] + result["upskill_roles"]


@pytest.mark.parametrize(
    "profile",
    [
        {},
        {"yearsOfExperience": ""},
        {"skills": ["", "   "], "tools": [None], "yearsOfExperience": "n/a"},
        None,
        "not a profile",
    ],
)
def test_empty_profile_returns_empty_result(engine, profile):
    result = engine.run_matching(profile)
    assert result == {"qualified_roles": [], "upskill_roles": [], "all_roles": []}


def test_jobs_above_candidate_experience_are_excluded(engine):
    result = engine.run_matching({"tools": ["burp"], "yearsOfExperience": "3"})
    ids = [entry["job_id"] for entry in result["all_roles"]]
    assert "job-senior" not in ids
    assert ids == ["job-web", "job-ops", "job-data"]
    assert all(entry["required_years_of_experience"] <= 3 for entry in result["all_roles"])

    by_id = _by_id(result)
    assert by_id["job-web"]["percentage"] == 50
    assert by_id["job-ops"]["percentage"] == 25
    assert by_id["job-data"]["percentage"] == 0
    assert by_id["job-ops"]["categories"]["tools"] == {"green": [], "red": ["nmap"], "yellow": ["burp suite"]}


def test_without_stated_experience_all_jobs_are_scored(engine, jobs):
    result = engine.run_matching({"tools": ["nmap"]})
    assert len(result["all_roles"]) == len(jobs)


def test_sort_is_stable_for_equal_percentages(engine):
    result = engine.run_matching({"codingLanguages": ["JS"]})
    ids = [entry["job_id"] for entry in result["all_roles"]]
    assert ids == ["job-web", "job-data", "job-senior", "job-ops"]


def test_percentages_are_integers_in_range(engine):
    profiles = [
        {"codingLanguages": ["python", "js"], "yearsOfExperience": "10"},
        {"tools": ["nmap", "burp"], "operatingSystems": ["ubuntu"]},
        {"skills": ["pentest"], "certifications": ["OSCP"], "yearsOfExperience": "5+"},
    ]
    for profile in profiles:
        for entry in engine.run_matching(profile)["all_roles"]:
            assert isinstance(entry["percentage"], int)
            assert 0 <= entry["percentage"] <= 100


def test_result_shape(engine):
    entry = engine.run_matching({"skills": ["pentest"], "yearsOfExperience": "6"})["all_roles"][0]
    assert set(entry) == {"job_id", "role", "percentage", "required_years_of_experience", "status", "categories"}
    assert set(entry["categories"]) == set(MATCH_CATEGORIES)
    for partitions in entry["categories"].values():
        assert set(partitions) == {"green", "red", "yellow"}


def test_senior_role_full_match(engine):
    profile = {
        "skills": ["Pentest"],
        "tools": ["Burp Intruder"],
        "certifications": ["Offensive Security Certified Professional"],
        "operatingSystems": ["kali"],
        "codingLanguages": ["Python3"],
        "yearsOfExperience": "4",
    }
    # four years is below the five the role asks for
    assert "job-senior" not in _by_id(engine.run_matching(profile))

    profile["yearsOfExperience"] = "6"
    senior = _by_id(engine.run_matching(profile))["job-senior"]
    assert senior["percentage"] == 100
    assert senior["required_years_of_experience"] == 5


def test_fuzzy_match_through_embeddings(normalizer):
    job = {"id": "appsec", "title": "AppSec", "tools": ["Burp Suite"]}
    similar = [0.9, math.sqrt(1 - 0.81)]
    embeddings = EmbeddingStore({"tools": {"burp suite": [1.0, 0.0], "burp suite pro": similar}})

    with_embeddings = MatchingEngine(normalizer, embeddings, [job]).run_matching({"tools": ["Burp Suite Pro"]})
    tools = with_embeddings["all_roles"][0]["categories"]["tools"]
    assert tools["green"] == ["burp suite"]
    assert tools["yellow"] == ["burp suite pro"]

    exact_only = MatchingEngine(normalizer, EmbeddingStore(), [job]).run_matching({"tools": ["Burp Suite Pro"]})
    assert exact_only["all_roles"][0]["categories"]["tools"]["red"] == ["burp suite"]


def test_failing_job_is_skipped(normalizer, jobs):
    class FlakyEngine(MatchingEngine):
        def _normalize_job(self, job):
            if job.get("id") == "job-data":
                raise RuntimeError("corrupt record")
            return super()._normalize_job(job)

    result = FlakyEngine(normalizer, EmbeddingStore(), jobs).run_matching({"codingLanguages": ["python"]})
    ids = [entry["job_id"] for entry in result["all_roles"]]
    assert "job-data" not in ids
    assert len(ids) == len(jobs) - 1


def test_malformed_job_fields_do_not_break_scoring(normalizer):
    odd = {"id": "odd", "title": "Odd", "skills": "python", "codingLanguages": [None, 5, "Python"], "yearsOfExperience": {"min": 2}}
    result = MatchingEngine(normalizer, EmbeddingStore(), [odd]).run_matching({"codingLanguages": ["python"]})
    entry = result["all_roles"][0]
    assert entry["categories"]["coding_languages"]["green"] == ["python"]
    assert entry["categories"]["coding_languages"]["red"] == ["5"]
    assert entry["categories"]["skills"]["red"] == []


def test_job_normalization_is_cached_per_catalog_entry(normalizer, jobs):
    calls = []

    class CountingEngine(MatchingEngine):
        def _normalize_job(self, job):
            calls.append(job.get("id"))
            return super()._normalize_job(job)

    counting = CountingEngine(normalizer, EmbeddingStore(), jobs)
    counting.run_matching({"tools": ["nmap"], "yearsOfExperience": "9"})
    counting.run_matching({"tools": ["burp"]})
    assert sorted(calls) == sorted(job["id"] for job in jobs)


def test_jobs_sharing_an_id_are_scored_separately(normalizer):
    jobs = [
        {"id": "1", "title": "A", "tools": ["nmap"]},
        {"id": 1, "title": "B", "tools": ["burp suite"]},
        {"id": "1", "title": "C", "tools": ["nmap"], "yearsOfExperience": "8"},
    ]
    engine = MatchingEngine(normalizer, EmbeddingStore(), jobs)
    result = engine.run_matching({"tools": ["burp suite"], "yearsOfExperience": "3"})
    roles = {entry["role"]: entry for entry in result["all_roles"]}
    assert set(roles) == {"A", "B"}
    assert roles["B"]["percentage"] == 100
    assert roles["A"]["percentage"] == 0

    again = engine.run_matching({"tools": ["nmap"]})
    assert [entry["role"] for entry in again["all_roles"]] == ["A", "C", "B"]


def test_run_matching_with_explicit_jobs(engine):
    jobs = [{"id": "x", "title": "X", "databases": ["PostgreSQL"]}]
    result = run_matching({"databases": ["postgresql"]}, jobs, engine=engine)
    assert [entry["job_id"] for entry in result["qualified_roles"]] == ["x"]


def test_empty_catalog_returns_empty_lists(normalizer):
    result = MatchingEngine(normalizer, EmbeddingStore(), []).run_matching({"skills": ["pentest"]})
    assert result == {"qualified_roles": [], "upskill_roles": [], "all_roles": []}


def test_analyze_uses_configured_data_dir(tmp_path, monkeypatch):
    shutil.copy(FIXTURES / "jobs.json", tmp_path / "parsed_jobs.json")
    shutil.copy(FIXTURES / "taxonomy.json", tmp_path / "skill_taxonomy.json")
    monkeypatch.setenv("SKILLGAP_DATA_DIR", str(tmp_path))
    job_matcher.default_engine.cache_clear()
    try:
        result = analyze({"codingLanguages": ["JS"]})
        assert result["qualified_roles"][0]["job_id"] == "job-web"
    finally:
        job_matcher.default_engine.cache_clear()


def test_load_job_catalog_handles_bad_files(tmp_path):
    assert load_job_catalog(tmp_path / "missing.json") == []
    broken = tmp_path / "broken.json"
    broken.write_text("[", encoding="utf-8")
    assert load_job_catalog(broken) == []
    not_list = tmp_path / "object.json"
    not_list.write_text(json.dumps({"id": "x"}), encoding="utf-8")
    assert load_job_catalog(not_list) == []
    mixed = tmp_path / "mixed.json"
    mixed.write_text(json.dumps([{"id": "a", "title": "A"}, "junk", 3]), encoding="utf-8")
    assert [job["id"] for job in load_job_catalog(mixed)] == ["a"]
