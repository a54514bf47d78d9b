from __future__ import annotations

import itertools

import pytest

from conftest import LAHORE, make_provider
from triagecore.core.matching.eligibility import explain_eligibility, filter_eligible, patient_age_group
from triagecore.core.matching.safety_gate import OnlineSafetyGate
from triagecore.core.matching.scoring import (
    ScoreContext,
    haversine_km,
    rank_providers,
    registered_caps,
    score_provider,
)
from triagecore.core.triage.specialty import get_router
from triagecore.schemas.intake import DetectedRedFlag
from triagecore.schemas.providers import GeoPoint, MatchCriteria
from triagecore.schemas.triage import TriageResult

FLAG = DetectedRedFlag(id="chest.left_parasternal:severe_intensity", description="Severe pain", severity="HIGH")
URGENCIES = ("emergency", "urgent", "semi-urgent", "routine")
COMPLAINTS = (None, "chest_pain", "neuro_deficit", "shortness_of_breath", "fever", "skin_rash", "joint_pain")
CATEGORY_FOR = {"emergency": "IMMEDIATE", "urgent": "URGENT", "semi-urgent": "SEMI_URGENT", "routine": "NON_URGENT"}


def _result(urgency="routine", red_flags=(), specialty="general_medicine"):
    return TriageResult(
        category=CATEGORY_FOR[urgency],
        urgency=urgency,
        priority_score=25,
        recommended_specialty=specialty,
        red_flags=red_flags,
    )


def _criteria(**overrides):
    payload = dict(specialty="cardiology", age=40, gender="male", preferred_language="urdu")
    payload.update(overrides)
    return MatchCriteria(**payload)


# --- eligibility -----------------------------------------------------------------


def test_age_group():
    assert patient_age_group(None, 18) is None
    assert patient_age_group(17, 18) == "PEDIATRIC"
    assert patient_age_group(18, 18) == "ADULT"


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"active": False}, "inactive"),
        ({"verified": False}, "unverified"),
        ({"consultation_modes": ("PHYSICAL",)}, "mode_not_offered:ONLINE"),
        ({"specialties": ("dermatology",)}, "specialty_mismatch:cardiology"),
        ({"age_groups": ("PEDIATRIC",)}, "age_group_not_covered:ADULT"),
        ({"gender_care": "FEMALE"}, "gender_care_restricted:FEMALE"),
    ],
)
def test_each_rule_excludes(overrides, reason):
    decision = explain_eligibility(make_provider(**overrides), _criteria(), "ONLINE", 18)
    assert not decision.eligible
    assert decision.reasons == (reason,)


def test_general_medicine_covers_any_specialty():
    assert explain_eligibility(make_provider(), _criteria(specialty="neurology"), "PHYSICAL", 18).eligible


def test_unknown_age_only_admits_all_age_providers():
    criteria = _criteria(age=None)
    assert explain_eligibility(make_provider(), criteria, "ONLINE", 18).eligible
    decision = explain_eligibility(make_provider(age_groups=("ADULT",)), criteria, "ONLINE", 18)
    assert decision.reasons == ("age_group_not_covered:unknown",)


def test_filter_eligible_records_every_decision(providers):
    pairs, decisions = filter_eligible(providers, _criteria(), ("ONLINE", "PHYSICAL"), 18)
    assert len(decisions) == len(providers) * 2
    assert {(provider.id, mode) for provider, mode in pairs} == {
        ("card-1", "ONLINE"),
        ("card-1", "PHYSICAL"),
        ("card-2", "PHYSICAL"),
        ("gp-1", "ONLINE"),
        ("gp-1", "PHYSICAL"),
    }


# --- online safety gate ------------------------------------------------------------


@pytest.mark.parametrize(
    "urgency, complaint, flags",
    list(itertools.product(URGENCIES, COMPLAINTS, ((), (FLAG,)))),
)
def test_online_blocked_iff_unsafe(urgency, complaint, flags):
    gate = OnlineSafetyGate()
    modes = gate.safe_modes(_result(urgency, flags), complaint)
    unsafe = (
        urgency in {"emergency", "urgent"}
        or bool(flags)
        or complaint in {"chest_pain", "neuro_deficit", "shortness_of_breath"}
    )
    assert ("ONLINE" not in modes.allowed) is unsafe
    assert "PHYSICAL" in modes.allowed
    assert bool(modes.reasons) is unsafe


def test_gate_removes_only_online_pairs(providers):
    gate = OnlineSafetyGate()
    pairs = tuple((provider, mode) for provider in providers[:2] for mode in ("ONLINE", "PHYSICAL"))
    kept, removed, modes = gate.apply(pairs, _result("urgent"), None)
    assert all(mode == "PHYSICAL" for _, mode in kept)
    assert len(kept) + len(removed) == len(pairs)
    assert modes.reasons == ("urgency:urgent",)

    kept, removed, _ = gate.apply(pairs, _result("routine"), "fever")
    assert kept == pairs
    assert removed == ()


def test_gate_explains_in_both_languages():
    gate = OnlineSafetyGate()
    reasons = gate.block_reasons("urgent", (FLAG,), "chest_pain")
    assert len(gate.explain(reasons, "en")) == 3
    assert gate.explain(reasons, "ur") != gate.explain(reasons, "en")


def test_gate_rules_come_from_pack():
    gate = OnlineSafetyGate({"blocked_urgencies": ["emergency"], "block_on_any_red_flag": False})
    assert gate.allows_online("urgent", (FLAG,), "chest_pain")


# --- scoring -------------------------------------------------------------------------


def _score(provider, mode="PHYSICAL", criteria=None, decay=10.0):
    return score_provider(
        ScoreContext(
            provider=provider,
            mode=mode,
            criteria=criteria or _criteria(location=LAHORE),
            router=get_router(),
            distance_decay_km=decay,
        )
    )


def test_declared_caps_and_total_clamp():
    caps = registered_caps()
    assert caps == {
        "specialty_fit": 40,
        "availability": 20,
        "experience": 20,
        "language": 10,
        "distance": 10,
        "rating": 5,
    }
    assert sum(caps.values()) == 105


def test_perfect_provider_scores_exactly_hundred():
    provider = make_provider(specialties=("cardiology",), experience_years=35, rating=5.0)
    scored = _score(provider)
    assert scored.score == 100
    assert scored.score_breakdown.distance == 10


def test_components_never_exceed_caps(providers):
    caps = registered_caps()
    far_away = GeoPoint(latitude=24.8607, longitude=67.0011)
    for provider in providers:
        for mode in ("ONLINE", "PHYSICAL"):
            for criteria in (_criteria(location=far_away), _criteria(location=None), _criteria(preferred_language="pashto")):
                breakdown = _score(provider, mode, criteria).score_breakdown.model_dump()
                for name, value in breakdown.items():
                    assert 0 <= value <= caps[name]


def test_specialty_fit_levels():
    assert _score(make_provider(specialties=("cardiology",))).score_breakdown.specialty_fit == 40
    adjacent = make_provider(specialties=("general_medicine", "pulmonology"))
    assert _score(adjacent).score_breakdown.specialty_fit == 28
    assert _score(make_provider()).score_breakdown.specialty_fit == 20


def test_distance_decays_and_online_or_unknown_location_gets_half():
    provider = make_provider()
    near = _score(provider, criteria=_criteria(location=LAHORE)).score_breakdown.distance
    karachi = GeoPoint(latitude=24.8607, longitude=67.0011)
    far = _score(provider, criteria=_criteria(location=karachi)).score_breakdown.distance
    assert near > far > 0
    assert _score(provider, criteria=_criteria(location=None)).score_breakdown.distance == 5
    assert _score(provider, mode="ONLINE", criteria=_criteria(location=karachi)).score_breakdown.distance == 5
    assert _score(provider, mode="ONLINE", criteria=_criteria(location=LAHORE)).score_breakdown.distance == 5


def test_haversine_lahore_karachi():
    karachi = GeoPoint(latitude=24.8607, longitude=67.0011)
    assert 950 < haversine_km(LAHORE, karachi) < 1100
    assert haversine_km(LAHORE, LAHORE) == 0


def test_ranking_orders_by_score_then_id(settings):
    twins = [make_provider("b-doc"), make_provider("a-doc")]
    best = make_provider("z-doc", specialties=("cardiology",))
    pairs = [(provider, "PHYSICAL") for provider in [*twins, best]]
    ranked = rank_providers(pairs, _criteria(), settings=settings)
    assert [item.provider.id for item in ranked] == ["z-doc", "a-doc", "b-doc"]


def test_ranking_truncates_and_allows_empty(settings):
    pairs = [(make_provider(f"doc-{index}"), "ONLINE") for index in range(8)]
    assert len(rank_providers(pairs, _criteria(), settings=settings)) == settings.ranking_limit
    assert len(rank_providers(pairs, _criteria(), limit=2, settings=settings)) == 2
    assert rank_providers([], _criteria(), settings=settings) == ()
