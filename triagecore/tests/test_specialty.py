from __future__ import annotations

import pytest

from triagecore.core.normalizer.synonyms import map_complaint_type
from triagecore.core.normalizer.text import matches_keyword, normalize_text
from triagecore.core.triage.specialty import SpecialtyRouter, SpecialtyRule, get_router
from triagecore.schemas.intake import EncounterBundle, SelectionSnapshot


def _bundle(complaint="", complaint_type=None, categories=(), age=None):
    selections = tuple(
        SelectionSnapshot(zone_id=f"{category}.x", category=category, zone_priority=5, intensity=3, onset="gradual")
        for category in categories
    )
    return EncounterBundle(
        correlation_id="route",
        chief_complaint=complaint,
        complaint_type=complaint_type,
        selections=selections,
        age=age,
    )


@pytest.mark.parametrize(
    "bundle_kwargs, specialty, rule_id",
    [
        ({"complaint_type": "chest_pain"}, "cardiology", "complaint.chest_pain"),
        ({"complaint_type": "headache"}, "neurology", "complaint.neuro"),
        ({"complaint_type": "shortness_of_breath"}, "pulmonology", "complaint.respiratory"),
        ({"complaint_type": "skin_rash"}, "dermatology", "complaint.skin"),
        ({"complaint_type": "womens_health"}, "gynecology", "complaint.womens_health"),
        ({"complaint": "my heart is racing"}, "cardiology", "keyword.cardiac"),
        ({"complaint": "baby not feeding"}, "pediatrics", "keyword.pediatric"),
        ({"complaint": "feeling unwell", "age": 6}, "pediatrics", "keyword.pediatric"),
        ({"complaint": "pait mein jalan"}, "gastroenterology", "keyword.digestive"),
        ({"complaint": "ringing in my ears"}, "ent", "keyword.ent"),
        ({"complaint": "feeling depressed"}, "psychiatry", "keyword.mental_health"),
        ({"complaint": "pain", "categories": ("abdomen",)}, "gastroenterology", "zone.abdomen"),
        ({"complaint": "pain", "categories": ("lower_extremity",)}, "orthopedics", "zone.back"),
        ({"complaint": "tired all the time"}, "general_medicine", "default"),
    ],
)
def test_packaged_routing_table(bundle_kwargs, specialty, rule_id):
    assert get_router().route(_bundle(**bundle_kwargs), pediatric_age_limit=18) == (specialty, rule_id)


def test_structured_complaint_outranks_keywords_and_zones():
    bundle = _bundle("skin itching near my heart", complaint_type="chest_pain", categories=("abdomen",))
    assert get_router().route(bundle, 18)[0] == "cardiology"


def test_no_substring_false_positives():
    # "early" contains "ear", "heartburn" contains "heart"
    assert get_router().route(_bundle("woke up early with heartburn"), 18) == ("general_medicine", "default")


def test_first_matching_rule_wins():
    router = SpecialtyRouter(
        [
            SpecialtyRule(id="first", specialty="ent", keywords=("throat",)),
            SpecialtyRule(id="second", specialty="pulmonology", keywords=("throat",)),
        ]
    )
    assert router.route(_bundle("sore throat"), 18) == ("ent", "first")
    assert router.route(_bundle("nothing"), 18) == ("general_medicine", "default")


def test_labels_and_adjacency():
    router = get_router()
    assert router.label("ent", "en") == "ENT"
    assert router.label("cardiology", "ur") != router.label("cardiology", "en")
    assert router.label("unknown_specialty") == "unknown_specialty"
    assert router.is_adjacent("cardiology", "pulmonology")
    assert not router.is_adjacent("cardiology", "dermatology")


@pytest.mark.parametrize(
    "text, keyword, expected",
    [
        ("ear pain", "ear", True),
        ("early morning", "ear", False),
        ("heart", "ear", False),
        ("depression", "depress*", True),
        ("Sore Throat!", "sore throat", True),
        ("سینے میں درد ہے", "سینے میں درد", True),
        ("anything", "*", False),
    ],
)
def test_matches_keyword(text, keyword, expected):
    assert matches_keyword(text, keyword) is expected


def test_normalize_text():
    assert normalize_text("  Dói   NO Peito! ") == "doi no peito"
    assert normalize_text("chest_pain") == "chest pain"
    assert normalize_text(None) == ""


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Chest pain since morning", "chest_pain"),
        ("seene mein dard", "chest_pain"),
        ("left arm numbness", "neuro_deficit"),
        ("bukhar aur khansi", "fever"),
        ("earache", "ear_nose_throat"),
        ("pregnancy check", "womens_health"),
        ("trouble breathing", "shortness_of_breath"),
        ("I can't breathe", "shortness_of_breath"),
        ("breathing difficulty since last night", "shortness_of_breath"),
        ("pain in my chest", "chest_pain"),
        ("", "other"),
        ("something vague", "other"),
    ],
)
def test_map_complaint_type(text, expected):
    assert map_complaint_type(text) == expected


def test_map_complaint_type_custom_default():
    assert map_complaint_type("something vague", default=None) is None


def test_complaint_type_read_off_text_is_left_to_keyword_rules():
    bundle = EncounterBundle(
        correlation_id="route",
        chief_complaint="skin rash",
        complaint_type="skin_rash",
        complaint_type_inferred=True,
        age=8,
    )
    assert get_router().route(bundle, 18) == ("pediatrics", "keyword.pediatric")
    adult = bundle.model_copy(update={"age": 40})
    assert get_router().route(adult, 18) == ("dermatology", "keyword.skin")


@pytest.mark.parametrize(
    "complaint, specialty",
    [("trouble breathing", "pulmonology"), ("sar dard", "neurology"), ("burning urine", "urology")],
)
def test_adult_free_text_keywords(complaint, specialty):
    assert get_router().route(_bundle(complaint, age=40), 18)[0] == specialty
