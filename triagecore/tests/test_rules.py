from __future__ import annotations

import pytest

from triagecore.core.errors import RuleEvaluationError
from triagecore.core.rules.engine import ClinicalRuleSet, build_variables, default_rule_set, evaluate_clinical_rules
from triagecore.schemas.intake import EncounterBundle, SelectionSnapshot


def _bundle(**overrides):
    payload = dict(correlation_id="rules", chief_complaint="test")
    payload.update(overrides)
    return EncounterBundle(**payload)


def _snapshot(zone_id, category, intensity=5, onset="gradual", radiation=()):
    return SelectionSnapshot(
        zone_id=zone_id, category=category, zone_priority=8, intensity=intensity, onset=onset, radiation=radiation
    )


def test_packaged_rules_compile():
    rules = default_rule_set().rules
    assert len(rules) == len({rule.id for rule in rules})
    assert {rule.severity for rule in rules} <= {"CRITICAL", "HIGH", "MODERATE"}


def test_meningeal_signs_need_both_symptoms():
    flags = evaluate_clinical_rules(_bundle(associated_symptoms=("fever", "neck_stiffness")))
    assert [flag.id for flag in flags] == ["meningeal_signs"]
    assert flags[0].severity == "CRITICAL"
    assert evaluate_clinical_rules(_bundle(associated_symptoms=("fever",))) == ()


def test_thunderclap_headache():
    bundle = _bundle(selections=(_snapshot("head_neck.occipital", "head_neck", intensity=9, onset="sudden"),), onset="sudden")
    assert "thunderclap_headache" in {flag.id for flag in evaluate_clinical_rules(bundle)}


def test_cardiac_radiation_uses_typed_zone_ids():
    bundle = _bundle(
        selections=(_snapshot("chest.retrosternal", "chest", radiation=("head_neck.left_jaw",)),),
    )
    assert "cardiac_radiation" in {flag.id for flag in evaluate_clinical_rules(bundle)}
    bundle = _bundle(
        selections=(_snapshot("chest.retrosternal", "chest", radiation=("head_neck.right_jaw",)),),
    )
    assert "cardiac_radiation" not in {flag.id for flag in evaluate_clinical_rules(bundle)}


def test_unknown_age_never_matches_age_rules():
    bundle = _bundle(associated_symptoms=("fever",))
    assert "infant_fever" not in {flag.id for flag in evaluate_clinical_rules(bundle)}
    bundle = _bundle(associated_symptoms=("fever",), age=0)
    assert "infant_fever" in {flag.id for flag in evaluate_clinical_rules(bundle)}


def test_build_variables_deduplicates_radiation():
    bundle = _bundle(
        selections=(
            _snapshot("chest.retrosternal", "chest", radiation=("upper_extremity.left_arm",)),
            _snapshot("chest.left_parasternal", "chest", radiation=("upper_extremity.left_arm",)),
        ),
    )
    variables = build_variables(bundle)
    assert variables["radiation_zones"] == ("upper_extremity.left_arm",)
    assert variables["zone_categories"] == ("chest",)


@pytest.mark.parametrize(
    "expression",
    [
        "__import__('os').system('true')",
        "max_intensity.real > 1",
        "vitals > 3",
        "max_intensity + 1 > 3",
        "[x for x in symptoms]",
    ],
)
def test_unsafe_expressions_rejected_at_load(expression):
    records = [{"id": "bad", "when": expression, "then": {"severity": "HIGH", "description": "bad"}}]
    with pytest.raises(RuleEvaluationError):
        ClinicalRuleSet.from_records(records)


def test_syntax_error_rejected():
    with pytest.raises(RuleEvaluationError):
        ClinicalRuleSet.from_records([{"id": "bad", "when": "age >", "then": {"severity": "HIGH"}}])


def test_incomplete_duplicate_and_invalid_severity_rejected():
    with pytest.raises(RuleEvaluationError):
        ClinicalRuleSet.from_records([{"id": "x", "when": "age > 1"}])
    rule = {"id": "x", "when": "age > 1", "then": {"severity": "HIGH"}}
    with pytest.raises(RuleEvaluationError):
        ClinicalRuleSet.from_records([rule, rule])
    with pytest.raises(RuleEvaluationError):
        ClinicalRuleSet.from_records([{"id": "x", "when": "age > 1", "then": {"severity": "LOW"}}])


def test_custom_rule_set_is_used():
    rule_set = ClinicalRuleSet.from_records(
        [
            {
                "id": "elderly_any",
                "when": "age >= 80 and not worsening",
                "then": {"severity": "MODERATE", "description": "Elderly patient", "description_ur": "بزرگ مریض"},
            }
        ]
    )
    flags = evaluate_clinical_rules(_bundle(age=85), rule_set)
    assert [(flag.id, flag.source, flag.description_ur) for flag in flags] == [
        ("elderly_any", "clinical_rule", "بزرگ مریض")
    ]
