"""Clinical condition rules over typed intake answers."""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ...content import load_pack
from ...schemas.intake import DetectedRedFlag, EncounterBundle
from ..errors import RuleEvaluationError

__all__ = [
    "ClinicalRule",
    "ClinicalRuleSet",
    "build_variables",
    "default_rule_set",
    "evaluate_clinical_rules",
]

logger = logging.getLogger(__name__)


_ALLOWED_NAMES = {
    "zone_ids",
    "zone_categories",
    "radiation_zones",
    "symptoms",
    "max_intensity",
    "onset",
    "worsening",
    "age",
    "complaint_type",
}
_ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.And,
    ast.Or,
    ast.UnaryOp,
    ast.Not,
    ast.Compare,
    ast.Lt,
    ast.Gt,
    ast.LtE,
    ast.GtE,
    ast.Eq,
    ast.NotEq,
    ast.In,
    ast.NotIn,
    ast.Name,
    ast.Load,
    ast.Constant,
)


class _SafeEvaluator(ast.NodeVisitor):
    def __init__(self, variables: Mapping[str, Any]):
        self.variables = variables

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_BoolOp(self, node: ast.BoolOp) -> bool:
        if isinstance(node.op, ast.And):
            return all(bool(self.visit(value)) for value in node.values)
        if isinstance(node.op, ast.Or):
            return any(bool(self.visit(value)) for value in node.values)
        raise RuleEvaluationError(f"Unsupported boolean operator: {node.op!r}")

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.Not):
            return not bool(operand)
        raise RuleEvaluationError(f"Unsupported unary operator: {node.op!r}")

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for operator, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if left is None or right is None:
                return False
            if isinstance(operator, ast.Lt):
                comparison = left < right
            elif isinstance(operator, ast.Gt):
                comparison = left > right
            elif isinstance(operator, ast.LtE):
                comparison = left <= right
            elif isinstance(operator, ast.GtE):
                comparison = left >= right
            elif isinstance(operator, ast.Eq):
                comparison = left == right
            elif isinstance(operator, ast.NotEq):
                comparison = left != right
            elif isinstance(operator, ast.In):
                comparison = left in right
            elif isinstance(operator, ast.NotIn):
                comparison = left not in right
            else:
                raise RuleEvaluationError(f"Unsupported comparator: {operator!r}")
            if not comparison:
                return False
            left = right
        return True

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id not in _ALLOWED_NAMES:
            raise RuleEvaluationError(f"Variable '{node.id}' not allowed in rule")
        return self.variables.get(node.id)

    def visit_Constant(self, node: ast.Constant) -> Any:  # pragma: no cover - trivial
        return node.value

    def generic_visit(self, node: ast.AST) -> Any:
        raise RuleEvaluationError(f"Unsupported syntax in rule: {ast.dump(node)}")


def _compile(rule_id: str, expression: str) -> ast.Expression:
    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError as exc:
        raise RuleEvaluationError(f"Rule '{rule_id}' does not parse: {exc.msg}") from exc
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise RuleEvaluationError(f"Rule '{rule_id}' uses unsupported syntax: {type(node).__name__}")
        if isinstance(node, ast.Name) and node.id not in _ALLOWED_NAMES:
            raise RuleEvaluationError(f"Rule '{rule_id}' uses unknown variable '{node.id}'")
    return tree


@dataclass(frozen=True)
class ClinicalRule:
    id: str
    when: str
    severity: str
    description: str
    description_ur: str
    tree: ast.Expression

    def matches(self, variables: Mapping[str, Any]) -> bool:
        return bool(_SafeEvaluator(variables).visit(self.tree))

    def to_flag(self) -> DetectedRedFlag:
        return DetectedRedFlag(
            id=self.id,
            description=self.description,
            description_ur=self.description_ur,
            severity=self.severity,
            source="clinical_rule",
        )


class ClinicalRuleSet:
    """Ordered clinical rules, compiled and checked when loaded."""

    def __init__(self, rules: Iterable[ClinicalRule]):
        self.rules: Tuple[ClinicalRule, ...] = tuple(rules)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "ClinicalRuleSet":
        rules: List[ClinicalRule] = []
        seen = set()
        for record in records:
            rule_id = record.get("id")
            condition = record.get("when")
            decision = record.get("then") or {}
            if not rule_id or not condition or not decision:
                raise RuleEvaluationError(f"Incomplete clinical rule: {record!r}")
            if rule_id in seen:
                raise RuleEvaluationError(f"Duplicate clinical rule id '{rule_id}'")
            seen.add(rule_id)
            if decision.get("severity") not in ("CRITICAL", "HIGH", "MODERATE"):
                raise RuleEvaluationError(f"Rule '{rule_id}' has an invalid severity")
            rules.append(
                ClinicalRule(
                    id=rule_id,
                    when=condition,
                    severity=decision["severity"],
                    description=decision.get("description", rule_id),
                    description_ur=decision.get("description_ur", ""),
                    tree=_compile(rule_id, condition),
                )
            )
        return cls(rules)

    @classmethod
    def from_pack(cls, pack_id: str = "clinical_rules") -> "ClinicalRuleSet":
        return cls.from_records(load_pack(pack_id).get("rules", []) or [])

    def evaluate(self, variables: Mapping[str, Any]) -> Tuple[DetectedRedFlag, ...]:
        hits = [rule.to_flag() for rule in self.rules if rule.matches(variables)]
        if hits:
            logger.info("Clinical rules matched: %s", ", ".join(flag.id for flag in hits))
        return tuple(hits)


@lru_cache(maxsize=1)
def default_rule_set() -> ClinicalRuleSet:
    return ClinicalRuleSet.from_pack()


def build_variables(bundle: EncounterBundle) -> Dict[str, Any]:
    radiation = []
    for selection in bundle.selections:
        radiation.extend(selection.radiation)
    return {
        "zone_ids": tuple(selection.zone_id for selection in bundle.selections),
        "zone_categories": bundle.zone_categories,
        "radiation_zones": tuple(dict.fromkeys(radiation)),
        "symptoms": bundle.associated_symptoms,
        "max_intensity": bundle.max_intensity,
        "onset": bundle.onset,
        "worsening": bundle.worsening,
        "age": bundle.age,
        "complaint_type": bundle.complaint_type,
    }


def evaluate_clinical_rules(
    bundle: EncounterBundle, rule_set: Optional[ClinicalRuleSet] = None
) -> Tuple[DetectedRedFlag, ...]:
    """Red flags raised by the clinical rules for *bundle*, one per rule id."""

    rule_set = rule_set if rule_set is not None else default_rule_set()
    return rule_set.evaluate(build_variables(bundle))
