"""Pipeline orchestrator: validate -> classify -> filter/gate -> score -> audit.

Every collaborator is passed in explicitly; nothing here holds global state.
Each decision stage writes exactly one audit entry under the request's
correlation id.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, NoReturn, Optional, Tuple, Union

from ..schemas.intake import EncounterBundle, RedFlagFinding, SelectionSet, SelectionSetReport
from ..schemas.providers import (
    EligibilityDecision,
    GeoPoint,
    MatchCriteria,
    ProviderRoster,
    SafeModes,
    ScoredProvider,
)
from ..schemas.triage import AppointmentUrgencyContext, TriageResult
from .audit.logger import AuditLogger
from .audit.sinks import InMemoryAuditSink, JsonlAuditSink
from .config import Settings, get_settings
from .errors import AuditWriteFailure, RosterUnavailableError, TriageCoreError
from .intake.phases import assemble_encounter
from .matching.eligibility import filter_eligible
from .matching.safety_gate import OnlineSafetyGate
from .matching.scoring import rank_providers
from .registry.zones import BodyZoneRegistry, get_registry
from .rules.engine import ClinicalRuleSet, default_rule_set
from .triage.classifier import TriageClassifier
from .validation.selection import (
    calculate_triage_score,
    check_red_flags,
    requires_emergency_attention,
    validate_selection_set,
)

__all__ = ["TriageRequest", "TriageOutcome", "MatchOutcome", "TriagePipeline"]

logger = logging.getLogger(__name__)

RosterSource = Union[ProviderRoster, Callable[[], ProviderRoster]]
ALL_MODES: Tuple[str, ...] = ("ONLINE", "PHYSICAL")


@dataclass(frozen=True)
class TriageRequest:
    selection_set: SelectionSet
    phases: Tuple[Any, ...] = ()
    modes: Tuple[str, ...] = ALL_MODES
    location: Optional[GeoPoint] = None
    triage_category: Optional[str] = None
    priority_score: Optional[int] = None
    limit: Optional[int] = None
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class TriageOutcome:
    correlation_id: str
    report: SelectionSetReport
    findings: Tuple[RedFlagFinding, ...]
    encounter: EncounterBundle
    result: TriageResult
    safe_modes: SafeModes
    urgency_context: AppointmentUrgencyContext
    requires_emergency_attention: bool
    triage_score: float
    guidance: Tuple[str, ...] = ()
    audit_failures: Tuple[AuditWriteFailure, ...] = ()


@dataclass(frozen=True)
class MatchOutcome:
    triage: TriageOutcome
    providers: Tuple[ScoredProvider, ...]
    eligibility: Tuple[EligibilityDecision, ...]
    online_removed: Tuple[str, ...] = ()
    audit_failures: Tuple[AuditWriteFailure, ...] = ()

    @property
    def correlation_id(self) -> str:
        return self.triage.correlation_id

    @property
    def no_eligible_providers(self) -> bool:
        return not self.providers


class TriagePipeline:
    def __init__(
        self,
        audit: AuditLogger,
        roster_source: Optional[RosterSource] = None,
        *,
        settings: Optional[Settings] = None,
        registry: Optional[BodyZoneRegistry] = None,
        classifier: Optional[TriageClassifier] = None,
        gate: Optional[OnlineSafetyGate] = None,
        rule_set: Optional[ClinicalRuleSet] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.audit = audit
        self.roster_source = roster_source
        self.settings = settings if settings is not None else get_settings()
        self.registry = registry if registry is not None else get_registry()
        self.classifier = classifier if classifier is not None else TriageClassifier(settings=self.settings)
        self.gate = gate if gate is not None else OnlineSafetyGate()
        self.rule_set = rule_set if rule_set is not None else default_rule_set()
        self._clock = clock

    @classmethod
    def from_settings(
        cls, roster_source: Optional[RosterSource] = None, settings: Optional[Settings] = None
    ) -> "TriagePipeline":
        """Pipeline with packaged content and an audit sink chosen from *settings*."""

        settings = settings if settings is not None else get_settings()
        if settings.audit_log_path is not None:
            sink = JsonlAuditSink(settings.audit_log_path)
        else:
            sink = InMemoryAuditSink()
        return cls(AuditLogger(sink), roster_source, settings=settings)

    # -- stages ------------------------------------------------------------

    def triage(self, request: TriageRequest) -> TriageOutcome:
        """Validate and classify only; no provider matching."""

        cid = request.correlation_id
        selection_set = request.selection_set
        try:
            report = validate_selection_set(selection_set, self.registry)
        except TriageCoreError as exc:
            self.audit.log(
                "VALIDATION_REJECTED",
                exc.message("en"),
                {"error": exc.code, "field": exc.field, **exc.details},
                correlation_id=cid,
            )
            logger.warning("Selection rejected: correlation_id=%s code=%s", cid, exc.code)
            raise

        findings = check_red_flags(selection_set, self.registry)
        emergency_attention = requires_emergency_attention(selection_set, self.registry)
        score = calculate_triage_score(selection_set, self.registry)
        self.audit.log(
            "SELECTION_VALIDATED",
            f"{report.selection_count} selection(s) accepted",
            {
                "zone_ids": list(report.zone_ids),
                "warnings": [warning.code for warning in report.warnings],
                "red_flag_findings": [f"{item.zone_id}:{item.trigger}" for item in findings],
                "requires_emergency_attention": emergency_attention,
                "triage_score": round(score, 4),
            },
            correlation_id=cid,
        )

        bundle = assemble_encounter(
            selection_set,
            request.phases,
            findings,
            correlation_id=cid,
            triage_category=request.triage_category,
            priority_score=request.priority_score,
            registry=self.registry,
            rule_set=self.rule_set,
        )
        result = self.classifier.classify(bundle)
        safe_modes = self.gate.safe_modes(result, bundle.complaint_type)
        context = self.classifier.to_urgency_context(result, safe_modes.blocked)
        self.audit.log(
            "EMERGENCY_REDIRECT" if result.is_emergency else "TRIAGE_CLASSIFIED",
            f"urgency={result.urgency} specialty={result.recommended_specialty}",
            {
                "category": result.category,
                "urgency": result.urgency,
                "priority_score": result.priority_score,
                "specialty": result.recommended_specialty,
                "specialty_rule": result.matched_specialty_rule,
                "emergency_action": result.emergency_action,
                "override_reasons": list(result.override_reasons),
                "red_flags": [flag.id for flag in result.red_flags],
            },
            correlation_id=cid,
        )
        return TriageOutcome(
            correlation_id=cid,
            report=report,
            findings=findings,
            encounter=bundle,
            result=result,
            safe_modes=safe_modes,
            urgency_context=context,
            requires_emergency_attention=emergency_attention,
            triage_score=score,
            guidance=self.gate.explain(safe_modes.reasons, self.settings.default_locale),
            audit_failures=self.audit.failures_for(cid),
        )

    def _load_roster(self, cid: str) -> ProviderRoster:
        source = self.roster_source
        if source is None:
            self._reject_roster(cid, "no roster configured")
        try:
            roster = source() if callable(source) else source
        except Exception as exc:  # noqa: BLE001
            self._reject_roster(cid, f"fetch failed: {type(exc).__name__}: {exc}", cause=exc)
        fetched_at = roster.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        age = (self._clock() - fetched_at).total_seconds()
        if age > self.settings.roster_max_age_seconds:
            self._reject_roster(cid, f"roster is {age:.0f}s old", age_seconds=round(age, 1))
        return roster

    def _reject_roster(self, cid: str, reason: str, cause: Optional[BaseException] = None, **details: Any) -> NoReturn:
        self.audit.log("ROSTER_REJECTED", reason, details, correlation_id=cid)
        logger.warning("Roster rejected: correlation_id=%s reason=%s", cid, reason)
        raise RosterUnavailableError(reason, **details) from cause

    def match(self, request: TriageRequest, outcome: TriageOutcome) -> MatchOutcome:
        cid = outcome.correlation_id
        roster = self._load_roster(cid)
        bundle = outcome.encounter
        criteria = MatchCriteria(
            specialty=outcome.result.recommended_specialty,
            age=bundle.age,
            gender=bundle.gender,
            preferred_language=bundle.preferred_language,
            location=request.location,
        )

        pairs, decisions = filter_eligible(
            roster.providers, criteria, request.modes, self.settings.pediatric_age_limit
        )
        self.audit.log(
            "ELIGIBILITY_FILTERED",
            f"{len(pairs)} of {len(decisions)} provider option(s) eligible",
            {
                "specialty": criteria.specialty,
                "modes": list(request.modes),
                "roster_source": roster.source,
                "excluded": {
                    f"{decision.provider_id}/{decision.mode}": list(decision.reasons)
                    for decision in decisions
                    if not decision.eligible
                },
            },
            correlation_id=cid,
        )

        kept, removed, safe_modes = self.gate.apply(pairs, outcome.result, bundle.complaint_type)
        removed_keys = tuple(f"{provider.id}/{mode}" for provider, mode in removed)
        gate_metadata: Dict[str, Any] = {
            "allowed_modes": list(safe_modes.allowed),
            "primary_mode": safe_modes.primary,
            "reasons": list(safe_modes.reasons),
            "removed": list(removed_keys),
        }
        if safe_modes.blocked:
            self.audit.log("ONLINE_BLOCKED", "; ".join(safe_modes.reasons), gate_metadata, correlation_id=cid)
        else:
            self.audit.log("SAFETY_GATE_PASSED", "online consultation allowed", gate_metadata, correlation_id=cid)

        ranked = rank_providers(
            kept,
            criteria,
            request.limit,
            router=self.classifier.router,
            settings=self.settings,
        )
        if ranked:
            self.audit.log(
                "PROVIDERS_RANKED",
                f"{len(ranked)} provider option(s) ranked",
                {
                    "ranking": [
                        {"provider_id": item.provider.id, "mode": item.mode, "score": item.score}
                        for item in ranked
                    ]
                },
                correlation_id=cid,
            )
        else:
            self.audit.log(
                "NO_ELIGIBLE_PROVIDERS",
                "no provider satisfies eligibility and safety rules",
                {"specialty": criteria.specialty, "modes": list(safe_modes.allowed)},
                correlation_id=cid,
            )
        return MatchOutcome(
            triage=outcome,
            providers=ranked,
            eligibility=decisions,
            online_removed=removed_keys,
            audit_failures=self.audit.failures_for(cid),
        )

    # -- entry points ------------------------------------------------------

    def run(self, request: TriageRequest) -> MatchOutcome:
        """Full pipeline, strictly in order and without retries."""

        outcome = self.triage(request)
        return self.match(request, outcome)

    def recommend_all_modes(self, request: TriageRequest) -> Dict[str, MatchOutcome]:
        """Run the match once per consultation mode, sharing one classification."""

        outcome = self.triage(request)
        results: Dict[str, MatchOutcome] = {}
        for mode in request.modes:
            per_mode = TriageRequest(
                selection_set=request.selection_set,
                phases=request.phases,
                modes=(mode,),
                location=request.location,
                triage_category=request.triage_category,
                priority_score=request.priority_score,
                limit=request.limit,
                correlation_id=request.correlation_id,
            )
            results[mode] = self.match(per_mode, outcome)
        return results
