"""
Compliance Oracle Suite.

Five deterministic benchmarks that pin the engine's governance behavior:

    hypothesis_falsification     — lifecycle transitions and leak integrity (≥ 0.95)
    counterfactual_stability     — sign and ranking across edge orderings (≥ 0.90)
    intervention_value_dominance — leverage beats novelty in ranking (≥ 0.95)
    identifiability_compliance   — disclosure gate on canonical scenarios (= 1.0)
    overclaim_compliance         — no certainty leak or unsupported banner (≥ 0.95)

The compliance gate blocks release unless overclaim and identifiability
both meet their thresholds. Every triggered failure condition is assigned
to the engine component that owns it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Optional

from .domain import EdgeSign, Hypothesis, LifecycleState, NodeKind, OutputClass
from .evidence import ValidationMetrics, ValidationResult
from .gates.disclosure import evaluate_intervention_gate
from .gates.overclaim import (
    CERTAINTY_LANGUAGE_PATTERN,
    EvidenceClass,
    StatusBanner,
    build_causal_output,
)
from .graph.model import CausalGraphModel
from .graph.structure import CausalEdge, CausalNode
from .lifecycle import is_recommendation_eligible, lifecycle_state, order_for_recommendation

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

FALSIFICATION_THRESHOLD = 0.95
COUNTERFACTUAL_STABILITY_THRESHOLD = 0.9
INTERVENTION_DOMINANCE_THRESHOLD = 0.95
IDENTIFIABILITY_COMPLIANCE_THRESHOLD = 1.0
OVERCLAIM_THRESHOLD = 0.95

DOMINANCE_SCENARIOS = 20


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class BenchmarkOutcome:
    name: str
    metrics: dict[str, float]
    failure_conditions: list[str] = field(default_factory=list)
    passed: bool = False


@dataclass
class ComplianceAxis:
    name: str
    observed: float
    threshold: float
    passed: bool


@dataclass
class ComplianceGate:
    passed: bool
    axes: list[ComplianceAxis]
    blocking_reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FailureOwnership:
    condition: str
    owner: str
    severity: str


@dataclass
class OracleReport:
    outcomes: list[BenchmarkOutcome]
    compliance: ComplianceGate
    ownership: list[FailureOwnership] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.compliance.passed and all(o.passed for o in self.outcomes)

    def outcome(self, name: str) -> Optional[BenchmarkOutcome]:
        return next((o for o in self.outcomes if o.name == name), None)


# =============================================================================
# FIXTURES
# =============================================================================

BENCHMARK_HYPOTHESIS = Hypothesis(
    id="benchmark-idea",
    thesis="Targeted intervention on a treatment variable improves outcome under controlled confounders.",
    mechanism="Treatment shifts mediator states that propagate toward the outcome node.",
    prediction="If Treatment is raised by one unit, Outcome increases under matched controls.",
    falsifier="Reject if repeated interventions fail to shift Outcome by at least 0.2 under matched controls.",
    intervention_value_score=0.8,
    identifiability_score=0.72,
    description="Benchmark hypothesis for deterministic causal governance checks.",
    bridged_concepts=("Treatment", "Outcome"),
    do_plan="Estimate E[Outcome | do(Treatment=+1)] with controlled confounders.",
    confidence=70,
)

SIGNIFICANT_VALIDATION = ValidationResult(True, ValidationMetrics(p_value=0.01, conclusion_valid=True))


def build_benchmark_hypothesis(**overrides) -> Hypothesis:
    return replace(BENCHMARK_HYPOTHESIS, **overrides)


def build_confounded_model() -> CausalGraphModel:
    """Confounder → Treatment, Confounder → Outcome, Treatment → Outcome."""
    return CausalGraphModel(
        nodes=[
            CausalNode("Confounder", NodeKind.EXOGENOUS, "abstract"),
            CausalNode("Treatment", NodeKind.INTERVENTION, "abstract"),
            CausalNode("Outcome", NodeKind.OBSERVABLE, "abstract"),
        ],
        edges=[
            CausalEdge("Confounder", "Treatment", "causality", False, EdgeSign.POSITIVE, 0.8),
            CausalEdge("Confounder", "Outcome", "causality", False, EdgeSign.POSITIVE, 0.8),
            CausalEdge("Treatment", "Outcome", "causality", False, EdgeSign.POSITIVE, 0.9),
        ],
        model_id="benchmark:confounded",
    )


# =============================================================================
# BENCHMARK 1: HYPOTHESIS FALSIFICATION
# =============================================================================

def evaluate_hypothesis_falsification() -> BenchmarkOutcome:
    scenarios = [
        (build_benchmark_hypothesis(id="hf-proposed"), LifecycleState.PROPOSED),
        (build_benchmark_hypothesis(id="hf-tested", validation_result=SIGNIFICANT_VALIDATION),
         LifecycleState.TESTED),
        (build_benchmark_hypothesis(id="hf-falsified-failure", validation_result=ValidationResult(False)),
         LifecycleState.FALSIFIED),
        (build_benchmark_hypothesis(
            id="hf-falsified-pvalue",
            validation_result=ValidationResult(True, ValidationMetrics(p_value=0.4, conclusion_valid=True)),
        ), LifecycleState.FALSIFIED),
        (build_benchmark_hypothesis(id="hf-retracted-short-falsifier", falsifier="too short"),
         LifecycleState.RETRACTED),
        (build_benchmark_hypothesis(id="hf-retracted-missing-falsifier", falsifier=None),
         LifecycleState.RETRACTED),
    ]

    correct = accepted = accepted_with_falsifier = leaks = 0
    for hypothesis, expected in scenarios:
        state = lifecycle_state(hypothesis)
        if state is expected:
            correct += 1
        eligible = is_recommendation_eligible(hypothesis)
        if eligible:
            accepted += 1
            if hypothesis.has_valid_falsifier:
                accepted_with_falsifier += 1
            if state in (LifecycleState.FALSIFIED, LifecycleState.RETRACTED):
                leaks += 1

    transition_accuracy = correct / len(scenarios)
    falsifier_coverage = accepted_with_falsifier / accepted if accepted else 1.0
    leak_integrity = 1 - leaks / len(scenarios)
    rate = round(min(transition_accuracy, falsifier_coverage, leak_integrity), 4)

    failures = []
    if transition_accuracy < FALSIFICATION_THRESHOLD:
        failures.append("Hypothesis lifecycle transitions are inconsistent with falsifier outcomes.")
    if falsifier_coverage < FALSIFICATION_THRESHOLD:
        failures.append("Accepted hypotheses are missing machine-checkable falsifiers.")
    if leaks:
        failures.append("Falsified or retracted hypotheses leaked into recommendation-eligible set.")

    return BenchmarkOutcome(
        "hypothesis_falsification",
        {"hypothesis_falsification_rate": rate},
        failures,
        rate >= FALSIFICATION_THRESHOLD,
    )


# =============================================================================
# BENCHMARK 2: COUNTERFACTUAL STABILITY
# =============================================================================

def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def evaluate_counterfactual_stability() -> BenchmarkOutcome:
    """Same DAG, three edge orderings; deltas must keep sign and ranking."""
    nodes = [
        CausalNode("HoursStudied", NodeKind.INTERVENTION, "abstract"),
        CausalNode("Motivation", NodeKind.INTERVENTION, "abstract"),
        CausalNode("PriorKnowledge", NodeKind.EXOGENOUS, "abstract"),
        CausalNode("StudyHabits", NodeKind.OBSERVABLE, "abstract"),
        CausalNode("ExamScore", NodeKind.OBSERVABLE, "abstract"),
    ]
    base_edges = [
        CausalEdge("HoursStudied", "StudyHabits", "causality", False, EdgeSign.POSITIVE, 0.9),
        CausalEdge("Motivation", "StudyHabits", "causality", False, EdgeSign.POSITIVE, 0.7),
        CausalEdge("StudyHabits", "ExamScore", "causality", False, EdgeSign.POSITIVE, 1.1),
        CausalEdge("PriorKnowledge", "HoursStudied", "causality", False, EdgeSign.POSITIVE, 0.5),
        CausalEdge("PriorKnowledge", "ExamScore", "causality", False, EdgeSign.POSITIVE, 0.6),
    ]
    variants = [
        base_edges,
        list(reversed(base_edges)),
        [base_edges[i] for i in (2, 0, 4, 1, 3)],
    ]
    interventions = [("HoursStudied", 1.2), ("Motivation", 1.0)]
    observed = {"ExamScore": 6.1, "HoursStudied": 0.6, "Motivation": 0.7}

    baseline_signs: dict[str, int] = {}
    sign_matches: list[bool] = []
    rankings: list[str] = []

    for index, edges in enumerate(variants):
        model = CausalGraphModel(nodes, edges, model_id=f"benchmark:cf-{index}")
        scored = []
        for variable, value in interventions:
            result = model.query_counterfactual(variable, value, "ExamScore", observed)
            sign = _sign(result.difference)
            if index == 0:
                baseline_signs[variable] = sign
            else:
                sign_matches.append(baseline_signs[variable] == sign)
            scored.append((variable, result.difference))
        ranking = sorted(scored, key=lambda item: -abs(item[1]))
        rankings.append(">".join(variable for variable, _ in ranking))

    sign_stability = sum(sign_matches) / len(sign_matches) if sign_matches else 1.0
    ranking_stability = rankings.count(rankings[0]) / len(rankings)

    failures = []
    if sign_stability < COUNTERFACTUAL_STABILITY_THRESHOLD:
        failures.append("Counterfactual delta sign changed across semantically equivalent DAG variants.")
    if ranking_stability < COUNTERFACTUAL_STABILITY_THRESHOLD:
        failures.append("Counterfactual intervention ranking changed across semantically equivalent DAG variants.")

    return BenchmarkOutcome(
        "counterfactual_stability",
        {
            "counterfactual_stability": round(sign_stability, 4),
            "counterfactual_ranking_stability": round(ranking_stability, 4),
        },
        failures,
        not failures,
    )


# =============================================================================
# BENCHMARK 3: INTERVENTION VALUE DOMINANCE
# =============================================================================

def evaluate_intervention_value_dominance() -> BenchmarkOutcome:
    """A high-novelty, low-leverage idea must never outrank a high-leverage one."""
    dominant = 0
    failures = []
    for i in range(DOMINANCE_SCENARIOS):
        novelty_favored = build_benchmark_hypothesis(
            id=f"ivr-novelty-{i}",
            thesis=f"High novelty hypothesis {i}",
            novelty_score=92 - i * 0.4,
            intervention_value_score=0.18 + i * 0.002,
            identifiability_score=0.58,
            confidence=78,
        )
        intervention_favored = build_benchmark_hypothesis(
            id=f"ivr-intervention-{i}",
            thesis=f"High intervention leverage hypothesis {i}",
            novelty_score=36 + i * 0.2,
            intervention_value_score=0.84 - i * 0.003,
            identifiability_score=0.74,
            confidence=74,
        )
        ranked = order_for_recommendation([novelty_favored, intervention_favored])
        top = next((h for h in ranked if is_recommendation_eligible(h)), None)
        if top is not None and top.id == intervention_favored.id:
            dominant += 1
        else:
            failures.append(f"Intervention-value ranking drift detected in scenario {i + 1}.")

    rate = round(dominant / DOMINANCE_SCENARIOS, 4)
    if rate < INTERVENTION_DOMINANCE_THRESHOLD:
        failures.append("Intervention leverage failed to dominate novelty in ranking conflicts.")

    return BenchmarkOutcome(
        "intervention_value_dominance",
        {"intervention_value_dominance_rate": rate},
        failures,
        rate >= INTERVENTION_DOMINANCE_THRESHOLD,
    )


# =============================================================================
# BENCHMARK 4: IDENTIFIABILITY GATE COMPLIANCE
# =============================================================================

def evaluate_identifiability_compliance() -> BenchmarkOutcome:
    model = build_confounded_model()
    scenarios = [
        ("missing_required_confounder",
         dict(adjustment_set=[], known_confounders=["Confounder"]),
         False, OutputClass.INTERVENTION_INFERRED),
        ("no_controls",
         dict(),
         False, OutputClass.ASSOCIATION_ONLY),
        ("fully_identified",
         dict(adjustment_set=["Confounder"], known_confounders=["Confounder"],
              validation=SIGNIFICANT_VALIDATION),
         True, OutputClass.INTERVENTION_SUPPORTED),
        ("partial_controls",
         dict(adjustment_set=["OtherCovariate"], known_confounders=["Confounder"]),
         False, OutputClass.INTERVENTION_INFERRED),
    ]

    correct = 0
    failures = []
    for label, kwargs, expected_allowed, expected_class in scenarios:
        result = evaluate_intervention_gate(model, "Treatment", "Outcome", **kwargs)
        if result.allowed == expected_allowed and result.output_class is expected_class:
            correct += 1
        else:
            failures.append(
                f"Identifiability gate mismatch for {label}: expected {expected_class.value}."
            )

    rate = round(correct / len(scenarios), 4)
    if rate < IDENTIFIABILITY_COMPLIANCE_THRESHOLD:
        failures.append("Identifiability gate did not enforce the required refusal/degrade policy at 100%.")

    return BenchmarkOutcome(
        "identifiability_compliance",
        {"identifiability_gate_compliance_rate": rate},
        failures,
        rate >= IDENTIFIABILITY_COMPLIANCE_THRESHOLD,
    )


# =============================================================================
# BENCHMARK 5: OVERCLAIM COMPLIANCE
# =============================================================================

def evaluate_overclaim_compliance() -> BenchmarkOutcome:
    scenarios = [
        build_benchmark_hypothesis(
            id="oc-1",
            thesis="This proves that treatment always improves the outcome.",
            do_plan=None,
            confounder_set=(),
        ),
        build_benchmark_hypothesis(
            id="oc-2",
            thesis="Intervention demonstrates reliable causal uplift.",
            do_plan="Estimate intervention effect under model assumptions.",
            confounder_set=("Confounder",),
        ),
        build_benchmark_hypothesis(
            id="oc-3",
            thesis="Empirical intervention evidence supports the mechanism.",
            confounder_set=("Confounder",),
            validation_result=SIGNIFICANT_VALIDATION,
        ),
        build_benchmark_hypothesis(
            id="oc-4",
            thesis="Failed intervention should trigger falsified status.",
            validation_result=ValidationResult(False),
        ),
    ]

    compliant = 0
    failures = []
    for index, hypothesis in enumerate(scenarios, start=1):
        output = build_causal_output(hypothesis)
        certainty_leak = bool(
            CERTAINTY_LANGUAGE_PATTERN.search(f"{output.causal_claim} {output.justification}")
        )
        unsupported_identified = (
            output.status is StatusBanner.IDENTIFIED
            and output.evidence_class is not EvidenceClass.EMPIRICAL
        )
        falsified_mismatch = (
            hypothesis.lifecycle_state is LifecycleState.FALSIFIED
            and output.status is not StatusBanner.FALSIFIED
        )
        if not (certainty_leak or unsupported_identified or falsified_mismatch):
            compliant += 1
            continue
        failures.append(
            f"Overclaim policy failed in scenario {index}: certainty leak={certainty_leak}, "
            f"unsupported identified claim={unsupported_identified}."
        )

    rate = round(compliant / len(scenarios), 4)
    if rate < OVERCLAIM_THRESHOLD:
        failures.append("Overclaim compliance is below the governance threshold.")

    return BenchmarkOutcome(
        "overclaim_compliance",
        {"overclaim_compliance_rate": rate},
        failures,
        rate >= OVERCLAIM_THRESHOLD,
    )


# =============================================================================
# COMPLIANCE GATE AND OWNERSHIP
# =============================================================================

def evaluate_compliance_gate(outcomes: list[BenchmarkOutcome]) -> ComplianceGate:
    """Release requires overclaim ≥ 0.95 and identifiability = 1.0."""
    by_name = {o.name: o for o in outcomes}
    specs = [
        ("overclaim", "overclaim_compliance", "overclaim_compliance_rate", OVERCLAIM_THRESHOLD),
        ("identifiability", "identifiability_compliance",
         "identifiability_gate_compliance_rate", IDENTIFIABILITY_COMPLIANCE_THRESHOLD),
    ]

    axes = []
    reasons = []
    for axis_name, outcome_name, metric, threshold in specs:
        outcome = by_name.get(outcome_name)
        observed = outcome.metrics.get(metric, 0.0) if outcome else 0.0
        passed = outcome is not None and observed >= threshold
        axes.append(ComplianceAxis(axis_name, observed, threshold, passed))
        if outcome is None:
            reasons.append(f"{axis_name.capitalize()} compliance was not measured.")
        elif not passed:
            reasons.append(f"{axis_name.capitalize()} compliance {observed} is below {threshold}.")

    return ComplianceGate(all(axis.passed for axis in axes), axes, reasons)


# Checked in order; first match owns the condition
_OWNERSHIP_RULES: list[tuple[re.Pattern, str, str]] = [
    (re.compile(r"identifi|confounder|adjustment|intervention gate|do\("),
     "Intervention disclosure gate", "critical"),
    (re.compile(r"counterfactual|trace|abduction|action|prediction"),
     "Causal graph model", "high"),
    (re.compile(r"falsifi|retract|lifecycle|hypothesis state|recommendation leakage"),
     "Hypothesis lifecycle engine", "high"),
    (re.compile(r"novelty|intervention value|intervention leverage|ranking drift"),
     "Recommendation ordering", "high"),
    (re.compile(r"overclaim|confidence|certainty"),
     "Mechanism constraint gate", "high"),
]


def assign_failure_ownership(conditions: list[str]) -> list[FailureOwnership]:
    owned = []
    for condition in dict.fromkeys(conditions):
        lower = condition.lower()
        for pattern, owner, severity in _OWNERSHIP_RULES:
            if pattern.search(lower):
                owned.append(FailureOwnership(condition, owner, severity))
                break
        else:
            owned.append(FailureOwnership(condition, "Oracle suite", "medium"))
    return owned


def run_oracle_suite() -> OracleReport:
    outcomes = [
        evaluate_hypothesis_falsification(),
        evaluate_counterfactual_stability(),
        evaluate_intervention_value_dominance(),
        evaluate_identifiability_compliance(),
        evaluate_overclaim_compliance(),
    ]
    for outcome in outcomes:
        logger.info("oracle %s: %s %s", outcome.name, "pass" if outcome.passed else "FAIL", outcome.metrics)

    conditions = [c for o in outcomes for c in o.failure_conditions]
    return OracleReport(
        outcomes=outcomes,
        compliance=evaluate_compliance_gate(outcomes),
        ownership=assign_failure_ownership(conditions),
    )
