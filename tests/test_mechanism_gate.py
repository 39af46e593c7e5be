"""
Tests for the Mechanism Constraint Gate.

These tests verify:
1. Each Tier 1 detector family fires on its patterns and co-conditions
2. Policy per axiom (fatal / warning / skip) and the warning budget
3. Tier 2 domain checkers (ecology, cognitive psychology, selfish gene)
4. Correction prompt format
5. Determinism and cache transparency
"""

import pytest

from causalguard.cache import InMemoryAnalysisCache
from causalguard.config import GatePolicyConfig
from causalguard.domain import GateCheckpoint, GatePolicy, GateStatus, OutputClass, Severity
from causalguard.gates.disclosure import InterventionGateResult
from causalguard.gates.domains import (
    Domain,
    check_cognitive_psychology,
    check_ecology,
    check_selfish_gene,
    extract_relatedness,
    validate_mechanism,
)
from causalguard.gates.mechanism import (
    REQUIRED_OUTPUT_FORMAT,
    MechanismConstraintGate,
    build_correction_prompt,
    decide_status,
)
from causalguard.gates.patterns import (
    ENTROPY,
    MISSING_FALSIFIER,
    REVERSIBILITY,
    SYCOPHANCY,
    UNFALSIFIABILITY,
)


# =============================================================================
# TEST FIXTURES
# =============================================================================

CLEAN_TEXT = "Raising the dose increases serum levels, measured against baseline."
RETROCAUSAL_TEXT = "The effect is retrocausal."
FOUR_WARNINGS_TEXT = "Great question. Perhaps the drug might help. Interesting perspective."


def make_gate(**policy) -> MechanismConstraintGate:
    """Helper to create a gate with policy overrides."""
    return MechanismConstraintGate(GatePolicyConfig(**policy))


def make_disclosure(output_class: OutputClass) -> InterventionGateResult:
    return InterventionGateResult(
        allowed=output_class is OutputClass.INTERVENTION_SUPPORTED,
        output_class=output_class,
        rationale="test",
    )


# =============================================================================
# DETECTOR FAMILY TESTS
# =============================================================================

class TestReversibility:

    def test_retrocausation_detected(self):
        violations = REVERSIBILITY.detect(RETROCAUSAL_TEXT)
        assert len(violations) == 1
        assert violations[0].axiom == "Reversibility"
        assert violations[0].evidence == "retrocausal"
        assert violations[0].is_fatal

    def test_effect_before_cause(self):
        violations = REVERSIBILITY.detect("The effect appears before the cause.")
        assert any("precede" in v.reason for v in violations)

    def test_future_reaching_into_past(self):
        violations = REVERSIBILITY.detect("Future events reach into the past and set the outcome.")
        assert len(violations) == 1
        assert violations[0].evidence == "Future events reach into the past"
        assert violations[0].is_fatal

    def test_future_reaching_into_past_blocks_gate(self):
        result = MechanismConstraintGate().enforce("Future events reach into the past and set the outcome.")
        assert result.status is GateStatus.BLOCKED
        assert [v.axiom for v in result.fatal_violations] == ["Reversibility"]

    def test_forward_causation_is_clean(self):
        assert REVERSIBILITY.detect(CLEAN_TEXT) == []


class TestEntropy:

    def test_perpetual_motion(self):
        violations = ENTROPY.detect("This device is a perpetual motion machine.")
        assert [v.evidence.lower() for v in violations] == ["perpetual motion"]

    def test_recycling_requires_perfection(self):
        assert ENTROPY.detect("The system is self-sustaining.") == []
        assert len(ENTROPY.detect("The system is self-sustaining with perfect recovery.")) == 1

    def test_entropy_decrease_allowed_with_work_input(self):
        assert len(ENTROPY.detect("Cells decrease entropy locally.")) == 1
        assert ENTROPY.detect("Cells decrease entropy locally using energy input.") == []


class TestFalsifiability:

    def test_first_match_only(self):
        """Only the first falsifiability pattern is reported."""
        violations = UNFALSIFIABILITY.detect("It is impossible to know and perhaps unknowable.")
        assert len(violations) == 1
        assert violations[0].evidence == "impossible to know"
        assert violations[0].is_fatal

    def test_hedge_is_warning(self):
        violations = UNFALSIFIABILITY.detect("Sleep might improve memory.")
        assert len(violations) == 1
        assert violations[0].severity is Severity.WARNING

    @pytest.mark.parametrize("text, evidence", [
        ("Maybe sleep improves memory.", "Maybe"),
        ("Whether sleep helps memory, it depends.", "it depends"),
        ("Sleep sometimes improves memory.", "sometimes"),
    ])
    def test_ambiguity_hedges_are_warnings(self, text, evidence):
        violations = UNFALSIFIABILITY.detect(text)
        assert [v.evidence for v in violations] == [evidence]
        assert violations[0].severity is Severity.WARNING

    def test_missing_falsifier_warning(self):
        assert len(MISSING_FALSIFIER.detect("Caffeine causes alertness.")) == 1

    def test_falsifier_suppresses_warning(self):
        text = "Caffeine causes alertness; reject if reaction time does not change."
        assert MISSING_FALSIFIER.detect(text) == []


class TestSycophancy:

    def test_agreement_is_fatal(self):
        violations = SYCOPHANCY.detect("You're absolutely right, the model holds.")
        assert len(violations) == 1
        assert violations[0].is_fatal
        assert "agreement_without_evidence" in violations[0].reason

    def test_validation_is_warning(self):
        violations = SYCOPHANCY.detect("Great question about the mechanism.")
        assert [v.severity for v in violations] == [Severity.WARNING]


# =============================================================================
# GATE DECISION TESTS
# =============================================================================

class TestGateDecision:
    """Test status decisions and policy application."""

    def test_clean_text_passes(self):
        result = make_gate().enforce(CLEAN_TEXT)
        assert result.status is GateStatus.PASS
        assert result.passed
        assert result.correction_prompt == ""

    def test_fatal_blocks(self):
        result = make_gate().enforce(RETROCAUSAL_TEXT)
        assert result.status is GateStatus.BLOCKED
        assert not result.passed
        assert len(result.fatal_violations) == 1

    def test_single_warning_is_warning_status(self):
        result = make_gate().enforce("Sleep might improve memory.")
        assert result.status is GateStatus.WARNING
        assert result.passed

    def test_warning_budget_exceeded_blocks(self):
        result = make_gate().enforce(FOUR_WARNINGS_TEXT)
        assert result.fatal_violations == []
        assert len(result.warning_violations) == 4
        assert result.status is GateStatus.BLOCKED

    def test_warning_budget_is_configurable(self):
        result = make_gate(max_warnings=5).enforce(FOUR_WARNINGS_TEXT)
        assert result.status is GateStatus.WARNING

    def test_warning_policy_downgrades_fatal(self):
        result = make_gate(sycophancy_policy=GatePolicy.WARNING).enforce(
            "You're absolutely right, the model holds."
        )
        assert result.status is GateStatus.WARNING
        assert result.violations[0].severity is Severity.WARNING

    def test_skip_policy_drops_axiom(self):
        result = make_gate(retrocausality_policy=GatePolicy.SKIP).enforce(RETROCAUSAL_TEXT)
        assert result.status is GateStatus.PASS
        assert result.violations == []
        assert len(result.suppressed) == 1

    def test_per_call_policy_override(self):
        gate = make_gate()
        override = GatePolicyConfig(retrocausality_policy=GatePolicy.SKIP)
        assert gate.enforce(RETROCAUSAL_TEXT, policy=override).passed
        assert not gate.enforce(RETROCAUSAL_TEXT).passed

    def test_checkpoint_recorded(self):
        result = make_gate().enforce(CLEAN_TEXT, GateCheckpoint.POST_SYNTHESIS)
        assert result.checkpoint is GateCheckpoint.POST_SYNTHESIS

    def test_decide_status_empty(self):
        assert decide_status([], 3) is GateStatus.PASS

    def test_event_payload(self):
        event = make_gate().enforce(RETROCAUSAL_TEXT).to_event()
        assert event["type"] == "axiom_gate"
        assert event["passed"] is False
        assert event["fatal_count"] == 1

    def test_quick_check(self):
        gate = make_gate()
        assert gate.quick_check(CLEAN_TEXT)
        assert not gate.quick_check(RETROCAUSAL_TEXT)


class TestOverclaimInGate:
    """Overclaim runs only when a disclosure result is supplied."""

    TEXT = "Identified (Intervention-Supported): the drug proves efficacy."

    def test_no_disclosure_no_overclaim(self):
        result = make_gate().enforce(self.TEXT)
        assert all(v.axiom != "Overclaim" for v in result.violations)

    def test_inferred_class_blocks_identified_claim(self):
        result = make_gate().enforce(self.TEXT, disclosure=make_disclosure(OutputClass.INTERVENTION_INFERRED))
        overclaims = [v for v in result.violations if v.axiom == "Overclaim"]
        assert any(v.is_fatal for v in overclaims)
        assert any(v.evidence == "proves" for v in overclaims)
        assert result.status is GateStatus.BLOCKED

    def test_supported_class_allows_claim(self):
        result = make_gate().enforce(self.TEXT, disclosure=make_disclosure(OutputClass.INTERVENTION_SUPPORTED))
        assert all(v.axiom != "Overclaim" for v in result.violations)

    def test_overclaim_policy_skip(self):
        result = make_gate(overclaim_policy=GatePolicy.SKIP).enforce(
            self.TEXT, disclosure=make_disclosure(OutputClass.ASSOCIATION_ONLY)
        )
        assert all(v.axiom != "Overclaim" for v in result.violations)


# =============================================================================
# CORRECTION PROMPT TESTS
# =============================================================================

class TestCorrectionPrompt:

    def test_blocked_prompt_format(self):
        result = make_gate().enforce(RETROCAUSAL_TEXT)
        prompt = result.correction_prompt
        assert prompt.startswith("### BLOCKED: AXIOM VIOLATIONS DETECTED")
        assert '- **Reversibility** (fatal):' in prompt
        assert '(Evidence: "retrocausal")' in prompt
        assert "**CORRECTION INSTRUCTION:**" in prompt
        assert prompt.endswith(REQUIRED_OUTPUT_FORMAT)

    def test_warning_prompt_header(self):
        result = make_gate().enforce("Sleep might improve memory.")
        assert result.correction_prompt.startswith("### WARNING: AXIOM VIOLATIONS DETECTED")

    def test_instructions_are_deduplicated(self):
        violations = REVERSIBILITY.detect("Retrocausation lets the effect come before the cause.")
        prompt = build_correction_prompt(violations)
        assert prompt.count("DELETE any retrocausal claims") == 1


# =============================================================================
# DOMAIN CHECKER TESTS
# =============================================================================

class TestEcology:

    def test_pure_competition_is_fatal(self):
        violations = check_ecology("Trees in the forest are purely competitive.")
        assert [v.axiom for v in violations] == ["network_cooperation"]
        assert violations[0].is_fatal

    def test_fragmentation_without_effect(self):
        violations = check_ecology("Forest fragmentation has no effect on resilience.")
        assert [v.axiom for v in violations] == ["empirical_contradiction"]

    def test_maternal_support_is_warning(self):
        violations = check_ecology("The mother tree does not support its saplings.")
        assert any(v.severity is Severity.WARNING for v in violations)


class TestCognitivePsychology:

    def test_missing_reference_point_and_loss_aversion(self):
        violations = check_cognitive_psychology("The pay cut reduces worker satisfaction.")
        assert sorted(v.axiom for v in violations) == ["loss_aversion", "reference_point"]
        assert all(v.severity is Severity.WARNING for v in violations)

    def test_aware_claim_is_clean(self):
        text = "Relative to baseline, the pay cut lowers satisfaction because of loss aversion."
        assert check_cognitive_psychology(text) == []

    def test_no_utility_language(self):
        assert check_cognitive_psychology("Rain falls on the roof.") == []


class TestSelfishGene:

    def test_haplodiploid_sisters(self):
        text = "Haplodiploid workers show altruism toward sisters with r = 0.75."
        assert check_selfish_gene(text) == []

    def test_relatedness_above_one_is_fatal(self):
        violations = check_selfish_gene("Altruism between siblings with r = 1.5.")
        assert any(v.is_fatal for v in violations)
        assert any("standard coefficient is r=0.5" in v.reason for v in violations)

    def test_missing_relatedness_is_warning(self):
        violations = check_selfish_gene("Altruism toward cousins is common.")
        assert len(violations) == 1
        assert violations[0].severity is Severity.WARNING

    def test_percentage_relatedness(self):
        r, span = extract_relatedness("They share 50% of DNA.")
        assert r == pytest.approx(0.5)
        assert span == "50% of DNA"


class TestDomainDispatch:

    def test_physical_checks_run_before_domain(self):
        report = validate_mechanism("Perpetual motion sustains the forest.", Domain.ECOLOGY)
        assert len(report.physical_violations) == 1
        assert report.domain_violations == []
        assert not report.valid

    def test_gate_runs_configured_domain(self):
        gate = make_gate(domain=Domain.SELFISH_GENE)
        result = gate.enforce("Altruism between siblings with r = 1.5.")
        assert any(v.axiom == "kin_selection" for v in result.violations)
        assert result.status is GateStatus.BLOCKED

    def test_domain_policy_skip(self):
        gate = make_gate(domain=Domain.SELFISH_GENE, domain_policy=GatePolicy.SKIP)
        result = gate.enforce("Altruism between siblings with r = 1.5.")
        assert all(v.axiom != "kin_selection" for v in result.violations)


# =============================================================================
# DETERMINISM TESTS
# =============================================================================

class TestDeterminism:

    def test_same_text_same_result(self):
        gate = make_gate()
        first = gate.enforce(FOUR_WARNINGS_TEXT)
        second = gate.enforce(FOUR_WARNINGS_TEXT)
        assert first.to_event() == second.to_event()

    def test_cache_does_not_change_result(self):
        cache = InMemoryAnalysisCache()
        cached_gate = MechanismConstraintGate(GatePolicyConfig(), cache)
        first = cached_gate.enforce(RETROCAUSAL_TEXT)
        second = cached_gate.enforce(RETROCAUSAL_TEXT)
        assert cache.hits == 1
        assert first.to_event() == second.to_event()
        assert make_gate().enforce(RETROCAUSAL_TEXT).to_event() == first.to_event()
