"""
CausalGuard CLI — Local Interface for the Governance Checks.

Commands:
    causalguard oracle              — Run the compliance oracle suite
    causalguard gate [FILE]         — Gate a generated answer
    causalguard identify GRAPH      — Evaluate a treatment → outcome claim
    causalguard lifecycle FILE      — Derive lifecycle states and top picks
    causalguard novelty FILE        — Score a batch of candidate ideas

Every command reads its inputs from files or flags and prints a report.
Exit code is 0 when the check passes and 1 when it blocks or fails.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from ..cache import InMemoryAnalysisCache
from ..config import EngineConfig, load_config
from ..domain import GateCheckpoint, GateStatus, Hypothesis
from ..evidence import (
    PriorArt,
    ValidationMetrics,
    ValidationResult,
    contradiction_from_dict,
    prior_art_from_dict,
)
from ..gates.disclosure import evaluate_intervention_gate
from ..gates.domains import Domain
from ..gates.mechanism import GateResult, MechanismConstraintGate
from ..graph.model import CausalGraphModel
from ..lifecycle import evaluate_lifecycle, select_top_recommendations
from ..novelty.recovery import build_recovery_plan
from ..novelty.scorer import (
    NoveltyProofConfig,
    compute_novelty_gate,
    compute_novelty_proofs,
)
from ..oracle import OracleReport, run_oracle_suite
from ..validation import hypothesis_from_dict


# =============================================================================
# INPUT HELPERS
# =============================================================================

def load_json(path: str) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_hypotheses(payload: Any) -> list[Hypothesis]:
    """Accept a bare list or an object with a "hypotheses" list."""
    items = payload.get("hypotheses", []) if isinstance(payload, dict) else payload
    return [hypothesis_from_dict(item) for item in items]


def static_prior_art_lookup(table: dict[str, list[PriorArt]]):
    """Async lookup over a fixed hypothesis id → prior art table."""

    async def lookup(hypothesis: Hypothesis) -> list[PriorArt]:
        return table.get(hypothesis.id, [])

    return lookup


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_gate_result(result: GateResult) -> str:
    lines = [
        f"Status:     {result.status.value.upper()}",
        f"Checkpoint: {result.checkpoint.value}",
        f"Fatal:      {len(result.fatal_violations)}",
        f"Warnings:   {len(result.warning_violations)}",
    ]
    if result.violations:
        lines.append("")
        lines.append("VIOLATIONS:")
        for v in result.violations:
            lines.append(f"  • [{v.severity.value}] {v.axiom}: {v.reason}")
            if v.evidence:
                lines.append(f"    Evidence: \"{v.evidence}\"")
    if result.suppressed:
        lines.append("")
        lines.append(f"Suppressed by policy: {len(result.suppressed)}")
    if result.status is not GateStatus.PASS and result.correction_prompt:
        lines.append("")
        lines.append(result.correction_prompt)
    return "\n".join(lines)


def format_oracle_report(report: OracleReport) -> str:
    lines = ["BENCHMARKS:"]
    for outcome in report.outcomes:
        badge = "[PASS]" if outcome.passed else "[FAIL]"
        metrics = ", ".join(f"{k}={v}" for k, v in outcome.metrics.items())
        lines.append(f"  {badge} {outcome.name}: {metrics}")

    lines.append("")
    lines.append("COMPLIANCE GATE:")
    for axis in report.compliance.axes:
        badge = "[PASS]" if axis.passed else "[FAIL]"
        lines.append(f"  {badge} {axis.name}: {axis.observed} (threshold {axis.threshold})")
    for reason in report.compliance.blocking_reasons:
        lines.append(f"  • {reason}")

    if report.ownership:
        lines.append("")
        lines.append("FAILURE OWNERSHIP:")
        for owned in report.ownership:
            lines.append(f"  • [{owned.severity}] {owned.owner}: {owned.condition}")
    return "\n".join(lines)


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_oracle(args: argparse.Namespace) -> int:
    """Run the compliance oracle suite."""
    print("CausalGuard — Compliance Oracle")
    print("=" * 50)
    print()

    report = run_oracle_suite()
    print(format_oracle_report(report))
    print()
    print("RESULT: " + ("PASS" if report.passed else "BLOCKED"))
    return 0 if report.passed else 1


def cmd_gate(args: argparse.Namespace) -> int:
    """Run the mechanism constraint gate on a generated answer."""
    if args.text is not None:
        text = args.text
    elif args.file:
        try:
            text = Path(args.file).read_text(encoding="utf-8")
        except OSError as e:
            print(f"ERROR: Cannot read {args.file}")
            print(f"Reason: {e}")
            return 1
    else:
        print("ERROR: Provide --text or a FILE to check.")
        return 1

    config: EngineConfig = args.config
    policy = config.gate
    if args.domain:
        policy = replace(policy, domain=Domain(args.domain))

    gate = MechanismConstraintGate(policy, InMemoryAnalysisCache(config.cache_max_entries))
    result = gate.enforce(text, GateCheckpoint(args.checkpoint))

    print("CausalGuard — Mechanism Constraint Gate")
    print("=" * 50)
    print()
    print(format_gate_result(result))
    return 0 if result.passed else 1


def cmd_identify(args: argparse.Namespace) -> int:
    """Evaluate the intervention disclosure gate for one claim."""
    try:
        model = CausalGraphModel.from_dict(load_json(args.graph))
    except Exception as e:
        print(f"ERROR: Cannot load graph {args.graph}")
        print(f"Reason: {e}")
        return 1

    validation = None
    if args.validated:
        validation = ValidationResult(
            success=True,
            metrics=ValidationMetrics(p_value=args.p_value, conclusion_valid=True),
        )

    result = evaluate_intervention_gate(
        model,
        args.treatment,
        args.outcome,
        adjustment_set=args.adjust,
        known_confounders=args.confounder,
        validation=validation,
    )

    print("CausalGuard — Intervention Disclosure Gate")
    print("=" * 50)
    print()
    print(f"Claim:        do({args.treatment}) → {args.outcome}")
    print(f"Output class: {result.output_class.value}")
    print(f"Allowed:      {'yes' if result.allowed else 'no'}")
    print(f"Rationale:    {result.rationale}")
    if result.identifiability is not None:
        ident = result.identifiability
        print()
        print("IDENTIFIABILITY:")
        print(f"  Identifiable:         {ident.identifiable}")
        print(f"  Required confounders: {', '.join(ident.required_confounders) or '-'}")
        print(f"  Missing confounders:  {', '.join(ident.missing_confounders) or '-'}")
    if result.disclosure:
        print()
        print(result.disclosure)
    return 0 if result.allowed else 1


def cmd_lifecycle(args: argparse.Namespace) -> int:
    """Derive lifecycle states and the top recommendations."""
    try:
        hypotheses = load_hypotheses(load_json(args.file))
    except Exception as e:
        print(f"ERROR: Cannot load hypotheses from {args.file}")
        print(f"Reason: {e}")
        return 1

    print("CausalGuard — Hypothesis Lifecycle")
    print("=" * 50)
    print()

    if not hypotheses:
        print("No hypotheses found.")
        return 0

    for h in hypotheses:
        decision = evaluate_lifecycle(h)
        print(f"[{decision.state.value.upper():>9}] {h.id} — {decision.rationale}")

    top = select_top_recommendations(hypotheses, args.top)
    print()
    print("RECOMMENDED:")
    if not top:
        print("  (none eligible)")
    for rank, h in enumerate(top, start=1):
        print(f"  {rank}. {h.id} — {h.thesis}")
    return 0


def cmd_novelty(args: argparse.Namespace) -> int:
    """Compute novelty proofs and the batch gate."""
    try:
        payload = load_json(args.file)
        hypotheses = load_hypotheses(payload)
        contradictions = [contradiction_from_dict(row) for row in payload.get("contradictions", [])]
        raw_prior_art = payload.get("prior_art", payload.get("priorArt", {}))
    except Exception as e:
        print(f"ERROR: Cannot load novelty batch from {args.file}")
        print(f"Reason: {e}")
        return 1

    table = {
        h.id: [prior_art_from_dict(item) for item in raw_prior_art.get(h.id, [])]
        for h in hypotheses
    }
    config: EngineConfig = args.config
    proof_config = NoveltyProofConfig(config.novelty, static_prior_art_lookup(table))

    proofs = asyncio.run(compute_novelty_proofs(hypotheses, contradictions, proof_config))
    gate = compute_novelty_gate(proofs, config.novelty.novelty_threshold)

    print("CausalGuard — Novelty Proofs")
    print("=" * 50)
    print()
    for proof in proofs:
        status = proof.proof_status.value.upper()
        print(f"[{status:>7}] {proof.hypothesis_id} | novelty {proof.novelty_score:.3f} "
              f"| falsifiability {proof.falsifiability_score:.3f}")
        for reason in proof.blocked_reasons:
            print(f"    • {reason}")

    print()
    print(f"GATE: {gate.decision.value.upper()} ({gate.passing} passing, {gate.blocked} blocked)")
    if not gate.passed:
        plan = build_recovery_plan(gate, proofs, contradictions)
        print()
        print(plan.message)
        for line in plan.diagnosis:
            print(f"  • {line}")
    return 0 if gate.passed else 1


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="causalguard",
        description="CausalGuard Engine — Causal Reasoning Governance",
    )
    parser.add_argument(
        "--config",
        help="JSON config file overriding thresholds and gate policy",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    # Oracle command
    oracle_parser = subparsers.add_parser(
        "oracle",
        help="Run the compliance oracle suite",
    )
    oracle_parser.set_defaults(func=cmd_oracle)

    # Gate command
    gate_parser = subparsers.add_parser(
        "gate",
        help="Run the mechanism constraint gate on text",
    )
    gate_parser.add_argument("file", nargs="?", help="File containing the answer text")
    gate_parser.add_argument("--text", help="Answer text to check")
    gate_parser.add_argument(
        "--checkpoint",
        choices=[c.value for c in GateCheckpoint],
        default=GateCheckpoint.PRE_RELEASE.value,
    )
    gate_parser.add_argument(
        "--domain",
        choices=[d.value for d in Domain],
        help="Enable the domain-specific checks",
    )
    gate_parser.set_defaults(func=cmd_gate)

    # Identify command
    identify_parser = subparsers.add_parser(
        "identify",
        help="Evaluate the intervention disclosure gate",
    )
    identify_parser.add_argument("graph", help="Graph JSON file with nodes and edges")
    identify_parser.add_argument("--treatment", required=True)
    identify_parser.add_argument("--outcome", required=True)
    identify_parser.add_argument("--adjust", action="append", default=[], help="Adjusted variable (repeatable)")
    identify_parser.add_argument("--confounder", action="append", default=[], help="Known confounder (repeatable)")
    identify_parser.add_argument("--validated", action="store_true", help="An intervention test succeeded")
    identify_parser.add_argument("--p-value", type=float, default=None, help="p-value of the intervention test")
    identify_parser.set_defaults(func=cmd_identify)

    # Lifecycle command
    lifecycle_parser = subparsers.add_parser(
        "lifecycle",
        help="Derive lifecycle states and recommendations",
    )
    lifecycle_parser.add_argument("file", help="JSON list of hypotheses")
    lifecycle_parser.add_argument("--top", type=int, default=3, help="Number of recommendations")
    lifecycle_parser.set_defaults(func=cmd_lifecycle)

    # Novelty command
    novelty_parser = subparsers.add_parser(
        "novelty",
        help="Compute novelty proofs and the batch gate",
    )
    novelty_parser.add_argument("file", help="JSON with hypotheses, contradictions and prior_art")
    novelty_parser.set_defaults(func=cmd_novelty)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        return 0

    try:
        args.config = load_config(args.config)
    except Exception as e:
        print("ERROR: Invalid config")
        print(f"Reason: {e}")
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
