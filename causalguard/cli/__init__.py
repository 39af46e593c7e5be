# CLI package for the CausalGuard Engine
"""
Command-line interface for running the governance checks locally.

Commands:
    causalguard oracle    — Run the compliance oracle suite
    causalguard gate      — Run the mechanism constraint gate on text
    causalguard identify  — Evaluate the intervention disclosure gate
    causalguard lifecycle — Derive lifecycle states and recommendations
    causalguard novelty   — Compute novelty proofs and the batch gate
"""
