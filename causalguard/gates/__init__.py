# Gates package for the CausalGuard Engine
"""
Governance gates that decide what a generated answer may claim.

Modules:
    patterns   — Tier 1 lexical detector families
    domains    — Tier 2 domain checkers (dispatch table)
    mechanism  — Mechanism constraint gate and correction prompt
    disclosure — Intervention disclosure gate
    overclaim  — Certainty language and status banner checks
"""
