# Novelty package for the CausalGuard Engine
"""
Novelty proofs for candidate hypotheses.

Every score is decomposable into named components with human-readable
reasons.
"""
