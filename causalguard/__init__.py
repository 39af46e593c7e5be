# CausalGuard Engine
# Causal graph reasoning and claim governance

"""
Core invariant: a generated answer may only make the causal claims its
evidence licenses. Association never masquerades as intervention, and
intervention never masquerades as validated fact.

This package implements the graph operators, the governance gates and
the hypothesis scoring that enforce that invariant.
"""
