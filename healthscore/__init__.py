"""
Baseline Health Score

Computes a normalized 0-100 baseline health score from a panel of
pre-rated blood and vital biomarkers, with a full audit trail of every
mapping, rule, normalization and capping decision.
"""
__version__ = "1.0.0"
