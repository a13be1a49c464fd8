"""
Gas budget admission module.

Sums per-trade gas costs and compares them against a supplied or live
per-block gas ceiling.
"""
from .estimator import GasBudgetEstimator
from .models import CeilingSource, GasBudget, TradeType

__all__ = ["CeilingSource", "GasBudget", "GasBudgetEstimator", "TradeType"]
