"""Workload evaluators for the membership bitmap."""

from group_bitmap.evaluators.group_membership import (
    Distribution,
    EvaluationResult,
    Evaluator,
    EvaluatorConfig,
    TrialMetrics,
    compare_hash_functions,
)

__all__ = [
    "Distribution",
    "EvaluationResult",
    "Evaluator",
    "EvaluatorConfig",
    "TrialMetrics",
    "compare_hash_functions",
]
