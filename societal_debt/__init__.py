"""Public interface for the ``societal_debt`` package.

This module exposes the engine's operations and public models as the stable
import surface. There is no runtime logic here, only symbol re-exports.
"""

from .aggregation import aggregate, impact_score, practice_totals
from .api import analyze
from .config import ClassifierSettings
from .debt import DEFAULT_PRACTICE_WEIGHT, apply_debt, compute_debt
from .errors import ClassifierTransportError, SocietalDebtError
from .filtering import partition_pending
from .identity import transaction_key
from .invoker import build_classified_batch, classify
from .models import AnalyzedBatch, ClassifiedBatch, PracticeTotal, Transaction
from .parsing import ParseFailure, parse_classifier_output
from .reconciliation import merge_classified

__all__ = [
    # API
    "analyze",
    "partition_pending",
    "classify",
    "build_classified_batch",
    "parse_classifier_output",
    "compute_debt",
    "apply_debt",
    "merge_classified",
    "aggregate",
    "practice_totals",
    "impact_score",
    "transaction_key",
    # Models / types
    "Transaction",
    "AnalyzedBatch",
    "ClassifiedBatch",
    "PracticeTotal",
    "ParseFailure",
    "ClassifierSettings",
    "DEFAULT_PRACTICE_WEIGHT",
    # Errors
    "SocietalDebtError",
    "ClassifierTransportError",
]
