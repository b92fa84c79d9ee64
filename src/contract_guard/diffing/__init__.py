"""API Change Detection and Diffing System for contract-guard.

This module compares two contracts and classifies each difference as
breaking, addition or modification.
"""

from .api_differ import ContractDiffer, DiffOptions
from .change_classifier import Change, ChangeClassifier, ChangeKind, ChangeSet, Severity

__all__ = [
    "ContractDiffer",
    "DiffOptions",
    "Change",
    "ChangeClassifier",
    "ChangeKind",
    "ChangeSet",
    "Severity",
]
