"""ChangeSet reporting for contract-guard."""

from .reporter import ChangeSetReporter

__all__ = [
    "ChangeSetReporter",
]
