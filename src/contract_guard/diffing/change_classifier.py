"""Change classification and the ordered ChangeSet produced by the differ."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..model.contract import CATEGORIES


class Severity(Enum):
    """Compatibility impact of a single change."""
    BREAKING = "breaking"          # May stop existing consumer code from working
    ADDITION = "addition"          # New symbol or member, never breaking
    MODIFICATION = "modification"  # Compatible change (docs, tags, values)


class ChangeKind(Enum):
    """Declaration kind a change applies to."""
    INTERFACE = "interface"
    METHOD = "method"
    TYPE = "type"
    FIELD = "field"
    FUNCTION = "function"
    VARIABLE = "variable"
    CONSTANT = "constant"


# Descriptions emitted by the differ.
REMOVED = "removed"
ADDED = "added"
SIGNATURE_CHANGED = "signature changed"
PARAMETER_NAMES_CHANGED = "parameter names changed"
DOCUMENTATION_CHANGED = "documentation changed"
TYPE_CHANGED = "type changed"
VALUE_CHANGED = "value changed"
TAG_CHANGED = "tag changed"
KIND_CHANGED = "kind changed"
UNDERLYING_CHANGED = "underlying type changed"

CATEGORY_RANK = {category: rank for rank, category in enumerate(CATEGORIES)}
KIND_RANK = {kind: rank for rank, kind in enumerate(ChangeKind)}


@dataclass(frozen=True)
class Change:
    """One detected difference between two contracts."""
    kind: ChangeKind
    severity: Severity
    symbol: str
    description: str
    old: Optional[str] = None
    new: Optional[str] = None
    category: str = field(default="", repr=False)

    @property
    def breaking(self) -> bool:
        return self.severity is Severity.BREAKING

    def sort_key(self) -> Tuple:
        return (
            CATEGORY_RANK.get(self.category, len(CATEGORY_RANK)),
            self.symbol,
            KIND_RANK[self.kind],
            self.description,
            self.old or "",
            self.new or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        encoded = {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "symbol": self.symbol,
            "description": self.description,
        }
        if self.old is not None:
            encoded["old"] = self.old
        if self.new is not None:
            encoded["new"] = self.new
        return encoded


class ChangeClassifier:
    """Assigns exactly one severity to every change the differ detects.

    The two policy flags cover changes whose impact depends on how consumers
    bind to the API: callers passing arguments by keyword break on parameter
    renames, and serialized data breaks on tag renames.
    """

    SEVERITY_RULES = {
        REMOVED: Severity.BREAKING,
        ADDED: Severity.ADDITION,
        SIGNATURE_CHANGED: Severity.BREAKING,
        KIND_CHANGED: Severity.BREAKING,
        UNDERLYING_CHANGED: Severity.BREAKING,
        TYPE_CHANGED: Severity.BREAKING,
        VALUE_CHANGED: Severity.MODIFICATION,
        DOCUMENTATION_CHANGED: Severity.MODIFICATION,
        TAG_CHANGED: Severity.MODIFICATION,
        PARAMETER_NAMES_CHANGED: Severity.MODIFICATION,
    }

    def __init__(self, parameter_names_breaking: bool = False, tag_changes_breaking: bool = False):
        """Initialize the change classifier.

        Args:
            parameter_names_breaking: Treat parameter renames as breaking.
            tag_changes_breaking: Treat serialization tag changes as breaking.
        """
        self.parameter_names_breaking = parameter_names_breaking
        self.tag_changes_breaking = tag_changes_breaking

    def classify(self, description: str) -> Severity:
        if description == PARAMETER_NAMES_CHANGED and self.parameter_names_breaking:
            return Severity.BREAKING
        if description == TAG_CHANGED and self.tag_changes_breaking:
            return Severity.BREAKING
        try:
            return self.SEVERITY_RULES[description]
        except KeyError:
            raise ValueError(f"No severity rule for change description {description!r}") from None

    def change(self, category: str, kind: ChangeKind, symbol: str, description: str,
               old: Optional[str] = None, new: Optional[str] = None) -> Change:
        return Change(
            kind=kind,
            severity=self.classify(description),
            symbol=symbol,
            description=description,
            old=old,
            new=new,
            category=category,
        )


_VERSION_PATTERN = re.compile(r"^(?P<prefix>v?)(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)")


def _bump(version: Optional[str], part: str) -> Optional[str]:
    match = _VERSION_PATTERN.match(version or "")
    if not match:
        return None
    major, minor, patch = (int(match.group(p)) for p in ("major", "minor", "patch"))
    if part == "major":
        major, minor, patch = major + 1, 0, 0
    elif part == "minor":
        minor, patch = minor + 1, 0
    else:
        patch += 1
    return f"{match.group('prefix')}{major}.{minor}.{patch}"


@dataclass(frozen=True)
class ChangeSet:
    """Deduplicated changes in deterministic order.

    Changes are sorted by category, then symbol, then kind, so the same
    inputs always produce the same sequence regardless of lookup order.
    """
    changes: Tuple[Change, ...] = ()
    package_name: Optional[str] = None
    old_version: Optional[str] = None
    new_version: Optional[str] = None

    def __post_init__(self):
        unique = dict.fromkeys(self.changes)
        object.__setattr__(self, "changes", tuple(sorted(unique, key=Change.sort_key)))

    def __iter__(self) -> Iterator[Change]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __getitem__(self, index):
        return self.changes[index]

    def _with_severity(self, severity: Severity) -> List[Change]:
        return [c for c in self.changes if c.severity is severity]

    @property
    def breaking(self) -> List[Change]:
        return self._with_severity(Severity.BREAKING)

    @property
    def additions(self) -> List[Change]:
        return self._with_severity(Severity.ADDITION)

    @property
    def modifications(self) -> List[Change]:
        return self._with_severity(Severity.MODIFICATION)

    @property
    def has_breaking_changes(self) -> bool:
        return any(c.breaking for c in self.changes)

    def summary(self) -> Dict[str, Any]:
        """Counts of changes by severity and by kind."""
        by_kind: Dict[str, int] = {}
        for change in self.changes:
            by_kind[change.kind.value] = by_kind.get(change.kind.value, 0) + 1

        return {
            "total_changes": len(self.changes),
            "breaking_changes": len(self.breaking),
            "additions": len(self.additions),
            "modifications": len(self.modifications),
            "has_breaking_changes": self.has_breaking_changes,
            "by_kind": dict(sorted(by_kind.items())),
        }

    def suggest_version_bump(self, current_version: Optional[str] = None) -> Dict[str, Any]:
        """Suggest a semantic version bump based on the changes.

        Args:
            current_version: Version the old contract was released as;
                defaults to ``old_version``.

        Returns:
            Version bump suggestion with reasoning
        """
        current_version = current_version or self.old_version
        breaking_count = len(self.breaking)
        addition_count = len(self.additions)

        if breaking_count > 0:
            suggested_bump = "major"
            reason = f"Breaking changes detected ({breaking_count} breaking changes)"
        elif addition_count > 0:
            suggested_bump = "minor"
            reason = f"New API added ({addition_count} additions)"
        elif self.changes:
            suggested_bump = "patch"
            reason = f"Compatible modifications only ({len(self.changes)} changes)"
        else:
            suggested_bump = None
            reason = "No changes detected"

        return {
            "current_version": current_version,
            "suggested_bump": suggested_bump,
            "suggested_version": _bump(current_version, suggested_bump) if suggested_bump else current_version,
            "reason": reason,
            "breaking_changes": breaking_count,
            "total_changes": len(self.changes),
        }

    def to_dict(self) -> Dict[str, Any]:
        """The ChangeSet document consumed by reporters."""
        document = {
            "package_name": self.package_name,
            "summary": self.summary(),
            "changes": [change.to_dict() for change in self.changes],
        }
        if self.old_version is not None:
            document["old_version"] = self.old_version
        if self.new_version is not None:
            document["new_version"] = self.new_version
        return document
