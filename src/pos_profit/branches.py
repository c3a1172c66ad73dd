"""Branch classification for POS sale locations.

The ERP only exposes the point-of-sale configuration label (e.g.
``"FeetCare Recepción"``, ``"Caja Surco 2"``). This module maps those raw
labels onto the fixed set of branch categories used in every report.

Rules are evaluated in order and the first match wins, so a label that
matches keywords of several branches is attributed to exactly one of them.
Labels that match nothing are ``UNCLASSIFIED``: they count towards the
global total but towards no named branch.

Example:
    >>> from pos_profit.branches import BranchCategory, classify
    >>> classify("Recepcion Principal")
    <BranchCategory.FEETCARE: 'FeetCare'>
    >>> classify("Recepcion Surco")
    <BranchCategory.SURCO: 'Surco'>
    >>> classify("")
    <BranchCategory.UNCLASSIFIED: 'Unclassified'>

"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from pos_profit.exceptions import ConfigError

logger = logging.getLogger(__name__)


class BranchCategory(str, Enum):
    """Physical sales locations a transaction is attributed to."""

    FEETCARE = "FeetCare"
    SURCO = "Surco"
    UNCLASSIFIED = "Unclassified"


# Categories that get their own totals and report sheet, in display order
NAMED_CATEGORIES = (BranchCategory.FEETCARE, BranchCategory.SURCO)


@dataclass(frozen=True)
class BranchRule:
    """A keyword rule mapping labels onto a branch category.

    Attributes:
        category: Category assigned when the rule matches.
        keywords: A label matches if it contains any of these.
        excludes: A label never matches if it contains any of these.
    """

    category: BranchCategory
    keywords: tuple[str, ...]
    excludes: tuple[str, ...] = ()

    def matches(self, normalized_label: str) -> bool:
        if any(word in normalized_label for word in self.excludes):
            return False
        return any(word in normalized_label for word in self.keywords)


DEFAULT_RULES: tuple[BranchRule, ...] = (
    BranchRule(BranchCategory.SURCO, ("SURCO",)),
    # Reception desks belong to FeetCare unless they sit in the Surco site
    BranchRule(BranchCategory.FEETCARE, ("FEETCARE", "RECEPCION"), excludes=("SURCO",)),
)


def normalize_label(label: Optional[str]) -> str:
    """Upper-case a label and strip accents and repeated whitespace.

    Examples:
        >>> normalize_label("  Recepción   Surco ")
        'RECEPCION SURCO'

    """
    if not label:
        return ""
    s = unicodedata.normalize("NFKD", str(label))
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", s).strip().upper()


class BranchClassifier:
    """Ordered keyword classifier for branch labels.

    Example:
        >>> classifier = BranchClassifier()
        >>> classifier.classify("FEETCARE MIRAFLORES")
        <BranchCategory.FEETCARE: 'FeetCare'>

    """

    def __init__(self, rules: Optional[Sequence[BranchRule]] = None) -> None:
        self.rules: tuple[BranchRule, ...] = tuple(DEFAULT_RULES if rules is None else rules)

    def classify(self, label: Optional[str]) -> BranchCategory:
        """Return the category of a raw label. Total over all strings."""
        normalized = normalize_label(label)
        for rule in self.rules:
            if rule.matches(normalized):
                return rule.category
        return BranchCategory.UNCLASSIFIED

    def belongs_to(self, category: BranchCategory) -> Callable[[str], bool]:
        """Return a predicate selecting labels of the given category."""
        return lambda label: self.classify(label) is category

    @classmethod
    def from_json(cls, rules_path: Path) -> BranchClassifier:
        """Load ordered rules from a JSON file.

        The file holds a list evaluated top to bottom::

            [
              {"category": "Surco", "keywords": ["SURCO"]},
              {"category": "FeetCare", "keywords": ["FEETCARE", "RECEPCION"],
               "excludes": ["SURCO"]}
            ]

        Raises:
            ConfigError: If the file cannot be read or an entry is invalid.

        """
        try:
            data = json.loads(Path(rules_path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load branch rules from {rules_path}: {e}") from e

        if not isinstance(data, list):
            raise ConfigError("Branch rules file must contain a JSON list")

        rules: list[BranchRule] = []
        for i, rec in enumerate(data):
            try:
                category = BranchCategory(rec["category"])
                keywords = tuple(normalize_label(k) for k in rec["keywords"])
                excludes = tuple(normalize_label(k) for k in rec.get("excludes", []))
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigError(f"Invalid branch rule #{i} in {rules_path}: {e}") from e
            rules.append(BranchRule(category, keywords, excludes))

        logger.debug("Loaded %d branch rules from %s", len(rules), rules_path)
        return cls(rules)


_DEFAULT_CLASSIFIER = BranchClassifier()


def classify(label: Optional[str]) -> BranchCategory:
    """Classify a label with the default rules."""
    return _DEFAULT_CLASSIFIER.classify(label)
