"""
Pattern Classifier
==================

Weighted regex scoring over a static label -> pattern registry.

The same algorithm serves intent labels and emotion labels. A registry is
compiled once and is read-only afterwards, so one instance can be shared by
every conversation session.

Scoring per pattern match against the normalized text:
- matched text equals the whole input: +10
- input starts or ends with the matched text: +5
- any other match: +2
Each whitespace token (letters only) found in the keyword map adds +5 to its
label. Scores are then divided by the maximum score.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from ..error_handling import PatternCompileError, RegistryError

EXACT_MATCH_SCORE = 10.0
EDGE_MATCH_SCORE = 5.0
CONTAINS_MATCH_SCORE = 2.0
KEYWORD_BONUS = 5.0

_NON_LETTERS = re.compile(r'[^a-zA-Z]')
_KEYWORD_FORMAT = re.compile(r'^[a-z]+$')

# Non-empty samples used to catch zero-width patterns such as \b or (?=\w)
_EMPTY_MATCH_SAMPLES = ("a b", "Z9 ?")


class ConfidenceLevel(Enum):
    """Classification confidence levels."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class PatternRule:
    """A compiled pattern attached to a label."""
    label: str
    pattern: Pattern

    @property
    def source(self) -> str:
        return self.pattern.pattern


@dataclass
class ClassificationResult:
    """Classification result for one piece of text."""
    label: str
    confidence: float
    scores: Dict[str, float] = field(default_factory=dict)
    confidence_level: ConfidenceLevel = field(init=False)
    is_default: bool = False

    def __post_init__(self):
        if self.confidence >= 0.8:
            self.confidence_level = ConfidenceLevel.HIGH
        elif self.confidence >= 0.5:
            self.confidence_level = ConfidenceLevel.MEDIUM
        else:
            self.confidence_level = ConfidenceLevel.LOW

    def ranked(self) -> List[Tuple[str, float]]:
        """Labels sorted by normalized score, ties kept in registration order."""
        return sorted(self.scores.items(), key=lambda item: item[1], reverse=True)

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            'label': self.label,
            'confidence': self.confidence,
            'confidence_level': self.confidence_level.value,
            'scores': dict(self.scores),
            'is_default': self.is_default,
        }


class PatternRegistry:
    """
    Immutable label registry used by classify().

    Labels are ordered by first registration, patterns before keywords.
    That order decides ties between labels with the same top score.
    """

    def __init__(self, name: str, default_label: str,
                 patterns: Iterable[Tuple[str, str]],
                 keywords: Optional[Mapping[str, str]] = None,
                 label_order: Iterable[str] = ()):
        if not default_label:
            raise RegistryError(f"Registry '{name}' needs a default label")

        self.name = name
        self.default_label = default_label

        # Labels carried over from a base registry keep their positions
        labels: List[str] = list(dict.fromkeys(label_order))
        rules: List[PatternRule] = []

        for label, regex in patterns:
            if not label:
                raise RegistryError(f"Empty label in registry '{name}'", pattern=regex)
            try:
                compiled = re.compile(regex, re.IGNORECASE)
            except re.error as e:
                raise PatternCompileError(
                    f"Invalid pattern for '{label}' in registry '{name}': {regex!r}",
                    original_error=e, label=label, pattern=regex
                )
            if _matches_empty(compiled):
                raise PatternCompileError(
                    f"Pattern for '{label}' in registry '{name}' matches empty input: {regex!r}",
                    label=label, pattern=regex
                )
            if label not in labels:
                labels.append(label)
            rules.append(PatternRule(label=label, pattern=compiled))

        keyword_map: Dict[str, str] = {}
        for keyword, label in (keywords or {}).items():
            if not label:
                raise RegistryError(f"Keyword '{keyword}' has no label in registry '{name}'")
            if not _KEYWORD_FORMAT.match(keyword):
                raise RegistryError(
                    f"Keyword {keyword!r} in registry '{name}' must be lowercase letters only",
                    keyword=keyword, label=label
                )
            keyword_map[keyword] = label
            if label not in labels:
                labels.append(label)

        self._labels: Tuple[str, ...] = tuple(labels)
        self._rules: Tuple[PatternRule, ...] = tuple(rules)
        self._keywords = MappingProxyType(keyword_map)
        self._order = {label: index for index, label in enumerate(self._labels)}

    @property
    def labels(self) -> Tuple[str, ...]:
        return self._labels

    @property
    def rules(self) -> Tuple[PatternRule, ...]:
        return self._rules

    @property
    def keywords(self) -> Mapping[str, str]:
        return self._keywords

    def patterns_for(self, label: str) -> List[str]:
        """Get the source regexes registered for a label."""
        return [rule.source for rule in self._rules if rule.label == label]

    def extend(self, name: str, patterns: Iterable[Tuple[str, str]] = (),
               keywords: Optional[Mapping[str, str]] = None) -> 'PatternRegistry':
        """
        Build a new registry with extra patterns and keywords appended.

        Existing labels keep their registration order, so ties resolve the
        same way in the extended registry as in this one.
        """
        merged_keywords = dict(self._keywords)
        merged_keywords.update(keywords or {})
        return PatternRegistry(
            name,
            self.default_label,
            [(rule.label, rule.source) for rule in self._rules] + list(patterns),
            merged_keywords,
            label_order=self._labels,
        )

    def __contains__(self, label: str) -> bool:
        return label in self._order

    def __len__(self) -> int:
        return len(self._labels)

    def __repr__(self) -> str:
        return f"PatternRegistry({self.name!r}, labels={len(self._labels)}, rules={len(self._rules)})"


def _matches_empty(compiled: Pattern) -> bool:
    if compiled.fullmatch(""):
        return True
    for sample in _EMPTY_MATCH_SAMPLES:
        match = compiled.search(sample)
        if match is not None and match.end() == match.start():
            return True
    return False


def _match_score(matched: str, normalized: str) -> float:
    if matched == normalized:
        return EXACT_MATCH_SCORE
    if normalized.startswith(matched) or normalized.endswith(matched):
        return EDGE_MATCH_SCORE
    return CONTAINS_MATCH_SCORE


def classify(text: Optional[str], registry: PatternRegistry) -> ClassificationResult:
    """
    Classify text against a registry.

    Args:
        text: Raw user text; None is treated as empty
        registry: Compiled label registry

    Returns:
        ClassificationResult. Empty input yields the default label with
        confidence 1.0, unmatched input yields it with confidence 0.0.
    """
    normalized = (text or "").lower().strip()
    if not normalized:
        return ClassificationResult(registry.default_label, 1.0, {}, is_default=True)

    raw_scores: Dict[str, float] = {}

    for rule in registry.rules:
        match = rule.pattern.search(normalized)
        if match:
            score = _match_score(match.group().lower(), normalized)
            raw_scores[rule.label] = raw_scores.get(rule.label, 0.0) + score

    if registry.keywords:
        for word in normalized.split():
            word = _NON_LETTERS.sub('', word)
            label = registry.keywords.get(word)
            if label is not None:
                raw_scores[label] = raw_scores.get(label, 0.0) + KEYWORD_BONUS

    max_score = max(raw_scores.values(), default=0.0)
    if max_score <= 0:
        return ClassificationResult(registry.default_label, 0.0, {}, is_default=True)

    scores = {
        label: raw_scores[label] / max_score
        for label in registry.labels
        if raw_scores.get(label, 0.0) > 0
    }

    # First registered label among the top scorers wins
    best_label = registry.default_label
    best_score = 0.0
    for label, score in scores.items():
        if score > best_score:
            best_label = label
            best_score = score

    return ClassificationResult(best_label, min(1.0, best_score), scores)


__all__ = [
    'ConfidenceLevel',
    'PatternRule',
    'ClassificationResult',
    'PatternRegistry',
    'classify',
    'EXACT_MATCH_SCORE',
    'EDGE_MATCH_SCORE',
    'CONTAINS_MATCH_SCORE',
    'KEYWORD_BONUS',
]
