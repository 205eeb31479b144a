"""
Topic Clustering
================

Groups conversation topics into clusters and tracks which clusters are
still contextually active.

A TopicCatalog holds the cluster definitions and the flattened keyword
lookup; it is built once and shared. A TopicRelevanceTracker holds the
mutable per-session part: visit counts, activation times and the bounded
active set.

Relevance of a cluster:
    clamp01(0.5 + recency + frequency)
    recency   = max(0, 1 - minutes_since_activation / decay_minutes)
    frequency = min(0.5, visits * 0.05)
"""

import logging
import re
import time
from collections import Counter, OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Tuple

from ..error_handling import RegistryError

logger = logging.getLogger(__name__)

BASE_RELEVANCE = 0.5
FREQUENCY_STEP = 0.05
MAX_FREQUENCY_BOOST = 0.5
SHARED_KEYWORD_WEIGHT = 0.1
DEFAULT_DECAY_MINUTES = 30.0
DEFAULT_MAX_ACTIVE = 5

BOTH_EMPTY_SIMILARITY = 0.5
ONE_EMPTY_SIMILARITY = 0.2


@dataclass(frozen=True)
class TopicCluster:
    """Topic cluster definition."""
    cluster_id: str
    name: str
    related_topics: Tuple[str, ...]
    keywords: Tuple[str, ...]

    @property
    def vocabulary(self) -> Tuple[str, ...]:
        """Keywords followed by related topics without repeats."""
        return tuple(dict.fromkeys(self.keywords + self.related_topics))


@dataclass
class ClusterStats:
    """Per-session activation statistics for one cluster."""
    visit_count: int = 0
    last_activated: Optional[float] = None


@dataclass(frozen=True)
class TopicTransition:
    """Suggested move from one cluster to another."""
    from_topic: str
    to_topic: str
    reason: str
    relevance: float


def _cluster(cluster_id: str, name: str, related: List[str], keywords: List[str]) -> TopicCluster:
    return TopicCluster(cluster_id, name, tuple(related), tuple(keywords))


DEFAULT_CLUSTERS: List[TopicCluster] = [
    _cluster(
        "academic", "Academic & Education",
        ["homework", "math", "science", "history", "english", "geography", "study", "school", "learning", "exam"],
        ["homework", "assignment", "test", "quiz", "grade", "teacher", "class", "subject", "study", "learn"],
    ),
    _cluster(
        "gaming", "Gaming & Entertainment",
        ["game", "gaming", "fortnite", "cs2", "minecraft", "video games", "play", "gamer"],
        ["play", "game", "gaming", "level", "win", "lose", "multiplayer", "online", "esports"],
    ),
    _cluster(
        "mental_health", "Mental Health & Emotions",
        ["feel", "emotion", "sad", "happy", "stressed", "anxious", "mental", "support", "therapy"],
        ["feel", "feeling", "emotion", "sad", "happy", "stressed", "anxious", "depressed", "lonely", "worried"],
    ),
    _cluster(
        "creative", "Creative & Projects",
        ["write", "creative", "story", "art", "music", "project", "build", "create", "design"],
        ["write", "story", "art", "music", "creative", "painting", "drawing", "writing", "poem", "song"],
    ),
    _cluster(
        "social", "Social & Relationships",
        ["friend", "family", "relationship", "social", "party", "hang out", "people"],
        ["friend", "friends", "family", "relationship", "social", "party", "hang out", "people", "connection"],
    ),
    _cluster(
        "technology", "Technology & Computing",
        ["computer", "code", "programming", "tech", "ai", "robot", "app", "website", "software"],
        ["computer", "code", "programming", "tech", "technology", "ai", "robot", "app", "software", "internet"],
    ),
    _cluster(
        "lifestyle", "Lifestyle & Wellness",
        ["health", "fitness", "exercise", "diet", "sleep", "hobby", "sport", "activity"],
        ["health", "fitness", "exercise", "diet", "sleep", "hobby", "sport", "activity", "workout", "nutrition"],
    ),
    _cluster(
        "philosophy", "Philosophy & Deep Thoughts",
        ["life", "purpose", "meaning", "think", "believe", "opinion", "idea"],
        ["life", "purpose", "meaning", "philosophy", "think", "believe", "opinion", "idea", "worldview", "values"],
    ),
]


class TopicCatalog:
    """
    Read-only registry of topic clusters.

    The keyword lookup is flattened cluster by cluster, keywords before
    related topics. A term shared by several clusters maps to the cluster
    that registered it last; its scan position stays where it was first seen.
    """

    def __init__(self, clusters: Iterable[TopicCluster]):
        self._clusters: Dict[str, TopicCluster] = {}
        lookup: Dict[str, str] = {}

        for cluster in clusters:
            if not cluster.cluster_id:
                raise RegistryError("Topic cluster without an id", name=cluster.name)
            if cluster.cluster_id in self._clusters:
                raise RegistryError(f"Duplicate topic cluster '{cluster.cluster_id}'")
            self._clusters[cluster.cluster_id] = cluster

            for term in cluster.keywords + cluster.related_topics:
                term = term.lower().strip()
                if not term:
                    raise RegistryError(f"Empty keyword in topic cluster '{cluster.cluster_id}'")
                lookup[term] = cluster.cluster_id

        self._lookup = lookup
        self._word_patterns: Dict[str, List[Pattern]] = {
            cluster_id: [
                re.compile(r'\b' + re.escape(term.lower()) + r'\b', re.IGNORECASE)
                for term in cluster.vocabulary
            ]
            for cluster_id, cluster in self._clusters.items()
        }

    @property
    def keyword_lookup(self) -> Dict[str, str]:
        return dict(self._lookup)

    def get(self, cluster_id: str) -> Optional[TopicCluster]:
        return self._clusters.get(cluster_id)

    def clusters(self) -> List[TopicCluster]:
        return list(self._clusters.values())

    def cluster_ids(self) -> List[str]:
        return list(self._clusters)

    def identify(self, text: Optional[str]) -> List[str]:
        """
        Identify clusters mentioned in text.

        Substring containment against the flattened lookup first, then a
        word-boundary pass over each cluster's own vocabulary.

        Returns:
            Distinct cluster ids in first-discovery order
        """
        normalized = (text or "").lower().strip()
        if not normalized:
            return []

        found: List[str] = []

        for term, cluster_id in self._lookup.items():
            if term in normalized and cluster_id not in found:
                found.append(cluster_id)

        for cluster_id, patterns in self._word_patterns.items():
            if cluster_id in found:
                continue
            if any(pattern.search(normalized) for pattern in patterns):
                found.append(cluster_id)

        return found

    def shared_keywords(self, first_id: str, second_id: str) -> int:
        first = self._clusters.get(first_id)
        second = self._clusters.get(second_id)
        if first is None or second is None:
            return 0
        return len(set(first.keywords) & set(second.keywords))

    def __contains__(self, cluster_id: str) -> bool:
        return cluster_id in self._clusters

    def __len__(self) -> int:
        return len(self._clusters)


_default_catalog: Optional[TopicCatalog] = None


def default_topic_catalog() -> TopicCatalog:
    """Get the shared default topic catalog."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = TopicCatalog(DEFAULT_CLUSTERS)
        logger.info(f"Topic catalog built with {len(_default_catalog)} clusters")
    return _default_catalog


def compute_relevance(stats: ClusterStats, now: float, decay_minutes: float) -> float:
    """Relevance score in [0, 1] from activation time and visit count."""
    recency = 0.0
    if stats.last_activated is not None and decay_minutes > 0:
        elapsed_minutes = max(0.0, now - stats.last_activated) / 60.0
        recency = max(0.0, 1.0 - elapsed_minutes / decay_minutes)

    frequency = min(MAX_FREQUENCY_BOOST, stats.visit_count * FREQUENCY_STEP)

    return max(0.0, min(1.0, BASE_RELEVANCE + recency + frequency))


class TopicRelevanceTracker:
    """Per-session topic relevance and active-set tracking."""

    def __init__(self, catalog: Optional[TopicCatalog] = None,
                 decay_minutes: float = DEFAULT_DECAY_MINUTES,
                 max_active: int = DEFAULT_MAX_ACTIVE,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            catalog: Shared cluster catalog
            decay_minutes: Minutes for the recency boost to decay to zero
            max_active: Capacity of the active set
            clock: Returns the current time in seconds
        """
        self.catalog = catalog or default_topic_catalog()
        self.decay_minutes = decay_minutes
        self.max_active = max_active
        self._clock = clock

        self._stats: Dict[str, ClusterStats] = {
            cluster_id: ClusterStats() for cluster_id in self.catalog.cluster_ids()
        }
        # cluster_id -> activation time, least recently activated first
        self._active: "OrderedDict[str, float]" = OrderedDict()

    def identify_topics(self, text: Optional[str]) -> List[str]:
        return self.catalog.identify(text)

    def activate(self, cluster_id: str) -> bool:
        """
        Mark a cluster as visited now and put it in the active set.

        Returns:
            False for an unknown cluster id, which is otherwise ignored
        """
        stats = self._stats.get(cluster_id)
        if stats is None:
            logger.debug(f"Ignoring activation of unknown cluster '{cluster_id}'")
            return False

        now = self._clock()
        stats.visit_count += 1
        stats.last_activated = now

        self._active[cluster_id] = now
        self._active.move_to_end(cluster_id)

        while len(self._active) > self.max_active:
            oldest = min(self._active, key=self._active.__getitem__)
            del self._active[oldest]
            logger.debug(f"Evicted cluster '{oldest}' from active set")

        return True

    def relevance(self, cluster_id: str) -> float:
        """Current relevance of a cluster, 0.0 when unknown."""
        stats = self._stats.get(cluster_id)
        if stats is None:
            return 0.0
        return compute_relevance(stats, self._clock(), self.decay_minutes)

    def find_relevant_cluster(self, text: Optional[str]) -> Optional[TopicCluster]:
        """Most relevant identified cluster; ties keep identification order."""
        best_id = None
        best_score = -1.0
        for cluster_id in self.identify_topics(text):
            score = self.relevance(cluster_id)
            if score > best_score:
                best_id = cluster_id
                best_score = score
        return self.catalog.get(best_id) if best_id is not None else None

    def suggest_transitions(self, cluster_id: str) -> List[TopicTransition]:
        """Clusters sharing keywords with the given one, strongest first."""
        if cluster_id not in self.catalog:
            return []

        transitions = []
        for other_id in self.catalog.cluster_ids():
            if other_id == cluster_id:
                continue
            shared = self.catalog.shared_keywords(cluster_id, other_id)
            if shared > 0:
                transitions.append(TopicTransition(
                    from_topic=cluster_id,
                    to_topic=other_id,
                    reason="Related topic based on shared interests",
                    relevance=shared * SHARED_KEYWORD_WEIGHT,
                ))

        transitions.sort(key=lambda t: t.relevance, reverse=True)
        return transitions

    def similarity(self, first: Optional[str], second: Optional[str]) -> float:
        """Jaccard similarity of the clusters identified in two texts."""
        first_topics = set(self.identify_topics(first))
        second_topics = set(self.identify_topics(second))

        if not first_topics and not second_topics:
            return BOTH_EMPTY_SIMILARITY
        if not first_topics or not second_topics:
            return ONE_EMPTY_SIMILARITY

        return len(first_topics & second_topics) / len(first_topics | second_topics)

    def active_clusters(self) -> List[str]:
        """Active cluster ids, most recently activated first."""
        return [
            cluster_id for cluster_id, _ in
            sorted(self._active.items(), key=lambda item: item[1], reverse=True)
        ]

    def is_active(self, cluster_id: str) -> bool:
        return cluster_id in self._active

    def cluster_stats(self, cluster_id: str) -> Optional[ClusterStats]:
        stats = self._stats.get(cluster_id)
        if stats is None:
            return None
        return ClusterStats(stats.visit_count, stats.last_activated)

    def dominant_cluster(self, messages: Iterable[str]) -> Optional[str]:
        """Cluster identified most often across messages."""
        counts: Counter = Counter()
        for message in messages:
            counts.update(self.identify_topics(message))

        if not counts:
            return None
        # Counter keeps first-discovery order, max() keeps the first of equals
        return max(counts, key=counts.__getitem__)

    def cluster_info(self, cluster_id: str) -> Optional[Dict[str, Any]]:
        """Display information for one cluster."""
        cluster = self.catalog.get(cluster_id)
        if cluster is None:
            return None
        return {
            'cluster_id': cluster.cluster_id,
            'name': cluster.name,
            'keywords': list(cluster.keywords[:5]),
            'related_topics': list(cluster.related_topics[:5]),
            'relevance': self.relevance(cluster_id),
            'visits': self._stats[cluster_id].visit_count,
            'active': self.is_active(cluster_id),
        }

    def statistics(self) -> Dict[str, int]:
        """Visit counts by cluster name."""
        return {
            self.catalog.get(cluster_id).name: stats.visit_count
            for cluster_id, stats in self._stats.items()
        }

    def reset(self) -> None:
        """Forget visits, activation times and the active set."""
        for stats in self._stats.values():
            stats.visit_count = 0
            stats.last_activated = None
        self._active.clear()
