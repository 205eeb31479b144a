"""
Unit Tests for Topic Clustering
==============================

Time-dependent relevance is tested with a fake clock.
"""

import pytest

from dialogcore.chatbot.topic_clusters import (
    TopicCatalog, TopicCluster, TopicRelevanceTracker, default_topic_catalog
)
from dialogcore.error_handling import RegistryError


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += minutes * 60


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return TopicRelevanceTracker(default_topic_catalog(), clock=clock)


def make_cluster(cluster_id, keywords, related=()):
    return TopicCluster(cluster_id, cluster_id.title(), tuple(related), tuple(keywords))


class TestTopicCatalog:
    """Test catalog construction and identification."""

    def test_default_catalog(self):
        catalog = default_topic_catalog()

        assert len(catalog) == 8
        assert catalog.cluster_ids() == [
            "academic", "gaming", "mental_health", "creative",
            "social", "technology", "lifestyle", "philosophy"
        ]
        assert default_topic_catalog() is catalog

    def test_identify_homework_request(self):
        topics = default_topic_catalog().identify("I need help with my math homework")

        assert "academic" in topics
        assert topics == ["academic"]

    def test_identify_in_discovery_order(self):
        assert default_topic_catalog().identify("math and minecraft") == ["academic", "gaming"]

    def test_identify_empty(self):
        assert default_topic_catalog().identify("") == []
        assert default_topic_catalog().identify(None) == []

    def test_shared_keyword_resolves_to_last_cluster(self):
        catalog = TopicCatalog([make_cluster("first", ["music"]), make_cluster("second", ["music", "band"])])

        assert catalog.keyword_lookup["music"] == "second"
        # the word-boundary pass still finds the earlier cluster, after the lookup winner
        assert catalog.identify("music") == ["second", "first"]

    def test_duplicate_cluster_rejected(self):
        with pytest.raises(RegistryError):
            TopicCatalog([make_cluster("a", ["x"]), make_cluster("a", ["y"])])

    def test_empty_keyword_rejected(self):
        with pytest.raises(RegistryError):
            TopicCatalog([make_cluster("a", ["x", "  "])])


class TestRelevance:
    """Test the recency and frequency relevance model."""

    def test_never_activated_cluster(self, tracker):
        assert tracker.relevance("academic") == pytest.approx(0.5)

    def test_unknown_cluster(self, tracker):
        assert tracker.relevance("nope") == 0.0
        assert tracker.activate("nope") is False
        assert tracker.cluster_stats("nope") is None
        assert tracker.active_clusters() == []

    def test_activation_saturates(self, tracker):
        assert tracker.activate("academic") is True
        assert tracker.relevance("academic") == 1.0

    def test_linear_decay(self, tracker, clock):
        tracker.activate("academic")
        clock.advance(20)

        assert tracker.relevance("academic") == pytest.approx(0.5 + (1 - 20 / 30) + 0.05)

        clock.advance(60)
        assert tracker.relevance("academic") == pytest.approx(0.55)

    def test_activation_strictly_increases_relevance(self, tracker, clock):
        tracker.activate("gaming")
        clock.advance(20)
        before = tracker.relevance("gaming")

        tracker.activate("gaming")

        assert tracker.relevance("gaming") > before

    def test_relevance_strictly_decreases_over_time(self, tracker, clock):
        tracker.activate("gaming")
        clock.advance(20)
        earlier = tracker.relevance("gaming")
        clock.advance(5)

        assert tracker.relevance("gaming") < earlier

    def test_frequency_boost_caps(self, tracker, clock):
        for _ in range(15):
            tracker.activate("social")
        clock.advance(120)

        assert tracker.relevance("social") == pytest.approx(1.0)
        assert tracker.cluster_stats("social").visit_count == 15

    def test_custom_decay_window(self, clock):
        tracker = TopicRelevanceTracker(default_topic_catalog(), decay_minutes=10, clock=clock)
        tracker.activate("creative")
        clock.advance(8)

        assert tracker.relevance("creative") == pytest.approx(0.5 + 0.2 + 0.05)


class TestActiveSet:
    """Test the bounded active set."""

    def test_sixth_activation_evicts_first(self, tracker, clock):
        ids = default_topic_catalog().cluster_ids()[:6]
        for cluster_id in ids:
            tracker.activate(cluster_id)
            clock.advance(1)

        active = tracker.active_clusters()
        assert len(active) == 5
        assert ids[0] not in active
        assert active == list(reversed(ids[1:]))

    def test_equal_timestamps_evict_first_inserted(self, tracker):
        ids = default_topic_catalog().cluster_ids()[:6]
        for cluster_id in ids:
            tracker.activate(cluster_id)

        assert len(tracker.active_clusters()) == 5
        assert not tracker.is_active(ids[0])
        assert tracker.is_active(ids[5])

    def test_reactivation_refreshes_entry(self, tracker, clock):
        ids = default_topic_catalog().cluster_ids()[:6]
        for cluster_id in ids[:5]:
            tracker.activate(cluster_id)
            clock.advance(1)

        tracker.activate(ids[0])
        clock.advance(1)
        tracker.activate(ids[5])

        assert tracker.is_active(ids[0])
        assert not tracker.is_active(ids[1])

    def test_custom_capacity(self, clock):
        tracker = TopicRelevanceTracker(default_topic_catalog(), max_active=2, clock=clock)
        for cluster_id in ("academic", "gaming", "social"):
            tracker.activate(cluster_id)
            clock.advance(1)

        assert tracker.active_clusters() == ["social", "gaming"]


class TestTopicQueries:
    """Test lookups built on identification and relevance."""

    def test_find_relevant_cluster(self, tracker):
        assert tracker.find_relevant_cluster("math and minecraft").cluster_id == "academic"

        tracker.activate("gaming")

        assert tracker.find_relevant_cluster("math and minecraft").cluster_id == "gaming"
        assert tracker.find_relevant_cluster("zzz") is None

    def test_suggest_transitions(self, clock):
        catalog = TopicCatalog([
            make_cluster("source", ["x", "y", "z"]),
            make_cluster("one", ["x"]),
            make_cluster("two", ["x", "y"]),
            make_cluster("none", ["q"]),
        ])
        tracker = TopicRelevanceTracker(catalog, clock=clock)

        transitions = tracker.suggest_transitions("source")

        assert [t.to_topic for t in transitions] == ["two", "one"]
        assert transitions[0].relevance == pytest.approx(0.2)
        assert transitions[1].from_topic == "source"
        assert tracker.suggest_transitions("missing") == []

    def test_similarity(self, tracker):
        assert tracker.similarity("", "") == 0.5
        assert tracker.similarity("math", "") == 0.2
        assert tracker.similarity("", "math") == 0.2
        assert tracker.similarity("math homework", "homework") == 1.0
        assert tracker.similarity("math", "math and minecraft") == pytest.approx(0.5)

    def test_similarity_is_symmetric(self, tracker):
        texts = ["math", "minecraft", "math and minecraft", "", "I feel sad about my friends", "zzz"]
        for a in texts:
            for b in texts:
                assert tracker.similarity(a, b) == tracker.similarity(b, a)

    def test_dominant_cluster(self, tracker):
        assert tracker.dominant_cluster(["math homework", "minecraft", "study math"]) == "academic"
        assert tracker.dominant_cluster(["zzz"]) is None
        assert tracker.dominant_cluster([]) is None

    def test_cluster_info(self, tracker):
        tracker.activate("academic")
        info = tracker.cluster_info("academic")

        assert info["name"] == "Academic & Education"
        assert info["keywords"] == ["homework", "assignment", "test", "quiz", "grade"]
        assert len(info["related_topics"]) == 5
        assert info["visits"] == 1
        assert info["active"] is True
        assert tracker.cluster_info("missing") is None

    def test_statistics_and_reset(self, tracker):
        tracker.activate("gaming")
        tracker.activate("gaming")

        stats = tracker.statistics()
        assert stats["Gaming & Entertainment"] == 2
        assert len(stats) == 8

        tracker.reset()

        assert tracker.active_clusters() == []
        assert tracker.relevance("gaming") == pytest.approx(0.5)
        assert tracker.cluster_stats("gaming").last_activated is None

    def test_sessions_do_not_share_state(self, clock):
        first = TopicRelevanceTracker(clock=clock)
        second = TopicRelevanceTracker(clock=clock)

        first.activate("gaming")

        assert first.catalog is second.catalog
        assert second.active_clusters() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
