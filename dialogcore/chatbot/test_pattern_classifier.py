"""
Unit Tests for Pattern Classification
====================================

Covers the weighted scoring, normalization and tie-breaking of classify(),
registry construction failures, and the intent and emotion registries
built on top of it.
"""

import pytest

from dialogcore.chatbot.emotion_detector import (
    EmotionDetector, EmotionHistory, EmotionResult, EmotionType, default_emotion_registry
)
from dialogcore.chatbot.intent_recognizer import IntentRecognizer, default_intent_registry
from dialogcore.chatbot.pattern_classifier import (
    ConfidenceLevel, PatternRegistry, classify,
    CONTAINS_MATCH_SCORE, EDGE_MATCH_SCORE, EXACT_MATCH_SCORE
)
from dialogcore.error_handling import ConfigurationError, PatternCompileError, RegistryError


@pytest.fixture
def registry():
    """Small registry with one label per scoring tier."""
    return PatternRegistry(
        "test", "none",
        [
            ("exact", r"hello there"),
            ("edge", r"hello"),
            ("contains", r"llo th"),
        ],
        {"wave": "waving"}
    )


class TestClassify:
    """Test scoring and result selection."""

    def test_empty_input_is_default_with_full_confidence(self, registry):
        for text in ("", "   ", None):
            result = classify(text, registry)
            assert result.label == "none"
            assert result.confidence == 1.0
            assert result.scores == {}
            assert result.is_default

    def test_no_match_is_default_with_zero_confidence(self, registry):
        result = classify("zzz", registry)

        assert result.label == "none"
        assert result.confidence == 0.0
        assert result.scores == {}
        assert result.confidence_level == ConfidenceLevel.LOW

    def test_tiered_scores_are_normalized_by_maximum(self, registry):
        result = classify("Hello There", registry)

        assert result.label == "exact"
        assert result.confidence == 1.0
        assert result.scores["exact"] == pytest.approx(1.0)
        assert result.scores["edge"] == pytest.approx(EDGE_MATCH_SCORE / EXACT_MATCH_SCORE)
        assert result.scores["contains"] == pytest.approx(CONTAINS_MATCH_SCORE / EXACT_MATCH_SCORE)

    def test_exact_match_outscores_contains_match(self):
        registry = PatternRegistry("t", "none", [("sub", r"ell"), ("full", r"^hello$")])
        result = classify("hello", registry)

        assert result.scores["full"] >= result.scores["sub"]
        assert result.label == "full"

    def test_scores_accumulate_across_patterns(self):
        registry = PatternRegistry("t", "none", [("a", r"cat"), ("a", r"dog"), ("b", r"cat and dog")])
        result = classify("a cat and dog", registry)

        # a: 2 (contains) + 5 (ends with), b: 5 (ends with)
        assert result.label == "a"
        assert result.scores["b"] == pytest.approx(5 / 7)

    def test_keyword_bonus_strips_non_letters(self, registry):
        result = classify("I wave!", registry)

        assert result.label == "waving"
        assert result.confidence == 1.0

    def test_tie_goes_to_first_registered_label(self):
        first = PatternRegistry("t", "none", [("alpha", r"hi"), ("beta", r"hi")])
        second = PatternRegistry("t", "none", [("beta", r"hi"), ("alpha", r"hi")])

        assert classify("hi", first).label == "alpha"
        assert classify("hi", second).label == "beta"

    def test_scores_follow_registration_order(self):
        registry = PatternRegistry("t", "none", [("low", r"b"), ("high", r"^abc$")])
        result = classify("abc", registry)

        assert list(result.scores) == ["low", "high"]
        assert [label for label, _ in result.ranked()] == ["high", "low"]

    def test_confidence_always_in_unit_interval(self):
        registry = default_intent_registry()
        for text in ["hello", "I need help with my math homework", "bye", "zzz", "???", "hi hi hi hello"]:
            result = classify(text, registry)
            assert 0.0 <= result.confidence <= 1.0
            assert all(0.0 < score <= 1.0 for score in result.scores.values())

    def test_to_dict(self, registry):
        data = classify("hello there", registry).to_dict()

        assert data["label"] == "exact"
        assert data["confidence_level"] == "high"
        assert data["is_default"] is False


class TestPatternRegistry:
    """Test registry construction."""

    def test_invalid_regex_rejected(self):
        with pytest.raises(PatternCompileError) as exc_info:
            PatternRegistry("t", "none", [("bad", r"(unclosed")])
        assert exc_info.value.original_error is not None
        assert exc_info.value.metadata["label"] == "bad"

    def test_empty_matching_regex_rejected(self):
        with pytest.raises(PatternCompileError):
            PatternRegistry("t", "none", [("greedy", r"a*")])

    @pytest.mark.parametrize("regex", [r"\b", r"\bx*", r"(?=\w)", r"$"])
    def test_zero_width_regex_rejected(self, regex):
        with pytest.raises(PatternCompileError):
            PatternRegistry("t", "none", [("hello", regex)])

    def test_compile_error_is_configuration_error(self):
        assert issubclass(PatternCompileError, RegistryError)
        assert issubclass(RegistryError, ConfigurationError)

    def test_empty_label_rejected(self):
        with pytest.raises(RegistryError):
            PatternRegistry("t", "none", [("", r"x")])

    def test_missing_default_label_rejected(self):
        with pytest.raises(RegistryError):
            PatternRegistry("t", "", [("a", r"x")])

    def test_non_letter_keyword_rejected(self):
        with pytest.raises(RegistryError):
            PatternRegistry("t", "none", [], {"not ok": "a"})

    def test_labels_in_registration_order(self):
        registry = PatternRegistry("t", "none", [("b", r"x"), ("a", r"y"), ("b", r"z")], {"w": "c"})

        assert registry.labels == ("b", "a", "c")
        assert registry.patterns_for("b") == ["x", "z"]
        assert "c" in registry
        assert len(registry) == 3

    def test_keywords_are_read_only(self, registry):
        with pytest.raises(TypeError):
            registry.keywords["new"] = "label"

    def test_extend_keeps_original_untouched(self, registry):
        extended = registry.extend("more", [("extra", r"bonjour")])

        assert "extra" in extended
        assert "extra" not in registry
        assert extended.labels[:len(registry.labels)] == registry.labels
        assert extended.labels[-1] == "extra"

    def test_extended_registry_keeps_tie_break(self, registry):
        extended = registry.extend("more", [("extra", r"bonjour")])

        result = classify("wave bonjour", extended)

        assert result.scores == {"waving": 1.0, "extra": 1.0}
        assert result.label == "waving"


class TestIntentRecognizer:
    """Test the intent registry and entity extraction."""

    @pytest.fixture
    def recognizer(self):
        return IntentRecognizer()

    def test_homework_request(self, recognizer):
        result = recognizer.recognize_intent("I need help with my math homework")

        assert result.intent == "homework_help"
        assert result.confidence > 0
        assert result.entities == {"subject": ["math"]}

    def test_greeting_and_farewell(self, recognizer):
        assert recognizer.recognize_intent("hello").intent == "greeting"
        assert recognizer.recognize_intent("bye").intent == "farewell"

    def test_unknown_input(self, recognizer):
        result = recognizer.recognize_intent("zzz")

        assert result.intent == "unknown"
        assert result.is_unknown
        assert result.confidence == 0.0

    def test_shared_default_registry(self):
        assert IntentRecognizer().registry is IntentRecognizer().registry
        assert default_intent_registry() is default_intent_registry()

    def test_extra_patterns(self, recognizer):
        custom = IntentRecognizer(extra_patterns=[("weather", r"\bweather\b")])

        assert custom.recognize_intent("weather").intent == "weather"
        assert "weather" not in recognizer.get_supported_intents()

    def test_supported_intents(self, recognizer):
        intents = recognizer.get_supported_intents()

        assert intents[0] == "greeting"
        assert "farewell" in intents
        assert len(intents) == 28

    def test_entity_extraction(self, recognizer):
        assert recognizer.extract_entities("I am so happy but tired", "emotion") == [
            "positive:happy", "negative:tired"
        ]
        assert recognizer.extract_entities("i play minecraft and roblox", "game") == ["minecraft", "roblox"]
        assert recognizer.extract_entities("", "subject") == []
        assert recognizer.extract_entities("math", "weather") == []


class TestEmotionDetector:
    """Test emotion detection and history."""

    @pytest.fixture
    def detector(self):
        return EmotionDetector()

    def test_positive_emotion(self, detector):
        result = detector.detect_emotion("happy")

        assert result.emotion == EmotionType.HAPPY
        assert result.confidence == 1.0
        assert result.is_positive
        assert result.polarity == 1

    def test_negative_emotion(self, detector):
        result = detector.detect_emotion("i am so tired")

        assert result.emotion == EmotionType.TIRED
        assert result.is_negative
        assert result.polarity == -1

    def test_neutral_fallbacks(self, detector):
        assert detector.detect_emotion("").emotion == EmotionType.NEUTRAL
        assert detector.detect_emotion("").confidence == 1.0
        assert detector.detect_emotion("zzz").confidence == 0.0
        assert detector.detect_emotion("zzz").is_neutral

    def test_repeated_keyword_keeps_last_label(self, detector):
        assert default_emotion_registry().keywords["calm"] == "peaceful"

        result = detector.detect_emotion("calm")
        # relaxed and soothing tie on the pattern score; relaxed registered first
        assert result.emotion == EmotionType.RELAXED
        assert result.scores[EmotionType.PEACEFUL] == pytest.approx(0.5)

    def test_detection_disabled(self):
        result = EmotionDetector(detection_enabled=False).detect_emotion("happy")

        assert result.emotion == EmotionType.NEUTRAL
        assert result.confidence == 0.0

    @pytest.fixture
    def weather_registry(self):
        # sun leads (+5), rain sits in the middle (+2), wind trails (+5)
        return PatternRegistry(
            "weather", "neutral",
            [("happy", r"\bsun\b"), ("sad", r"\brain\b"), ("tired", r"\bwind\b")]
        )

    def test_dominance_and_margin(self, weather_registry):
        result = EmotionDetector(weather_registry).detect_emotion("sun rain wind")

        assert result.emotion == EmotionType.HAPPY
        assert result.confidence == 1.0
        assert result.dominance == pytest.approx(1.0 / 2.4)
        assert result.margin == 0.0
        assert EmotionResult(EmotionType.NEUTRAL, 0.0).dominance == 1.0

    def test_threshold_demotes_split_result(self, weather_registry):
        detector = EmotionDetector(weather_registry, min_confidence_threshold=0.5)

        split = detector.detect_emotion("sun rain wind")
        single = detector.detect_emotion("sun")

        assert split.emotion == EmotionType.NEUTRAL
        assert split.confidence == 1.0
        assert split.scores[EmotionType.SAD] == pytest.approx(0.4)
        assert single.emotion == EmotionType.HAPPY

    def test_default_threshold_keeps_split_result(self, weather_registry):
        result = EmotionDetector(weather_registry).detect_emotion("sun rain wind")

        assert result.emotion == EmotionType.HAPPY

    def test_mixed_emotion_and_intensity(self, weather_registry):
        detector = EmotionDetector(weather_registry)

        assert EmotionDetector.is_mixed_emotion(detector.detect_emotion("sun rain wind"))
        assert not EmotionDetector.is_mixed_emotion(detector.detect_emotion("sun and rain today"))
        assert not EmotionDetector.is_mixed_emotion(detector.detect_emotion("sun"))
        assert EmotionDetector.intensity_description(0.95) == "very strongly"
        assert EmotionDetector.intensity_description(0.5) == "moderately"
        assert EmotionDetector.intensity_description(0.1) == "slightly"

    def test_from_label(self):
        assert EmotionType.from_label("sad") == EmotionType.SAD
        assert EmotionType.from_label("nope") == EmotionType.UNKNOWN

    def test_history_trend(self):
        history = EmotionHistory(max_size=10)
        assert history.trend()["trend"] == "insufficient_data"

        for emotion in (EmotionType.SAD, EmotionType.SAD, EmotionType.HAPPY, EmotionType.HAPPY):
            history.add(EmotionResult(emotion, 1.0))

        trend = history.trend()
        assert trend["trend"] == "improving"
        assert trend["sample_size"] == 4
        assert trend["negative_ratio"] == 0.5
        assert history.latest().emotion == EmotionType.HAPPY

    def test_history_is_bounded(self):
        history = EmotionHistory(max_size=2)
        for _ in range(5):
            history.add(EmotionResult(EmotionType.TIRED, 1.0))

        assert len(history) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
