"""
Intent Recognition
==================

Rule-based intent recognition for chatbot messages.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from .pattern_classifier import ClassificationResult, ConfidenceLevel, PatternRegistry, classify

logger = logging.getLogger(__name__)

UNKNOWN_INTENT = "unknown"
GREETING_INTENT = "greeting"
FAREWELL_INTENT = "farewell"

INTENT_PATTERNS: List[Tuple[str, str]] = [
    # Greetings
    ('greeting', r"^(hi|hello|hey|howdy|yo|sup|good morning|good afternoon|good evening|greetings)$"),
    ('greeting', r"\b(hi|hello|hey|howdy|yo)\b"),

    # Identity
    ('identity', r"what'?s your name|who are you|name\?|your identity"),
    ('identity', r"\b(name|who)\b.*\b(you|your)\b"),

    # Wellbeing
    ('wellbeing_how', r"how are you|how r u|hru|how'?s it going|how do you do"),
    ('wellbeing_response', r"i'?m (good|great|fine|well|okay|ok|alright)"),
    ('wellbeing_response', r"(good|great|fine|well|okay|ok|alright).*hbu|how about you"),
    ('wellbeing_response', r"a lot|very much|lots|pretty good|pretty well"),
    ('wellbeing_negative', r"(not (so )?good|bad|meh|terrible|awful|sad|depressed)"),
    ('wellbeing_positive', r"(great|excellent|fantastic|awesome|amazing|wonderful|a lot)"),

    # Activities
    ('activity', r"what are you doing|wyd|what'?s up|what doing|up to"),
    ('activity_response', r"(studying|just chilling|relaxing|hanging out|nothing much|bored)"),

    # Academic
    ('homework_help', r"(help with|help on|homework|assignment|task|project).*\?"),
    ('homework_help', r"i need help.*(homework|study|subject|math|science|history|english)"),
    ('homework_subject', r"\b(math|algebra|geometry|calculus|trigonometry|science|biology|physics|chemistry|history|english|geography)\b"),

    # Mental health
    ('mental_health_support', r"(stressed|anxious|depressed|sad|lonely|angry|overwhelmed|tired|not feeling good)"),
    ('mental_health_support', r"(need to talk|feeling (down|bad|low)|having a hard time)"),
    ('mental_health_support', r"(dark thoughts|intrusive thoughts|negative thoughts)"),
    ('mental_health_positive', r"(happy|excited|motivated|inspired|relaxed|calm|peaceful|grateful|confident)"),

    # Gaming
    ('gaming', r"(fortnite|cs2|counter.?strike|cs:?go|valorant|apex|minecraft|roblox|gaming)"),
    ('gaming_weapon', r"(assault rifle|sniper|shotgun|pistol|smg|rocket launcher|ak-47|m4|awp|deagle)"),
    ('gaming_map', r"(mirage|dust ?2|inferno|nuke|ancient|overpass|vertigo|train|cache|cobblestone)"),

    # Creative writing
    ('creative_writing', r"(writing a (book|story|poem|article)|creative writing|story idea|write about)"),
    ('creative_writing_topic', r"(mystery|romance|sci-fi|science fiction|fantasy|dystopian|historical|thriller)"),

    # Entertainment
    ('entertainment', r"(movie|tv|show|music|sport|game|hobby|interest|favorite)"),
    ('entertainment_type', r"\b(sports|movies|tv shows|books|art|animals|video games|music|programming)\b"),

    # Advice
    ('advice', r"(need advice|tips|suggestions|how to|advice on|guidance)"),
    ('advice_topic', r"(study|study ?ing|stress|focus|time management|grades|friends|motivation)"),

    # Help
    ('help_request', r"(need help|can you help|help me|assist|support)"),
    ('help_type', r"(problem|issue|question|concern)"),

    ('gratitude', r"(thank|thanks|thx|ty|appreciate|cheers)"),
    ('farewell', r"(bye|goodbye|see you|later|catch you|quit|exit)"),

    # Conversation continuation
    ('continue', r"(yes|yeah|no|nope|maybe|i don'?t know|idk|oh|wow|cool|awesome)"),

    ('creative_project', r"(building (a )?(robot|ai|app|website|game)|creating|designing|developing)"),
    ('philosophical', r"(purpose|meaning of life|life|mind|consciousness|existence)"),
]

# Entity vocabularies, matched by substring containment
ENTITY_VOCABULARIES: Dict[str, List[str]] = {
    'subject': [
        "math", "algebra", "geometry", "calculus", "trigonometry", "science", "biology",
        "physics", "chemistry", "history", "english", "geography", "literature", "art", "music"
    ],
    'game': [
        "fortnite", "cs2", "counter strike", "valorant", "apex legends", "minecraft",
        "roblox", "league", "overwatch", "pubg", "gta"
    ],
    'activity': [
        "studying", "gaming", "reading", "watching", "listening", "hanging out",
        "relaxing", "exercising", "coding", "creating"
    ],
}

POSITIVE_EMOTION_WORDS = [
    "happy", "excited", "motivated", "inspired", "relaxed", "calm", "peaceful",
    "grateful", "confident", "fantastic", "great", "awesome", "excellent"
]
NEGATIVE_EMOTION_WORDS = [
    "sad", "stressed", "anxious", "depressed", "lonely", "angry", "overwhelmed",
    "tired", "bad", "meh", "terrible"
]

ENTITY_TYPES = ('subject', 'emotion', 'game', 'activity')


@lru_cache(maxsize=1)
def default_intent_registry() -> PatternRegistry:
    """Build the shared intent registry once per process."""
    registry = PatternRegistry("intents", UNKNOWN_INTENT, INTENT_PATTERNS)
    logger.info(f"Intent registry built with {len(registry)} intents")
    return registry


@dataclass
class IntentResult:
    """Intent recognition result."""
    intent: str
    confidence: float
    scores: Dict[str, float] = field(default_factory=dict)
    entities: Dict[str, List[str]] = field(default_factory=dict)
    confidence_level: ConfidenceLevel = field(init=False)

    def __post_init__(self):
        if self.confidence >= 0.8:
            self.confidence_level = ConfidenceLevel.HIGH
        elif self.confidence >= 0.5:
            self.confidence_level = ConfidenceLevel.MEDIUM
        else:
            self.confidence_level = ConfidenceLevel.LOW

    @property
    def is_unknown(self) -> bool:
        return self.intent == UNKNOWN_INTENT

    @classmethod
    def from_classification(cls, result: ClassificationResult,
                            entities: Optional[Dict[str, List[str]]] = None) -> 'IntentResult':
        return cls(
            intent=result.label,
            confidence=result.confidence,
            scores=dict(result.scores),
            entities=entities or {},
        )


class IntentRecognizer:
    """Rule-based intent recognizer."""

    def __init__(self, registry: Optional[PatternRegistry] = None,
                 extra_patterns: Optional[Iterable[Tuple[str, str]]] = None):
        """
        Initialize with the shared intent registry.

        Args:
            registry: Registry to classify against, defaults to the shared one
            extra_patterns: (intent, regex) pairs appended in a private registry
        """
        base = registry or default_intent_registry()
        if extra_patterns:
            base = base.extend(f"{base.name}+custom", extra_patterns)
        self.registry = base

    def classify(self, text: Optional[str]) -> ClassificationResult:
        """Score text against the intent registry."""
        return classify(text, self.registry)

    def recognize_intent(self, text: Optional[str]) -> IntentResult:
        """
        Recognize intent from text.

        Args:
            text: Input text to analyze

        Returns:
            IntentResult with intent, confidence and extracted entities
        """
        result = IntentResult.from_classification(
            self.classify(text), self.extract_all_entities(text)
        )
        logger.debug(f"Intent '{result.intent}' recognized with confidence {result.confidence:.2f}")
        return result

    def extract_entities(self, text: Optional[str], entity_type: str) -> List[str]:
        """Extract entities of one type from text."""
        normalized = (text or "").lower()
        if not normalized:
            return []

        if entity_type == 'emotion':
            found = [f"positive:{word}" for word in POSITIVE_EMOTION_WORDS if word in normalized]
            found.extend(f"negative:{word}" for word in NEGATIVE_EMOTION_WORDS if word in normalized)
            return found

        vocabulary = ENTITY_VOCABULARIES.get(entity_type, [])
        return [entity for entity in vocabulary if entity in normalized]

    def extract_all_entities(self, text: Optional[str]) -> Dict[str, List[str]]:
        """Extract every entity type that has at least one match."""
        entities = {}
        for entity_type in ENTITY_TYPES:
            found = self.extract_entities(text, entity_type)
            if found:
                entities[entity_type] = found
        return entities

    def get_supported_intents(self) -> List[str]:
        """Get list of supported intents."""
        return list(self.registry.labels)
