"""
Emotion Detection for the Dialogue Engine

This module provides rule-based emotion detection with:
- Weighted pattern scoring over 37 emotion categories
- Direct keyword bonuses for unambiguous emotion words
- Positive / negative polarity classification
- Per-session emotion history and trend analysis
"""

import logging
import statistics
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Deque, Dict, List, Optional, Tuple

from .pattern_classifier import ClassificationResult, PatternRegistry, classify

logger = logging.getLogger(__name__)


class EmotionType(Enum):
    """Emotion categories with a short description."""
    # Positive
    HAPPY = ("happy", "Feeling joyful and positive")
    EXCITED = ("excited", "Feeling enthusiastic and eager")
    MOTIVATED = ("motivated", "Feeling driven and inspired")
    GRATEFUL = ("grateful", "Feeling thankful and appreciative")
    CONFIDENT = ("confident", "Feeling self-assured")
    RELAXED = ("relaxed", "Feeling calm and at ease")
    CURIOUS = ("curious", "Feeling interested and inquisitive")
    CREATIVE = ("creative", "Feeling imaginative")
    HOPEFUL = ("hopeful", "Feeling positive anticipation about the future")
    PROUD = ("proud", "Feeling satisfaction with achievement")
    AMUSED = ("amused", "Finding something entertaining or funny")
    INSPIRED = ("inspired", "Feeling creatively motivated")
    NOSTALGIC = ("nostalgic", "Feeling sentimental about the past")
    SURPRISED = ("surprised", "Experiencing unexpected wonder")
    RELIEVED = ("relieved", "Feeling released from stress or worry")
    PEACEFUL = ("peaceful", "Feeling deep calm and harmony")

    # Negative
    SAD = ("sad", "Feeling down or unhappy")
    STRESSED = ("stressed", "Feeling overwhelmed or anxious")
    ANXIOUS = ("anxious", "Feeling worried or nervous")
    LONELY = ("lonely", "Feeling isolated")
    ANGRY = ("angry", "Feeling frustrated or mad")
    OVERWHELMED = ("overwhelmed", "Feeling swamped")
    TIRED = ("tired", "Feeling exhausted")
    BORED = ("bored", "Feeling uninterested")
    HURT = ("hurt", "Feeling emotionally wounded")
    CONFUSED = ("confused", "Feeling uncertain")
    FRUSTRATED = ("frustrated", "Feeling stuck or annoyed")
    DISAPPOINTED = ("disappointed", "Feeling let down by expectations")
    EMBARRASSED = ("embarrassed", "Feeling self-conscious")
    SYMPATHY = ("sympathy", "Feeling compassion and understanding for others")

    # Supportive
    SOOTHING = ("soothing", "Feeling calm and comforting")
    CARING = ("caring", "Feeling warmth and concern for others")
    SYMPATHETIC = ("sympathetic", "Feeling empathy and understanding for others")
    UNDERSTANDING = ("understanding", "Feeling comprehension and acceptance")

    # Neutral
    NEUTRAL = ("neutral", "Feeling balanced")
    CHALLENGED = ("challenged", "Feeling tested but capable")
    UNKNOWN = ("unknown", "Unable to determine emotion")

    def __init__(self, label: str, description: str):
        self.label = label
        self.description = description

    @classmethod
    def from_label(cls, label: str) -> 'EmotionType':
        """Look up an emotion by label, UNKNOWN when not found."""
        for emotion in cls:
            if emotion.label == label:
                return emotion
        return cls.UNKNOWN


POSITIVE_EMOTIONS = frozenset({
    EmotionType.HAPPY, EmotionType.EXCITED, EmotionType.MOTIVATED, EmotionType.GRATEFUL,
    EmotionType.CONFIDENT, EmotionType.RELAXED, EmotionType.CURIOUS, EmotionType.CREATIVE,
    EmotionType.HOPEFUL, EmotionType.PROUD, EmotionType.AMUSED, EmotionType.INSPIRED,
    EmotionType.NOSTALGIC, EmotionType.SURPRISED, EmotionType.RELIEVED, EmotionType.PEACEFUL,
})

NEGATIVE_EMOTIONS = frozenset({
    EmotionType.SAD, EmotionType.STRESSED, EmotionType.ANXIOUS, EmotionType.LONELY,
    EmotionType.ANGRY, EmotionType.OVERWHELMED, EmotionType.TIRED, EmotionType.BORED,
    EmotionType.HURT, EmotionType.CONFUSED, EmotionType.FRUSTRATED,
    EmotionType.DISAPPOINTED, EmotionType.EMBARRASSED,
})

EMOTION_PATTERNS: List[Tuple[str, str]] = [
    ('happy', r"\b(happy|glad|joyful|joy|cheerful|content|satisfied|pleased|delighted|thrilled|elated)\b"),
    ('happy', r"\b(i feel (good|great|awesome|wonderful|amazing|fantastic))\b"),
    ('happy', r"(making me smile|feeling good|feeling great)"),

    ('excited', r"\b(excited|eager|thrilled|enthusiastic| pumped| can't wait)\b"),
    ('excited', r"\b(looking forward|anticipating|psyched|amped)\b"),

    ('motivated', r"\b(motivated|inspired|driven|determined|energized)\b"),
    ('motivated', r"\b(ready to|going to|will power|ambitious)\b"),

    ('grateful', r"\b(grateful|thankful|appreciative|blessed|fortunate)\b"),
    ('grateful', r"\b(thank god|thankful for|appreciate)\b"),

    ('confident', r"\b(confident|sure|certain|assured|self-assured)\b"),
    ('confident', r"\b(i can do|believe in|trust myself)\b"),

    ('relaxed', r"\b(relaxed|calm|peaceful|chilled|chill|at ease|serene)\b"),
    ('relaxed', r"\b(taking it easy|winding down|unwinding)\b"),

    ('curious', r"\b(curious|wondering|interested|inquisitive|want to know)\b"),
    ('curious', r"\b(what if|how does|why is|tell me about)\b"),

    ('creative', r"\b(creative|imaginative|artistic|innovative)\b"),
    ('creative', r"\b(creating|making|building|designing|writing)\b"),

    ('sad', r"\b(sad|sadly|unhappy|miserable|down|blue|down in the dumps)\b"),
    ('sad', r"\b(feeling (sad|down|blue|low|empty))\b"),
    ('sad', r"\b(not (happy|good|great))\b"),

    ('stressed', r"\b(stressed|stressed out|pressure|under pressure)\b"),
    ('stressed', r"\b(so much|together too much|overloaded|swamped)\b"),

    ('anxious', r"\b(anxious|worried|nervous|uneasy|on edge)\b"),
    ('anxious', r"\b(what if|fear|scared|afraid|worried about)\b"),

    ('lonely', r"\b(lonely|alone|isolated|ignored|unwanted)\b"),
    ('lonely', r"\b(no one|nobody cares|feel alone)\b"),

    ('hurt', r"\b(hurt|heartbroken|wounded|pain|suffering)\b"),
    ('hurt', r"\b(feeling (in pain|hated|unloved|rejected))\b"),

    ('angry', r"\b(angry|mad|furious|irritated|annoyed|frustrated)\b"),
    ('angry', r"\b(so annoying|drives me crazy|hate it)\b"),

    ('overwhelmed', r"\b(overwhelmed|swamped|buried|drowning|too much)\b"),
    ('overwhelmed', r"\b(where to start|don't know where to begin)\b"),

    ('tired', r"\b(tired|exhausted|weary|fatigued|drained|sleepy)\b"),
    ('tired', r"\b(need sleep|need rest|need a break)\b"),

    ('bored', r"\b(bored|boring|boredom|nothing to do)\b"),
    ('bored', r"\b(need something|looking for|want to do)\b"),

    ('confused', r"\b(confused|confusing|don't understand|lost|puzzled)\b"),
    ('confused', r"\b(don't get it|what does|how to)\b"),

    ('frustrated', r"\b(frustrated|frustrating|stuck|can't)\b"),
    ('frustrated', r"\b(not working|won't|doesn't|why won't)\b"),

    ('sympathy', r"\b(sorry|feel sorry|feel bad for|pity|poor thing)\b"),
    ('sympathy', r"\b(that's sad|that's terrible|that's awful|how sad)\b"),
    ('sympathy', r"\b(i feel for|i sympathize|my heart goes out|thinking of)\b"),

    ('soothing', r"\b(calm|relax|peaceful|serene|tranquil)\b"),
    ('soothing', r"\b(it's okay|it's alright|everything will be fine)\b"),
    ('soothing', r"\b(take a deep breath|breathe|settle down)\b"),

    ('caring', r"\b(care|caring|compassion|kindness|gentle)\b"),
    ('caring', r"\b(be there for|support|helping|hug)\b"),
    ('caring', r"\b(i'm here|here for you|got your back)\b"),

    ('hopeful', r"\b(hopeful|optimistic|looking forward|positive outlook)\b"),
    ('hopeful', r"\b(better days|things will get|hoping|hopefully)\b"),
    ('hopeful', r"\b(i hope|keeping hope|faith|believe things will)\b"),

    ('proud', r"\b(proud|accomplished|achievement|success|won)\b"),
    ('proud', r"\b(did it|finally|made it|proud of)\b"),
    ('proud', r"\b(milestone|celebration|accomplished)\b"),

    ('amused', r"\b(amused|hilarious|funny|laughing|lol|lmao)\b"),
    ('amused', r"\b(that was funny|got me|so funny|had me)\b"),
    ('amused', r"\b(rofl|lmao| kek| dead meme)\b"),

    ('inspired', r"\b(inspired|moved|touched|wow)\b"),
    ('inspired', r"\b(gave me ideas|motivation|sparked creativity)\b"),
    ('inspired', r"\b(that's amazing|incredible|remarkable)\b"),

    ('nostalgic', r"\b(nostalgic|miss the old|remember when|good old)\b"),
    ('nostalgic', r"\b(throwback|those days|makes me think of|brings back)\b"),
    ('nostalgic', r"\b(old times|childhood|memories|past)\b"),

    ('surprised', r"\b(surprised|wow|oh wow|no way|unbelievable)\b"),
    ('surprised', r"\b(didn't expect|didn't see that coming|shocking)\b"),
    ('surprised', r"\b(omg|oh my|astonished|stunned)\b"),

    ('disappointed', r"\b(disappointed|let down|expected better|underwhelmed)\b"),
    ('disappointed', r"\b(not what i hoped|not what i expected|bummer)\b"),
    ('disappointed', r"\b(disappointing|sadly|unfortunately)\b"),

    ('embarrassed', r"\b(embarrassed|awkward|oh no|so embarrassing)\b"),
    ('embarrassed', r"\b(face palm|can't believe i|died inside)\b"),
    ('embarrassed', r"\b(red face|wish i hadn't|oops)\b"),

    ('relieved', r"\b(relieved|thank goodness|thank god|finally|i'm done)\b"),
    ('relieved', r"\b(that was close|made it|got through)\b"),
    ('relieved', r"\b(such a relief|so glad that's over|i can breathe)\b"),

    ('peaceful', r"\b(peaceful|serene|tranquil|at peace|harmony)\b"),
    ('peaceful', r"\b(at one|inner peace|zen|balanced)\b"),
    ('peaceful', r"\b(contentment|fulfilled|wholeness)\b"),
]

# Direct keyword bonuses. A repeated keyword keeps its last label ("calm").
EMOTION_KEYWORDS: List[Tuple[str, str]] = [
    ('happy', 'happy'), ('sad', 'sad'), ('excited', 'excited'), ('stressed', 'stressed'),
    ('anxious', 'anxious'), ('lonely', 'lonely'), ('angry', 'angry'),
    ('overwhelmed', 'overwhelmed'), ('tired', 'tired'), ('bored', 'bored'), ('hurt', 'hurt'),
    ('challenged', 'challenged'), ('sympathetic', 'sympathetic'),
    ('understanding', 'understanding'), ('motivated', 'motivated'), ('grateful', 'grateful'),
    ('confident', 'confident'), ('relaxed', 'relaxed'), ('curious', 'curious'),
    ('creative', 'creative'), ('confused', 'confused'), ('frustrated', 'frustrated'),
    ('sympathy', 'sympathy'), ('sorry', 'sympathy'), ('pity', 'sympathy'),
    ('soothing', 'soothing'), ('calm', 'soothing'), ('relax', 'soothing'),
    ('caring', 'caring'), ('care', 'caring'), ('kind', 'caring'),
    ('hopeful', 'hopeful'), ('optimistic', 'hopeful'), ('hope', 'hopeful'),
    ('proud', 'proud'), ('accomplished', 'proud'),
    ('amused', 'amused'), ('funny', 'amused'), ('laughing', 'amused'), ('lol', 'amused'),
    ('inspired', 'inspired'), ('inspiring', 'inspired'),
    ('nostalgic', 'nostalgic'), ('memories', 'nostalgic'),
    ('surprised', 'surprised'), ('wow', 'surprised'),
    ('disappointed', 'disappointed'), ('disappointing', 'disappointed'),
    ('embarrassed', 'embarrassed'), ('awkward', 'embarrassed'),
    ('relieved', 'relieved'), ('relief', 'relieved'),
    ('peaceful', 'peaceful'), ('serene', 'peaceful'), ('calm', 'peaceful'),
]


@lru_cache(maxsize=1)
def default_emotion_registry() -> PatternRegistry:
    """Build the shared emotion registry once per process."""
    registry = PatternRegistry(
        "emotions", EmotionType.NEUTRAL.label, EMOTION_PATTERNS, dict(EMOTION_KEYWORDS)
    )
    logger.info(f"Emotion registry built with {len(registry)} emotions")
    return registry


@dataclass
class EmotionResult:
    """Emotion detection result."""
    emotion: EmotionType
    confidence: float
    scores: Dict[EmotionType, float] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_positive(self) -> bool:
        return self.emotion in POSITIVE_EMOTIONS

    @property
    def is_negative(self) -> bool:
        return self.emotion in NEGATIVE_EMOTIONS

    @property
    def is_neutral(self) -> bool:
        return self.emotion == EmotionType.NEUTRAL

    @property
    def is_unknown(self) -> bool:
        return self.emotion == EmotionType.UNKNOWN

    @property
    def polarity(self) -> int:
        if self.is_positive:
            return 1
        if self.is_negative:
            return -1
        return 0

    def ranked(self) -> List[Tuple[EmotionType, float]]:
        """Emotions sorted by normalized score."""
        return sorted(self.scores.items(), key=lambda item: item[1], reverse=True)

    @property
    def dominance(self) -> float:
        """Share of the summed scores held by the strongest emotion."""
        total = sum(self.scores.values())
        if total <= 0:
            return 1.0
        return max(self.scores.values()) / total

    @property
    def margin(self) -> float:
        """Gap between the strongest emotion and the runner-up."""
        ranked = self.ranked()
        if len(ranked) < 2:
            return 1.0
        return ranked[0][1] - ranked[1][1]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'emotion': self.emotion.label,
            'confidence': self.confidence,
            'polarity': self.polarity,
            'scores': {emotion.label: score for emotion, score in self.scores.items()},
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_classification(cls, result: ClassificationResult) -> 'EmotionResult':
        return cls(
            emotion=EmotionType.from_label(result.label),
            confidence=result.confidence,
            scores={EmotionType.from_label(label): score for label, score in result.scores.items()},
        )


class EmotionDetector:
    """Rule-based emotion detector over the shared emotion registry."""

    def __init__(self, registry: Optional[PatternRegistry] = None,
                 detection_enabled: bool = True, min_confidence_threshold: float = 0.3):
        self.registry = registry or default_emotion_registry()
        self.detection_enabled = detection_enabled
        self.min_confidence_threshold = min_confidence_threshold

    def classify(self, text: Optional[str]) -> ClassificationResult:
        """Score text against the emotion registry."""
        return classify(text, self.registry)

    def detect_emotion(self, text: Optional[str]) -> EmotionResult:
        """
        Detect the primary emotion in text.

        Args:
            text: Text to analyze

        Returns:
            EmotionResult; NEUTRAL when nothing matched or detection is disabled
        """
        if not self.detection_enabled:
            return EmotionResult(EmotionType.NEUTRAL, 0.0)

        result = EmotionResult.from_classification(self.classify(text))

        if not result.is_neutral and result.dominance < self.min_confidence_threshold:
            logger.debug(
                f"Emotion '{result.emotion.label}' holds {result.dominance:.2f} of the scores, reporting neutral"
            )
            result = EmotionResult(EmotionType.NEUTRAL, result.confidence, result.scores)

        logger.debug(f"Emotion '{result.emotion.label}' detected with confidence {result.confidence:.2f}")
        return result

    def all_emotions_sorted(self, text: Optional[str]) -> List[Tuple[EmotionType, float]]:
        """Get every scored emotion, strongest first."""
        return self.detect_emotion(text).ranked()

    @staticmethod
    def is_mixed_emotion(result: EmotionResult) -> bool:
        """Check whether several emotions were detected without a clear winner."""
        return len(result.scores) > 1 and result.margin < 0.2

    @staticmethod
    def intensity_description(confidence: float) -> str:
        """Describe how strongly an emotion was expressed."""
        if confidence >= 0.9:
            return "very strongly"
        if confidence >= 0.7:
            return "fairly strongly"
        if confidence >= 0.5:
            return "moderately"
        if confidence >= 0.3:
            return "somewhat"
        return "slightly"


class EmotionHistory:
    """Bounded per-session record of detected emotions."""

    def __init__(self, max_size: int = 100):
        self.max_size = max_size
        self._results: Deque[EmotionResult] = deque(maxlen=max_size)

    def add(self, result: EmotionResult) -> None:
        self._results.append(result)

    def latest(self) -> Optional[EmotionResult]:
        return self._results[-1] if self._results else None

    def clear(self) -> None:
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)

    def trend(self) -> Dict[str, Any]:
        """
        Get emotion trend over the recorded results.

        Compares mean polarity of the first and second half of the history.

        Returns:
            Trend analysis dictionary
        """
        results = list(self._results)
        if not results:
            return {'trend': 'insufficient_data', 'sample_size': 0}

        polarities = [r.polarity for r in results]

        if len(polarities) >= 2:
            mid_point = len(polarities) // 2
            first_half_avg = statistics.mean(polarities[:mid_point])
            second_half_avg = statistics.mean(polarities[mid_point:])

            if second_half_avg > first_half_avg + 0.1:
                trend_direction = 'improving'
            elif second_half_avg < first_half_avg - 0.1:
                trend_direction = 'declining'
            else:
                trend_direction = 'stable'
        else:
            trend_direction = 'stable'

        emotion_counts = Counter(r.emotion.label for r in results)

        return {
            'trend': trend_direction,
            'sample_size': len(results),
            'average_polarity': statistics.mean(polarities),
            'average_confidence': statistics.mean(r.confidence for r in results),
            'emotion_distribution': dict(emotion_counts),
            'most_common_emotion': emotion_counts.most_common(1)[0][0],
            'negative_ratio': sum(1 for r in results if r.is_negative) / len(results),
        }


__all__ = [
    'EmotionType',
    'EmotionResult',
    'EmotionDetector',
    'EmotionHistory',
    'POSITIVE_EMOTIONS',
    'NEGATIVE_EMOTIONS',
    'default_emotion_registry',
]
