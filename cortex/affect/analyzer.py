"""
Emotion Analyzer: Lexicon-Based Affect Scoring for Incoming Messages.

Every message a user sends carries some emotional colour. This module reads
that colour with a deliberately small, transparent method: tokenize the text,
look each token up in a weighted emotion lexicon and a separate sentiment
lexicon, and adjust the weights for nearby negations ("not happy") and
intensifiers ("really happy").

The result is an EmotionAnalysis: a per-label score in [0, 1], the dominant
label, and an overall sentiment. The analyzer is pure. The same text always
produces the same scores apart from the timestamp, and nothing is stored here.
The rolling per-session view lives in cortex.affect.context.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class EmotionLabel(str, Enum):
    """Plutchik's eight primary emotions plus an explicit neutral."""
    JOY = "joy"
    SADNESS = "sadness"
    ANGER = "anger"
    FEAR = "fear"
    SURPRISE = "surprise"
    DISGUST = "disgust"
    TRUST = "trust"
    ANTICIPATION = "anticipation"
    NEUTRAL = "neutral"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# Labels that carry a score; NEUTRAL is only ever the fallback dominant.
SCORED_LABELS: tuple[EmotionLabel, ...] = tuple(
    label for label in EmotionLabel if label is not EmotionLabel.NEUTRAL
)

POSITIVE_LABELS = frozenset({EmotionLabel.JOY, EmotionLabel.TRUST, EmotionLabel.ANTICIPATION})
NEGATIVE_LABELS = frozenset(
    {EmotionLabel.SADNESS, EmotionLabel.ANGER, EmotionLabel.FEAR, EmotionLabel.DISGUST}
)

SENTIMENT_THRESHOLD = 0.1


# ---------------------------------------------------------------------------
# Lexicons
# ---------------------------------------------------------------------------

EMOTION_LEXICON: dict[EmotionLabel, dict[str, float]] = {
    EmotionLabel.JOY: {
        "happy": 1.0, "glad": 0.8, "excited": 0.9, "delighted": 0.9,
        "wonderful": 0.8, "great": 0.6, "amazing": 0.9, "love": 0.8,
        "enjoy": 0.7, "pleased": 0.7, "cheerful": 0.8, "fantastic": 0.9,
    },
    EmotionLabel.SADNESS: {
        "sad": 1.0, "unhappy": 0.9, "depressed": 1.0, "disappointed": 0.8,
        "miserable": 0.9, "heartbroken": 1.0, "lonely": 0.7, "grief": 1.0,
    },
    EmotionLabel.ANGER: {
        "angry": 1.0, "furious": 1.0, "annoyed": 0.7, "frustrated": 0.8,
        "irritated": 0.7, "outraged": 1.0, "mad": 0.8, "hostile": 0.9,
    },
    EmotionLabel.FEAR: {
        "afraid": 1.0, "scared": 1.0, "anxious": 0.8, "worried": 0.7,
        "terrified": 1.0, "nervous": 0.6, "panicked": 1.0, "dread": 0.9,
    },
    EmotionLabel.SURPRISE: {
        "surprised": 1.0, "shocked": 0.9, "astonished": 0.9,
        "unexpected": 0.7, "amazed": 0.8, "stunned": 0.9,
    },
    EmotionLabel.DISGUST: {
        "disgusted": 1.0, "revolted": 0.9, "repulsed": 0.9,
        "appalled": 0.8, "gross": 0.6,
    },
    EmotionLabel.TRUST: {
        "trust": 1.0, "reliable": 0.8, "confident": 0.7,
        "faithful": 0.8, "dependable": 0.8,
    },
    EmotionLabel.ANTICIPATION: {
        "eager": 0.8, "hopeful": 0.7, "looking": 0.3,
        "expecting": 0.7, "awaiting": 0.7, "curious": 0.6,
    },
}

SENTIMENT_LEXICON: dict[str, float] = {
    # positive
    "good": 0.5, "great": 0.7, "excellent": 0.9, "amazing": 0.9,
    "wonderful": 0.8, "fantastic": 0.9, "love": 0.8, "like": 0.3,
    "happy": 0.8, "pleased": 0.6, "enjoy": 0.6, "beautiful": 0.7,
    "perfect": 0.9, "awesome": 0.8, "brilliant": 0.8, "best": 0.7,
    "thank": 0.5, "thanks": 0.5, "helpful": 0.6, "impressive": 0.7,
    # negative
    "bad": -0.5, "terrible": -0.9, "horrible": -0.9, "awful": -0.8,
    "hate": -0.9, "dislike": -0.5, "sad": -0.7, "angry": -0.7,
    "annoyed": -0.5, "frustrated": -0.6, "disappointed": -0.6,
    "ugly": -0.6, "worst": -0.8, "poor": -0.5, "useless": -0.7,
    "broken": -0.5, "fail": -0.6, "failed": -0.6, "wrong": -0.5,
    "problem": -0.4,
}

NEGATION_WORDS = frozenset({
    "not", "no", "never", "neither", "nobody", "nothing", "nowhere", "nor",
    "cannot", "can't", "don't", "doesn't", "didn't", "won't", "wouldn't",
    "shouldn't", "couldn't", "isn't", "aren't", "wasn't", "weren't",
})

INTENSIFIERS: dict[str, float] = {
    "very": 1.3, "extremely": 1.5, "incredibly": 1.5, "really": 1.2,
    "absolutely": 1.4, "totally": 1.3, "completely": 1.3, "utterly": 1.4,
    "quite": 1.1, "somewhat": 0.8, "slightly": 0.6, "barely": 0.5,
    "hardly": 0.5,
}

# A negation this many tokens back still flips the word ("not really happy").
NEGATION_LOOKBACK = 2

_NON_WORD_RE = re.compile(r"[^\w\s'-]")


@dataclass
class EmotionAnalysis:
    """
    One message's emotional reading.

    ``scores`` holds every scored label (0.0 when the label never fired) so
    consumers can index it without key checks; ``emotions`` lists only the
    labels that fired, strongest first.
    """
    text: str
    sentiment: Sentiment = Sentiment.NEUTRAL
    sentiment_score: float = 0.0
    scores: dict[EmotionLabel, float] = field(
        default_factory=lambda: {label: 0.0 for label in SCORED_LABELS}
    )
    emotions: list[tuple[EmotionLabel, float]] = field(default_factory=list)
    dominant: EmotionLabel = EmotionLabel.NEUTRAL
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "sentiment": self.sentiment.value,
            "sentiment_score": round(self.sentiment_score, 3),
            "scores": {label.value: round(score, 3) for label, score in self.scores.items()},
            "emotions": [
                {"label": label.value, "score": round(score, 3)} for label, score in self.emotions
            ],
            "dominant": self.dominant.value,
            "timestamp": self.timestamp,
        }


def tokenize(text: str) -> list[str]:
    """Lowercase, replace punctuation (except apostrophes and hyphens) with spaces, split."""
    return _NON_WORD_RE.sub(" ", text.lower()).split()


def _modifier(tokens: list[str], index: int) -> tuple[bool, float]:
    start = max(0, index - NEGATION_LOOKBACK)
    negated = any(tok in NEGATION_WORDS for tok in tokens[start:index])
    intensity = INTENSIFIERS.get(tokens[index - 1], 1.0) if index > 0 else 1.0
    return negated, intensity


def classify_sentiment(score: float) -> Sentiment:
    if score > SENTIMENT_THRESHOLD:
        return Sentiment.POSITIVE
    if score < -SENTIMENT_THRESHOLD:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def analyze_emotion(text: str) -> EmotionAnalysis:
    """Score *text* against the emotion and sentiment lexicons."""
    tokens = tokenize(text or "")
    raw: dict[EmotionLabel, float] = {}
    sentiment_hits: list[float] = []

    for i, token in enumerate(tokens):
        negated, intensity = _modifier(tokens, i)

        for label, words in EMOTION_LEXICON.items():
            weight = words.get(token)
            if weight is None:
                continue
            weight *= intensity
            if negated:
                weight *= -0.5
            raw[label] = raw.get(label, 0.0) + weight

        polarity = SENTIMENT_LEXICON.get(token)
        if polarity is not None:
            polarity *= intensity
            if negated:
                polarity = -polarity
            sentiment_hits.append(polarity)

    scores = {label: 0.0 for label in SCORED_LABELS}
    for label, total in raw.items():
        scores[label] = min(1.0, abs(total))

    ranked = sorted(
        ((label, score) for label, score in scores.items() if score > 0),
        key=lambda pair: pair[1],
        reverse=True,
    )
    dominant = ranked[0][0] if ranked else EmotionLabel.NEUTRAL

    if sentiment_hits:
        sentiment_score = sum(sentiment_hits) / len(sentiment_hits)
    else:
        # No sentiment word matched: fall back to the label aggregate.
        positive = sum(scores[label] for label in POSITIVE_LABELS)
        negative = sum(scores[label] for label in NEGATIVE_LABELS)
        fired = sum(1 for label in POSITIVE_LABELS | NEGATIVE_LABELS if scores[label] > 0)
        sentiment_score = (positive - negative) / fired if fired else 0.0
    sentiment_score = max(-1.0, min(1.0, sentiment_score))

    return EmotionAnalysis(
        text=text,
        sentiment=classify_sentiment(sentiment_score),
        sentiment_score=sentiment_score,
        scores=scores,
        emotions=ranked,
        dominant=dominant,
    )
