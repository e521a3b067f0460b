"""Keyword tables and lexical heuristics shared by the pipeline stages.

Everything here is pure and deterministic. The relevance filter, the
fallback summarizer, the heuristic contradiction detector and the report
assembler all read text through these helpers so their notion of
"sentiment", "topic" and "strong language" stays consistent.

Matching is done on word boundaries against lower-cased text, so
"like" does not match "dislike" and "ai" does not match "said".
"""

import re
from functools import lru_cache

from models.finding import FindingCategory

_WORD_RE = re.compile(r"[a-z0-9']+")

# Phrases that mark a statement as an expressed opinion rather than a fact
OPINION_MARKERS = (
    "i think", "i believe", "i feel", "in my opinion", "personally",
    "i love", "i hate", "i prefer", "i like", "i dislike",
    "always", "never", "best", "worst", "better", "worse",
    "should", "shouldn't", "must", "can't stand",
    "amazing", "terrible", "absolutely", "definitely", "completely", "totally",
)

# Strong sentiment words used for the relevance sentiment score
STRONG_POSITIVE = frozenset({
    "love", "amazing", "fantastic", "excellent", "perfect", "brilliant", "outstanding",
})
STRONG_NEGATIVE = frozenset({
    "hate", "terrible", "awful", "horrible", "disgusting", "pathetic", "worthless",
})

# Absolute language that raises contradiction potential when both sides use it
STRONG_LANGUAGE = frozenset({
    "absolutely", "definitely", "completely", "totally", "always", "never",
})

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "political": ("trump", "biden", "democrat", "republican", "conservative", "liberal", "politics", "election"),
    "technology": ("iphone", "android", "apple", "google", "ai", "crypto", "bitcoin", "programming"),
    "entertainment": ("movie", "film", "tv show", "music", "game", "netflix", "youtube"),
    "lifestyle": ("diet", "exercise", "food", "health", "fitness", "work", "job"),
    "relationship": ("dating", "relationship", "marriage", "family", "friends"),
}
DEFAULT_TOPIC = "opinion"

# Checked in order; the first bucket with a keyword prefix in the text wins
CATEGORY_KEYWORDS: tuple[tuple[FindingCategory, tuple[str, ...]], ...] = (
    (FindingCategory.POLITICAL, ("politic", "government", "election", "vote")),
    (FindingCategory.PERSONAL_PREFERENCE, ("food", "preference", "taste", "like", "love")),
    (FindingCategory.FACTUAL, ("fact", "truth", "evidence", "science")),
    (FindingCategory.RELATIONSHIP, ("relationship", "dating", "marriage")),
    (FindingCategory.TECHNOLOGY, ("tech", "software", "computer")),
    (FindingCategory.ENTERTAINMENT, ("movie", "game", "music")),
    (FindingCategory.LIFESTYLE, ("health", "fitness", "diet")),
)

_BRANDS_RE = re.compile(r"\b(?:iPhone|Android|Tesla|Netflix|Amazon|Google|Apple|Microsoft)\b", re.IGNORECASE)
_PROPER_NAME_RE = re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b")
_QUESTION_OPENER_RE = re.compile(r"(?:what|how|why)\b", re.IGNORECASE)
MAX_ENTITIES = 5

# Word lists for the fallback gloss annotations
GLOSS_POSITIVE = frozenset({
    "good", "great", "love", "like", "amazing", "awesome", "excellent",
    "fantastic", "wonderful", "support",
})
GLOSS_NEGATIVE = frozenset({
    "bad", "hate", "terrible", "awful", "horrible", "worst", "sucks",
    "disgusting", "pathetic", "oppose",
})
_STANCE_MARKERS = (
    ("strong", ("strongly", "absolutely", "definitely")),
    ("tentative", ("maybe", "perhaps", "might")),
    ("absolute", ("always", "never", "completely")),
)
INTENSIFIERS = ("very", "extremely", "absolutely", "completely", "totally", "really", "so much")
_SHOUTING_RE = re.compile(r"[A-Z]{3,}")

_STOPWORDS = frozenset({
    "the", "and", "but", "for", "are", "was", "were", "you", "your", "this",
    "that", "these", "those", "with", "have", "has", "had", "not", "its",
    "it's", "they", "them", "their", "there", "what", "when", "who", "how",
    "all", "any", "can", "will", "would", "could", "just", "than", "then",
    "from", "about", "into", "out", "too", "very", "really", "also", "i'm",
    "don't", "doesn't", "much", "more", "most", "some", "one", "our",
})


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens, apostrophes kept inside words."""
    return _WORD_RE.findall(text.lower())


@lru_cache(maxsize=512)
def _phrase_pattern(phrase: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(phrase)}\b")


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word phrase search on already lower-cased text."""
    return _phrase_pattern(phrase).search(text) is not None


def count_opinion_markers(text: str) -> int:
    lower = text.lower()
    return sum(1 for marker in OPINION_MARKERS if contains_phrase(lower, marker))


def sentiment_score(text: str) -> float:
    """Lexical sentiment in [-1, 1] from strong sentiment words.

    Returns 0.0 when no strong word is present.
    """
    words = tokenize(text)
    positive = sum(1 for w in words if w in STRONG_POSITIVE)
    negative = sum(1 for w in words if w in STRONG_NEGATIVE)
    total = positive + negative
    if total == 0:
        return 0.0
    return (positive - negative) / total


def has_strong_language(text: str) -> bool:
    return any(w in STRONG_LANGUAGE for w in tokenize(text))


def detect_topics(text: str) -> list[str]:
    """Topic buckets mentioned in the text, or ``["opinion"]`` if none."""
    lower = text.lower()
    topics = [
        topic
        for topic, keywords in TOPIC_KEYWORDS.items()
        if any(contains_phrase(lower, kw) for kw in keywords)
    ]
    return topics or [DEFAULT_TOPIC]


def extract_entities(text: str) -> list[str]:
    """Proper names and known brands, at most MAX_ENTITIES, first-seen order."""
    found = _PROPER_NAME_RE.findall(text) + _BRANDS_RE.findall(text)
    return list(dict.fromkeys(found))[:MAX_ENTITIES]


def content_words(text: str) -> set[str]:
    return {w for w in tokenize(text) if len(w) > 2 and w not in _STOPWORDS}


def word_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the two texts' word sets (words over 2 chars)."""
    words_a = {w for w in tokenize(a) if len(w) > 2}
    words_b = {w for w in tokenize(b) if len(w) > 2}
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def is_question(text: str) -> bool:
    """Ends with a question mark or opens with what, how or why."""
    text = text.strip()
    return text.endswith("?") or bool(_QUESTION_OPENER_RE.match(text))


def detect_category(text: str) -> FindingCategory:
    """Infer a finding category from free text, defaulting to OPINION."""
    lower = text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(re.search(rf"\b{re.escape(kw)}", lower) for kw in keywords):
            return category
    return FindingCategory.OPINION


# === Fallback gloss labels ===

def sentiment_label(text: str) -> str:
    words = tokenize(text)
    positive = sum(1 for w in words if w in GLOSS_POSITIVE)
    negative = sum(1 for w in words if w in GLOSS_NEGATIVE)
    if positive > negative + 1:
        return "positive"
    if negative > positive + 1:
        return "negative"
    return "neutral"


def stance_label(text: str) -> str:
    lower = text.lower()
    for label, markers in _STANCE_MARKERS:
        if any(contains_phrase(lower, m) for m in markers):
            return label
    return "moderate"


def intensity_label(text: str) -> str:
    lower = text.lower()
    count = sum(1 for w in INTENSIFIERS if contains_phrase(lower, w))
    if count > 2 or "!!!" in text or _SHOUTING_RE.search(text):
        return "high"
    if count > 0 or "!!" in text:
        return "medium"
    return "low"
