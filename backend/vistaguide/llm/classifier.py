"""Rule-based question classification and context extraction for offline answers.

Categories are tried in a fixed order so the most specific one wins; the
generic "what/about" catch-all comes last.
"""

import re
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple


class QuestionCategory(str, Enum):
    location = "location"
    history = "history"
    festivals = "festivals"
    activities = "activities"
    visiting_info = "visiting_info"
    significance = "significance"
    facilities = "facilities"
    architecture = "architecture"
    crowd_info = "crowd_info"
    general = "general"


def _words(*words: str) -> "re.Pattern[str]":
    return re.compile(r"\b(" + "|".join(words) + r")\b")


# (category, word pattern, extra substrings)
_RULES: List[Tuple[QuestionCategory, "re.Pattern[str]", Tuple[str, ...]]] = [
    (
        QuestionCategory.location,
        _words(
            "where", "location", "located", "situated", "position", "address", "place",
            "area", "city", "state", "region", "distance", "far", "away", "near", "nearby",
            "close", "reach", "get to", "go to", "directions", "how to reach", "route",
            "map", "coordinates",
        ),
        ("which city", "which state", "which district", "find this"),
    ),
    (
        QuestionCategory.history,
        _words(
            "history", "historical", "historic", "built", "constructed", "established",
            "founded", "created", "made", "when was", "who built", "who made",
            "who created", "age", "how old", "ancient", "origin", "heritage", "background",
            "past", "year", "century", "era", "period", "dynasty", "empire", "emperor",
            "king", "queen", "ruler", "reign",
        ),
        ("how long ago", "years old", "time period"),
    ),
    (
        QuestionCategory.festivals,
        _words(
            "festival", "festivals", "event", "events", "celebration", "celebrations",
            "ceremony", "ceremonies", "ritual", "rituals", "worship", "prayer", "gathering",
            "fair", "mela", "function", "occasion", "celebrate", "observed", "held",
            "organized", "cultural event", "religious event", "annual event",
        ),
        ("what happens", "special day", "celebrate here"),
    ),
    (
        QuestionCategory.activities,
        _words(
            "do here", "do there", "things to do", "activities", "activity", "visit",
            "enjoy", "experience", "explore", "can i", "what can", "may i", "allowed",
            "permitted", "try", "sports", "recreation", "recreational", "boating", "boat",
            "swim", "swimming", "trek", "trekking", "hiking", "walk", "walking",
            "photography", "picnic", "play",
        ),
        ("what to do", "can we", "is it possible"),
    ),
    (
        QuestionCategory.visiting_info,
        _words(
            "timing", "timings", "schedule", "hours", "time", "open", "opens", "close",
            "closes", "closed", "entry", "entries", "ticket", "tickets", "pass", "fee",
            "fees", "price", "prices", "cost", "costs", "charge", "charges", "admission",
            "visiting hours", "visit time", "opening time", "closing time", "when can",
            "available",
        ),
        ("how much", "free entry", "entry fee"),
    ),
    (
        QuestionCategory.significance,
        _words(
            "famous", "well known", "known for", "significance", "important", "why",
            "popular", "special", "unique", "notable", "renowned", "celebrated",
            "distinguished", "outstanding", "remarkable", "exceptional", "main attraction",
            "highlight",
        ),
        ("why is it", "what makes", "stands out"),
    ),
    (
        QuestionCategory.facilities,
        _words(
            "food", "foods", "eat", "eating", "restaurant", "restaurants", "cafe", "cafes",
            "dining", "snack", "snacks", "meal", "meals", "hotel", "hotels", "lodge",
            "lodging", "accommodation", "stay", "staying", "parking", "park", "toilet",
            "toilets", "washroom", "washrooms", "restroom", "restrooms", "facilities",
            "facility", "amenities", "amenity", "shop", "shops", "shopping", "store",
            "stores", "vendor", "vendors", "stall", "stalls", "market", "available", "sell",
            "selling",
        ),
        ("where can i", "is there a", "are there any", "can i find", "fast food", "street food"),
    ),
    (
        QuestionCategory.architecture,
        _words(
            "architecture", "architectural", "design", "designed", "structure",
            "structural", "built", "construction", "style", "pattern", "feature",
            "features", "column", "columns", "pillar", "pillars", "dome", "domes", "tower",
            "towers", "gate", "gates", "wall", "walls", "carving", "carvings", "sculpture",
            "sculptures", "statue", "statues", "monument", "material", "materials", "stone",
            "marble", "granite",
        ),
        ("made of", "looks like", "what type"),
    ),
    (
        QuestionCategory.crowd_info,
        _words(
            "crowd", "crowded", "crowding", "busy", "busiest", "rush", "rushed", "tourist",
            "tourists", "tourism", "visitor", "visitors", "people", "peaceful", "quiet",
            "calm", "best time", "good time", "ideal time", "recommended time", "peak",
            "off peak", "weekend", "weekday", "season", "seasonal",
        ),
        ("how many people", "lots of", "when should", "when to visit"),
    ),
]

_YEAR = re.compile(r"\b\d{4}\b")
_CITATION = re.compile(r"\[\s*\d+\s*\]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.!?]+\s*")


def classify(question: str) -> QuestionCategory:
    lower = question.lower()
    for category, pattern, phrases in _RULES:
        if pattern.search(lower) or any(p in lower for p in phrases):
            return category
    return QuestionCategory.general


def _containing(*needles: str) -> Callable[[str], bool]:
    return lambda sentence: any(n in sentence.lower() for n in needles)


def _historical(sentence: str) -> bool:
    return _containing(
        "built", "constructed", "established", "founded", "century", "dynasty",
        "emperor", "king",
    )(sentence) or bool(_YEAR.search(sentence))


# category -> (sentence filter, max sentences)
_EXTRACTORS: Dict[QuestionCategory, Tuple[Callable[[str], bool], int]] = {
    QuestionCategory.location: (
        _containing("located", "situated", "state", "city", "district", "near", "area", "region"),
        2,
    ),
    QuestionCategory.history: (_historical, 3),
    QuestionCategory.festivals: (
        _containing("festival", "celebration", "ceremony", "event", "ritual", "fair"),
        2,
    ),
    QuestionCategory.activities: (
        _containing(
            "boating", "swimming", "trek", "visit", "enjoy", "experience", "activity",
            "sports",
        ),
        2,
    ),
    QuestionCategory.visiting_info: (
        _containing("timing", "hours", "open", "close", "entry", "ticket", "fee"),
        2,
    ),
    QuestionCategory.significance: (
        _containing("famous", "known", "important", "significant", "popular", "special"),
        2,
    ),
    QuestionCategory.facilities: (
        _containing(
            "food", "restaurant", "hotel", "parking", "facilities", "amenities", "vendor",
            "shop",
        ),
        2,
    ),
    QuestionCategory.architecture: (
        _containing(
            "architecture", "design", "structure", "style", "built", "carving", "dome",
            "tower",
        ),
        3,
    ),
    QuestionCategory.crowd_info: (
        _containing("crowd", "busy", "tourist", "visitor", "people", "popular"),
        2,
    ),
}


def split_sentences(text: str) -> List[str]:
    clean = _WHITESPACE.sub(" ", _CITATION.sub("", text)).strip()
    return [s.strip() for s in _SENTENCE_END.split(clean) if s.strip()]


def extract_context(category: QuestionCategory, background: str) -> Optional[str]:
    """Return only the sentences of `background` relevant to `category`, or None."""
    if not background or not background.strip():
        return None
    sentences = split_sentences(background)
    if category is QuestionCategory.general:
        picked = sentences[:2]
    else:
        keep, limit = _EXTRACTORS[category]
        picked = [s for s in sentences if keep(s)][:limit]
    if not picked:
        return None
    return ". ".join(picked) + "."
