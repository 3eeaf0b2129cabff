ENRICHMENT_PROMPT = """Please provide comprehensive information about "{name}" (a {place_type}) in JSON format:

{{
  "description": "Brief 2-3 sentence description",
  "historical": {{
    "briefDescription": "2-3 sentence historical overview",
    "extendedDescription": "Detailed 4-5 sentence historical background",
    "keyEvents": ["Event 1 with year", "Event 2 with year", "Event 3 with year"],
    "relatedFigures": ["Important person 1", "Important person 2"]
  }},
  "educational": {{
    "facts": ["Interesting fact 1", "Interesting fact 2", "Interesting fact 3"],
    "importance": "Why this place is culturally/historically significant",
    "culturalRelevance": "Cultural and social importance",
    "categories": ["category1", "category2"]
  }},
  "imageKeywords": ["keyword1", "keyword2", "keyword3"]
}}

Focus on historical accuracy, educational value and cultural significance.
Include interesting facts tourists would enjoy. Keep descriptions concise but informative.
"""

GUIDE_PROMPT = """You are a knowledgeable travel guide assistant helping tourists learn about "{name}".

LANDMARK BACKGROUND NOTES:
{background}

USER QUESTION: {question}

RULES:
1. Answer in a helpful, friendly and informative manner, like a local guide.
2. Use the background notes when relevant but never refer to them, to "the information" or to "the data".
3. If you are not certain about a specific detail, say "I'm not sure about that specific detail".
4. Keep it to 2-4 sentences of natural, flowing text with no asterisks, headings or bullet points.
5. Never make up historical dates, architectural details or statistics.
6. Start directly with the answer.

Answer the question now:
"""

FOCUSED_PROMPT = """Question about {name}: {question}

Relevant information: {context}

Answer the question using ONLY the relevant information above. Keep it to 1-2 sentences.

Answer:"""

NOT_SURE_PROMPT = """Question about {name}: {question}

You don't have specific information to answer this question.

Politely tell the user you're not sure about this particular detail, but you can help with other questions about {name}.

Answer:"""

OFFLINE_FALLBACK = (
    "I'm currently in offline mode and don't have specific information about that. "
    "Try reconnecting to the internet for more detailed answers, or ask me something "
    "else about {name}."
)

ACKNOWLEDGMENT_REPLIES = (
    "You're welcome! Feel free to ask if you have more questions about {name}.",
    "Happy to help! Let me know if you need anything else.",
    "Glad I could help! Ask away if you have more questions.",
)

GREETING = (
    "Hi! I'm your guide for {name}. Ask me about its history, architecture, "
    "visiting hours or anything else."
)

_PLACE_TYPES = (
    (("fort", "palace"), "historical fort/palace"),
    (("temple", "mosque", "church", "cathedral"), "religious site"),
    (("museum",), "museum"),
    (("park", "garden"), "park/garden"),
    (("tower", "building"), "architectural landmark"),
)


def determine_place_type(name: str) -> str:
    lower = name.lower()
    for needles, label in _PLACE_TYPES:
        if any(n in lower for n in needles):
            return label
    return "tourist attraction"


def build_enrichment_prompt(name: str, place_type: str | None = None) -> str:
    if not place_type or place_type == "attraction":
        place_type = determine_place_type(name)
    return ENRICHMENT_PROMPT.format(name=name, place_type=place_type)


def build_guide_prompt(name: str, background: str, question: str) -> str:
    return GUIDE_PROMPT.format(
        name=name, background=background or "(none)", question=question
    )


def build_focused_prompt(name: str, question: str, context: str | None) -> str:
    if not context:
        return NOT_SURE_PROMPT.format(name=name, question=question)
    return FOCUSED_PROMPT.format(name=name, question=question, context=context)
