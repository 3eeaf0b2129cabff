import re

_ESCAPED_NEWLINE = re.compile(r"\\r\\n|\\n|\\r")
_ESCAPED_TAB = re.compile(r"\\t")
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_HTML_TAG = re.compile(r"<[^>]+>")
_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
_HEADER = re.compile(r"^[ \t]*#+[ \t]*", re.MULTILINE)
_LIST_MARKER = re.compile(r"^[ \t]*[-•][ \t]+", re.MULTILINE)
_PREFIXES = (
    re.compile(r"^\s*(answer|a)\s*:\s*", re.IGNORECASE),
    re.compile(r"^\s*the answer is:?\s*", re.IGNORECASE),
    re.compile(r"^\s*response:?\s*", re.IGNORECASE),
)
_PARAGRAPH = re.compile(r"\n\s*\n")
_WHITESPACE = re.compile(r"\s+")
_REPEATED = ((re.compile(r"\.\.+"), "."), (re.compile(r"\?\?+"), "?"), (re.compile(r"!!+"), "!"))
_QUOTES = "\"'\u201c\u201d\u2018\u2019"


def strip_control(text: str) -> str:
    """Trim and drop non-printing control characters, keeping tabs and newlines."""
    return _CONTROL.sub("", text).strip()


def _join_paragraphs(text: str) -> str:
    chunks = [c.strip() for c in _PARAGRAPH.split(text) if c.strip()]
    out = []
    for idx, chunk in enumerate(chunks):
        if idx < len(chunks) - 1 and chunk[-1] not in ".!?":
            chunk += "."
        out.append(chunk)
    return " ".join(out)


def sanitize_model_output(raw: str) -> str:
    """Turn raw small-model output into one clean plain-text paragraph."""
    text = _ESCAPED_NEWLINE.sub("\n", raw or "")
    text = _ESCAPED_TAB.sub(" ", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    text = _CONTROL.sub("", text)
    text = _HTML_TAG.sub("", text)
    text = _ZERO_WIDTH.sub("", text)

    text = text.replace("*", "")
    text = _HEADER.sub("", text)
    text = _LIST_MARKER.sub("", text)
    for prefix in _PREFIXES:
        text = prefix.sub("", text, count=1)

    text = _join_paragraphs(text)
    text = _WHITESPACE.sub(" ", text).strip()
    text = text.strip(_QUOTES).strip()
    for pattern, repl in _REPEATED:
        text = pattern.sub(repl, text)

    if text:
        text = text[0].upper() + text[1:]
    return text
