"""
Text normalization for comparing board free text (status labels, artist names).

Board statuses are typed by humans: casing, accents and dash characters vary
("Undecided – Inquire Availabilities" vs "undecided - inquire availabilities").
Every comparison against board text goes through these two functions.
"""
import re
import unicodedata

# en dash, em dash, figure dash, minus sign, non-breaking hyphen
_DASHES = re.compile(r"[‐‑‒–—―−]")
_QUOTES = re.compile(r"[‘’‚‛“”„‟«»]")
_SPACES = re.compile(r"\s+")
_AROUND_DASH = re.compile(r"\s*-\s*")


def _strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: str | None) -> str:
    """
    Lowercase, strip diacritics, unify dashes to '-' and quotes to '"', collapse whitespace, trim.
    None -> "".
    """
    if not text:
        return ""
    s = _strip_diacritics(str(text)).lower()
    s = _DASHES.sub("-", s)
    s = _QUOTES.sub('"', s)
    s = _SPACES.sub(" ", s)
    return s.strip()


def normalize_status(text: str | None) -> str:
    """normalize_text plus exactly one space on each side of every dash ("a-b" -> "a - b")."""
    s = normalize_text(text)
    if not s:
        return ""
    s = _AROUND_DASH.sub(" - ", s)
    return _SPACES.sub(" ", s).strip()
