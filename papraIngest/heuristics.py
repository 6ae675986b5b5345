"""
Cheap, deterministic text features used to build a compact document summary:
headings, key entities (dates, amounts, e-mails, reference numbers),
TF-IDF keywords and a coarse document type.

All functions are pure and work on plain strings.
"""

import re
from typing import Dict, List, Sequence

from sklearn.feature_extraction.text import TfidfVectorizer

MAX_HEADINGS = 10
MAX_ENTITIES = 15
MAX_KEYWORDS = 15
TYPE_WINDOW_CHARS = 2000

_TITLE_CASE_RE = re.compile(r"^[A-Z][a-z]+(\s+[A-Z][a-z]+)+")
_LIST_MARKER_RE = re.compile(r"^(\d+\.|\d+\)|\([a-z]\)|\([0-9]\))")

# (pattern, cap) evaluated in this order; matches are taken whole
ENTITY_PATTERNS = (
    # dates: 12/31/2024, 2024-12-31, March 5, 2024
    (re.compile(
        r"\b(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}|\d{4}[/\-]\d{1,2}[/\-]\d{1,2}|\w+ \d{1,2},? \d{4})\b"), 5),
    # currency amounts
    (re.compile(r"[$€£¥]\s?\d{1,3}(,\d{3})*(\.\d{2})?"), 5),
    # e-mail addresses
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"), 3),
    # invoice / order / reference numbers
    (re.compile(r"\b(INV|ORDER|REF|NO)[:\s#-]*[A-Z0-9-]{5,}\b", re.IGNORECASE), 3),
)

KEYWORD_EXCLUDE = frozenset({"this", "that", "with", "from", "have", "been", "will"})

# Word characters incl. accented Latin and Cyrillic; text is lower-cased first
KEYWORD_TOKEN_PATTERN = r"[a-z0-9_à-ÿа-я]+"

# First match wins. Every pattern of a rule has to match.
DOCUMENT_TYPE_RULES = (
    ("invoice", (re.compile(r"invoice|bill|payment|amount due", re.I),
                 re.compile(r"\$|€|£|total", re.I))),
    ("contract", (re.compile(r"contract|agreement|terms|parties", re.I),)),
    ("resume", (re.compile(r"resume|curriculum vitae|cv|experience|education", re.I),)),
    ("report", (re.compile(r"report|analysis|summary|findings|conclusion", re.I),)),
    ("proposal", (re.compile(r"proposal|recommendation|objective", re.I),)),
    ("statement", (re.compile(r"statement|account|balance", re.I),)),
    ("receipt", (re.compile(r"receipt|purchase|transaction", re.I),)),
)
UNKNOWN_TYPE = "unknown"


def _is_heading(line: str) -> bool:
    if len(line) < 3 or len(line) > 100:
        return False
    if line == line.upper() and len(line.split()) >= 2:
        return True
    return bool(_TITLE_CASE_RE.match(line) or _LIST_MARKER_RE.match(line))


def extract_headings(text: str) -> List[str]:
    headings = []
    for line in (text or "").split("\n"):
        line = line.strip()
        if line and _is_heading(line):
            headings.append(line)
            if len(headings) >= MAX_HEADINGS:
                break
    return headings


def extract_entities(text: str) -> List[str]:
    """Dates, amounts, e-mails and IDs, capped per family and overall."""
    entities: List[str] = []
    for pattern, cap in ENTITY_PATTERNS:
        found = []
        for match in pattern.finditer(text or ""):
            found.append(match.group(0))
            if len(found) >= cap:
                break
        entities.extend(found)
    return entities[:MAX_ENTITIES]


def _keyword_vectorizer() -> TfidfVectorizer:
    return TfidfVectorizer(stop_words="english", token_pattern=KEYWORD_TOKEN_PATTERN)


def tfidf_scores(documents: Sequence[str]) -> List[Dict[str, float]]:
    """TF-IDF weight of every non-stop-word term, one dict per document."""
    vectorizer = _keyword_vectorizer()
    try:
        matrix = vectorizer.fit_transform([doc.lower() for doc in documents])
    except ValueError:
        # empty vocabulary: nothing but stop words or punctuation
        return [{} for _ in documents]
    terms = vectorizer.get_feature_names_out()
    scores = []
    for i in range(matrix.shape[0]):
        row = matrix[i].tocoo()
        scores.append({str(terms[j]): float(v) for j, v in zip(row.col, row.data)})
    return scores


def extract_keywords(text: str) -> List[str]:
    if not text:
        return []
    lowered = text.lower()
    scores = tfidf_scores([lowered])[0]
    first_seen: Dict[str, int] = {}
    for position, token in enumerate(_keyword_vectorizer().build_analyzer()(lowered)):
        first_seen.setdefault(token, position)
    # equal scores keep the order in which terms first appear
    ranked = sorted(scores, key=lambda term: (-scores[term], first_seen.get(term, len(first_seen))))
    keywords = [term for term in ranked if len(term) > 3 and term not in KEYWORD_EXCLUDE]
    return keywords[:MAX_KEYWORDS]


def detect_document_type(text: str, headings: Sequence[str] = ()) -> str:
    window = ((text or "").lower() + " " + " ".join(headings).lower())[:TYPE_WINDOW_CHARS]
    for label, patterns in DOCUMENT_TYPE_RULES:
        if all(p.search(window) for p in patterns):
            return label
    return UNKNOWN_TYPE
