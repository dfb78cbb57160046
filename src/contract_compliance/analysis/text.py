"""Text normalisation and tokenisation shared by evaluation and matching."""

import re
from typing import FrozenSet, Iterator, List, Tuple


_WHITESPACE_RE = re.compile(r"\s+")
_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

STOP_WORDS: FrozenSet[str] = frozenset({
    "the", "a", "an", "of", "and", "or", "to", "in", "for", "on", "with",
    "by", "at", "as", "is", "are", "be", "been", "this", "that", "such",
    "any", "all", "its", "it", "from", "which", "will", "shall",
})


def normalize_text(text: str) -> str:
    """Casefold and collapse runs of whitespace into single spaces."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.casefold()).strip()


def iter_tokens(text: str) -> Iterator[Tuple[str, int, int]]:
    """
    Yield (token, start, end) for each word token in ``text``.

    Tokens are casefolded; offsets are character offsets into the original
    string.
    """
    for match in _TOKEN_RE.finditer(text or ""):
        yield match.group(0).casefold(), match.start(), match.end()


def token_set(text: str, drop_stop_words: bool = True) -> FrozenSet[str]:
    """Distinct casefolded tokens of ``text``."""
    tokens = {token for token, _, _ in iter_tokens(text)}
    if drop_stop_words:
        tokens -= STOP_WORDS
    return frozenset(tokens)


def jaccard_similarity(left: str, right: str) -> float:
    """Token-overlap ratio over the union of the two token sets, in [0, 1]."""
    left_tokens = token_set(left)
    right_tokens = token_set(right)
    union = left_tokens | right_tokens
    if not union:
        return 0.0
    return len(left_tokens & right_tokens) / len(union)


def extract_keywords(text: str) -> List[str]:
    """Distinct non-stop-word tokens longer than three characters, in order of appearance."""
    seen = set()
    keywords = []
    for token, _, _ in iter_tokens(text):
        if len(token) > 3 and token not in STOP_WORDS and token not in seen:
            seen.add(token)
            keywords.append(token)
    return keywords


def byte_offset(text: str, char_index: int) -> int:
    """Convert a character index in ``text`` into a UTF-8 byte offset."""
    return len(text[:char_index].encode("utf-8"))
