from __future__ import annotations

import re
import unicodedata

# Lucene classic query parser syntax characters.
_LUCENE_SPECIAL = re.compile(r'([+\-!(){}\[\]^"~*?:\\/&|])')


def tokenize(text: str) -> list[str]:
    return [t for t in (text or "").split() if t]


def escape_term(term: str) -> str:
    return _LUCENE_SPECIAL.sub(r"\\\1", term)


def fold_term(term: str) -> str:
    """Lowercase and strip diacritics the way the `standard-folding` analyzer
    does at index time; wildcard and fuzzy terms skip the analyzer.

    >>> fold_term("Müllér")
    'muller'
    """
    decomposed = unicodedata.normalize("NFKD", term.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def term_clause(term: str) -> str:
    """Prefix match OR fuzzy match within edit distance 1."""
    t = escape_term(fold_term(term))
    return f"({t}* OR {t}~1)"


def build_fulltext_query(text: str) -> str | None:
    """Build the Lucene expression for a free-text query.

    Every whitespace-separated term must match (AND); each term matches as a
    prefix or a one-edit fuzzy variant. Returns None when there are no terms.

    >>> build_fulltext_query("neural networks")
    '(neural* OR neural~1) AND (networks* OR networks~1)'
    """
    terms = tokenize(text)
    if not terms:
        return None
    return " AND ".join(term_clause(t) for t in terms)
