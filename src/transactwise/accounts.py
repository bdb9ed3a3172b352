"""Deterministic chart-of-accounts lookups.

Two lookups back up the reasoning service:

- ``resolve_account_text`` finds the account an entity's default-account
  text names exactly (sub-account first, then parent account).
- ``infer_account`` picks an account by keyword overlap between transaction
  text and account names.

Both return ``None`` rather than guess when candidates tie.
"""

import re
from collections.abc import Iterable, Sequence

from transactwise.models import ChartOfAccount

_TOKEN = re.compile(r"[a-z0-9]+(?:[.\-][0-9]+)*")

# Words that say nothing about which account a transaction belongs to
_STOPWORDS = frozenset({
    "and",
    "the",
    "for",
    "inc",
    "llc",
    "ltd",
    "corp",
    "other",
    "misc",
    "miscellaneous",
    "general",
    "expense",
    "account",
    "payable",
    "receivable",
    "purchase",
    "payment",
})


def normalize(text: str | None) -> str:
    return " ".join((text or "").casefold().split())


def _stem(word: str) -> str:
    if len(word) > 4 and word.endswith("s"):
        return word[:-1]
    return word


def keywords(text: str | None) -> set[str]:
    """Meaningful lowercase word stems in ``text``."""
    words = set()
    for token in _TOKEN.findall(normalize(text)):
        if len(token) < 3 or token.isdigit():
            continue
        word = _stem(token)
        if word not in _STOPWORDS:
            words.add(word)
    return words


def _labels(*parts: str | None) -> set[str]:
    """Normalized ways an account can be written: name, number, "number name"."""
    values = [normalize(p) for p in parts if p]
    labels = set(values)
    if len(values) == 2:
        labels.add(f"{values[0]} {values[1]}")
    return labels


def _sub_account_labels(account: ChartOfAccount) -> set[str]:
    if not account.has_sub_account:
        return set()
    labels = _labels(account.sub_account_number, account.sub_account_name)
    labels.add(normalize(account.display_name))
    return labels


def _parent_labels(account: ChartOfAccount) -> set[str]:
    return _labels(account.account_number, account.account_name)


def _prefer_parent_rows(candidates: list[ChartOfAccount]) -> ChartOfAccount | None:
    """Among rows matched on the parent account, prefer the plain parent row."""
    if len(candidates) == 1:
        return candidates[0]
    plain = [a for a in candidates if not a.has_sub_account]
    if len(plain) == 1:
        return plain[0]
    return None


def resolve_account_text(
    text: str | None, accounts: Iterable[ChartOfAccount]
) -> ChartOfAccount | None:
    """Find the account that ``text`` names exactly.

    Sub-account name or number wins over parent account name or number.
    Returns ``None`` for empty text, no match, or an ambiguous match.
    """
    target = normalize(text)
    if not target:
        return None

    accounts = list(accounts)
    sub_matches = [a for a in accounts if target in _sub_account_labels(a)]
    if sub_matches:
        return sub_matches[0] if len(sub_matches) == 1 else None

    parent_matches = [a for a in accounts if target in _parent_labels(a)]
    if parent_matches:
        return _prefer_parent_rows(parent_matches)
    return None


def infer_account(
    texts: Sequence[str | None], accounts: Iterable[ChartOfAccount]
) -> ChartOfAccount | None:
    """Infer an account from keyword overlap with ``texts``.

    Accounts are ranked by sub-account keyword hits, then total hits. A tie
    at the top is ambiguous and yields ``None``, except that a plain parent
    row beats its sub-account rows when only the parent name matched.
    """
    words: set[str] = set()
    for text in texts:
        words |= keywords(text)
    if not words:
        return None

    scored: list[tuple[tuple[int, int], ChartOfAccount]] = []
    for account in accounts:
        sub_hits = len(words & keywords(account.sub_account_name))
        parent_hits = len(words & keywords(account.account_name))
        if sub_hits + parent_hits:
            scored.append(((sub_hits, sub_hits + parent_hits), account))

    if not scored:
        return None

    best = max(score for score, _ in scored)
    leaders = [account for score, account in scored if score == best]
    if len(leaders) == 1:
        return leaders[0]
    if best[0] == 0:
        return _prefer_parent_rows(leaders)
    return None
