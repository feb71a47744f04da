"""
Approval Reply Parsing

Turns a free-text answer to "approve these transactions?" into an
ApprovalDecision over 1-based candidate numbers.

Supported phrasings:
    "yes" / "approve all" / "looks good"          -> every candidate
    "no" / "skip" / "none" / "reject 2"           -> nothing
    "approve 1 and 3"                             -> only 1 and 3
    "approve all except #2"                       -> all but 2
    "approve all except the coffee one"           -> all but descriptions
                                                     mentioning "coffee"
    "approve all except 2, categorize that as office supplies"
                                                  -> all; 2 re-categorized
    "3 as travel"                                 -> 3 re-categorized

"that" / "those" / "it" / "them" in an override refer to the candidates
named in the except-clause.
"""

import re
from typing import Optional, Sequence

from pydantic import BaseModel, Field


REJECT_RE = re.compile(
    r"^\s*(?:no|nope|nah|none|not|skip|reject|cancel|don'?t)\b",
    re.IGNORECASE,
)

BLANKET_RE = re.compile(
    r"\b(?:yes|yep|yeah|y|ok|okay|sure|all|everything|"
    r"looks good|lgtm|sounds good|go ahead)\b",
    re.IGNORECASE,
)

_EXCEPT_WORDS = (
    r"\b(?:except(?:\s+for)?|but(?:\s+not)?|other than|excluding|"
    r"apart from|skip|without)\s+"
)

_NUMBER_LIST = r"#?\d+(?:\s*(?:,|and|&|or)\s*#?\d+)*"

EXCEPT_RE = re.compile(
    _EXCEPT_WORDS + rf"(?P<numbers>{_NUMBER_LIST})",
    re.IGNORECASE,
)

EXCEPT_PHRASE_RE = re.compile(
    _EXCEPT_WORDS + r"(?P<phrase>[a-z][a-z0-9 '&-]*?)\s*(?=$|[.;,!?])",
    re.IGNORECASE,
)

OVERRIDE_RE = re.compile(
    r"(?:\b(?:categori[sz]e|mark|put|file)\s+)?"
    rf"(?P<target>\b(?:that|those|it|them)\b|{_NUMBER_LIST})"
    r"\s+(?:as|under|to)\s+"
    r"(?P<category>[a-z][a-z0-9 &'/-]*?)"
    r"\s*(?=$|[.;,!?]|\s(?:and|but|then)\s)",
    re.IGNORECASE,
)

PRONOUNS = frozenset({"that", "those", "it", "them"})

# Words in "except the coffee one" that say nothing about which candidate
FILLER_WORDS = frozenset({
    "the", "a", "an", "one", "ones", "transaction", "transactions",
    "charge", "charges", "expense", "expenses", "payment", "from", "at",
    "for", "of", "and", "or",
})

NUMBER_RE = re.compile(r"#?(\d+)")


class ApprovalDecision(BaseModel):
    """Which candidates to approve, and with what category."""

    approved: set[int] = Field(default_factory=set)
    overrides: dict[int, str] = Field(default_factory=dict)
    out_of_range: list[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.approved


def _numbers(text: str) -> list[int]:
    return [int(n) for n in NUMBER_RE.findall(text)]


def _format_category(raw: str) -> str:
    words = raw.strip().split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _blank(text: str, start: int, end: int) -> str:
    return text[:start] + " " * (end - start) + text[end:]


def _match_descriptions(phrase: str, descriptions: Sequence[str]) -> set[int]:
    keywords = [
        word for word in re.findall(r"[a-z0-9']+", phrase.lower())
        if word not in FILLER_WORDS
    ]
    if not keywords:
        return set()
    return {
        number
        for number, description in enumerate(descriptions, start=1)
        if any(keyword in description.lower() for keyword in keywords)
    }


AFFIRMATIVE_RE = re.compile(
    r"^\s*(?:yes|yep|yeah|y|ok|okay|sure|please|go ahead|do it|confirm|"
    r"approve|load|show)\b",
    re.IGNORECASE,
)


def is_affirmative(text: str) -> bool:
    """True for a yes-style answer to a yes/no question."""
    return bool(AFFIRMATIVE_RE.match(text)) and not REJECT_RE.match(text)


def parse_approval_reply(
    text: str,
    candidate_count: int,
    descriptions: Optional[Sequence[str]] = None,
) -> ApprovalDecision:
    """
    Parse an approval reply.

    Args:
        text: The user's answer
        candidate_count: How many candidates were shown (numbered from 1)
        descriptions: Candidate descriptions, in display order, for
            except-clauses that name a transaction instead of a number

    Returns:
        ApprovalDecision. Numbers outside 1..candidate_count are listed in
        out_of_range and otherwise ignored.
    """
    text = text.strip()
    # A reply that opens with a refusal approves nothing, numbers included
    if not text or REJECT_RE.match(text):
        return ApprovalDecision()

    # Overrides are pulled out first so their numbers don't read as selections
    pending_overrides: list[tuple[str, str]] = []
    remaining = text
    for match in OVERRIDE_RE.finditer(text):
        category = _format_category(match.group("category"))
        if category:
            pending_overrides.append((match.group("target").lower(), category))
            remaining = _blank(remaining, match.start(), match.end())

    excluded: set[int] = set()
    for match in EXCEPT_RE.finditer(remaining):
        excluded.update(_numbers(match.group("numbers")))
        remaining = _blank(remaining, match.start(), match.end())

    if descriptions:
        for match in EXCEPT_PHRASE_RE.finditer(remaining):
            named = _match_descriptions(match.group("phrase"), descriptions)
            if named:
                excluded.update(named)
                remaining = _blank(remaining, match.start(), match.end())

    overrides: dict[int, str] = {}
    for target, category in pending_overrides:
        if target in PRONOUNS:
            targets = excluded or ({1} if candidate_count == 1 else set())
        else:
            targets = set(_numbers(target))
        for number in targets:
            overrides[number] = category

    selected = set(_numbers(remaining))

    if selected:
        base = selected
    elif BLANKET_RE.search(remaining) or excluded:
        base = set(range(1, candidate_count + 1)) - excluded
    else:
        base = set()

    valid = range(1, candidate_count + 1)
    mentioned = base | excluded | set(overrides)
    out_of_range = sorted(n for n in mentioned if n not in valid)

    return ApprovalDecision(
        approved={n for n in base | set(overrides) if n in valid},
        overrides={n: c for n, c in overrides.items() if n in valid},
        out_of_range=out_of_range,
    )
