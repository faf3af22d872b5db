"""
Token Extraction Engine.

Turns the token references Scryfall lists in a card's ``all_parts`` into
fully described ``TokenType`` entries, using only the parent card's rules
text:

1. Self-copy suppression: tokens that are just copies of the parent card
   are dropped entirely.
2. Creation-clause isolation: the first sentence that creates the token.
3. Field derivation: granted rules text, power/toughness and color identity,
   each through an ordered list of candidate extractors.

Every step is a best-effort pattern match over free-form rules prose. A miss
degrades to an empty string; nothing in this module raises on odd input.
"""

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from proxyforge.models.card import RelatedPart, TokenType

logger = logging.getLogger(__name__)

SUBTYPE_SEPARATOR = "—"

COPY_SYNONYMS: tuple[str, ...] = ("copy", "clone", "duplicate", "replica", "mirror")

COLOR_SYMBOLS: dict[str, str] = {
    "white": "{W}",
    "blue": "{U}",
    "black": "{B}",
    "red": "{R}",
    "green": "{G}",
    "colorless": "{C}",
}

# Words that mark a quoted string as granted rules rather than flavor
GRANTED_RULES_HINTS: tuple[str, ...] = ("token", "sacrifice", "add", "{", "}", ":", "this", "they")

# Keywords introducing granted abilities, in priority order
ABILITY_KEYWORDS: tuple[str, ...] = ("with", "that has", "gains", "gets", "has")

_CLAUSE_SPLIT = re.compile(r"[.!?\n]+")
_COPY_WORD = re.compile(r"\bcop(?:y|ies)\b", re.IGNORECASE)
_LITERAL_COPY = re.compile(r"\bcopy\b", re.IGNORECASE)
_CREATE_WORD = re.compile(r"\bcreates?\b", re.IGNORECASE)
_QUOTED = re.compile(r"[\"“]([^\"”]+)[\"”]")
_POWER_TOUGHNESS = re.compile(r"(?<![+\-\d])(\d+)/(\d+)")
_COLOR_WORD = re.compile(r"\b(white|blue|black|red|green|colorless)\b", re.IGNORECASE)
_STAT_LINE = re.compile(r"\bcreates?\b.*?(?<![+\-\d])\d+/\d+", re.IGNORECASE)
_TRAILING_TEMPORAL = re.compile(
    r"(?:\s*,?\s*(?:until end of turn|this turn|permanently))+\s*$", re.IGNORECASE
)
_AND_JOIN = re.compile(r"\s+and\s+", re.IGNORECASE)
_DOUBLE_COMMA = re.compile(r",\s*,")
_COMMA_SPACING = re.compile(r"\s*,\s*")

_SELF_COPY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bcop(?:y|ies)\b[^.]*\bitself\b", re.IGNORECASE),
    re.compile(r"\bcop(?:y|ies)\b[^.]*\bthis card\b", re.IGNORECASE),
    re.compile(r"\bpopulate\b", re.IGNORECASE),
)


# =============================================================================
# TEXT HELPERS
# =============================================================================


def split_clauses(rules_text: str) -> list[str]:
    """Split rules text into sentence-level clauses, in document order."""
    return [c.strip() for c in _CLAUSE_SPLIT.split(rules_text) if c.strip()]


def subtype_phrases(type_line: str) -> list[str]:
    """
    Derive lower-cased subtype phrases from a type line.

    Returns each word of three or more letters after the subtype separator
    plus the full phrase:
    "Token Creature — Eldrazi Spawn" -> ["eldrazi", "spawn", "eldrazi spawn"]
    """
    if SUBTYPE_SEPARATOR not in type_line:
        return []
    phrase = type_line.split(SUBTYPE_SEPARATOR, 1)[1].strip().lower()
    if not phrase:
        return []
    words = [w for w in re.split(r"[^a-z]+", phrase) if len(w) >= 3]
    if phrase not in words:
        words.append(phrase)
    return list(dict.fromkeys(words))


def _contains_phrase(text: str, phrase: str) -> bool:
    # Leading word boundary only, so plurals ("Zombies") still match
    return re.search(rf"\b{re.escape(phrase)}", text, re.IGNORECASE) is not None


def _name_variants(card_name: str) -> list[str]:
    """The full name plus each face of a "Front // Back" name."""
    variants = [card_name.strip()]
    if "//" in card_name:
        variants.extend(part.strip() for part in card_name.split("//"))
    return [v for v in dict.fromkeys(variants) if v]


def name_pattern(card_name: str) -> re.Pattern[str] | None:
    """
    Turn a card name into a punctuation- and spacing-tolerant pattern.

    "Kiki-Jiki, Mirror Breaker" matches "kiki jiki mirror-breaker".
    """
    words = re.findall(r"[a-z0-9]+", card_name.lower())
    if not words:
        return None
    return re.compile(r"\b" + r"[\W_]*".join(map(re.escape, words)) + r"\b", re.IGNORECASE)


# =============================================================================
# SELF-COPY SUPPRESSION
# =============================================================================


def has_self_copy_mechanics(rules_text: str, card_name: str) -> bool:
    """True if the card's rules text talks about copying the card itself."""
    if any(p.search(rules_text) for p in _SELF_COPY_PATTERNS):
        return True

    patterns = [p for p in (name_pattern(n) for n in _name_variants(card_name)) if p]
    for clause in split_clauses(rules_text):
        if _COPY_WORD.search(clause) and any(p.search(clause) for p in patterns):
            return True
    return False


def _significant_words(name: str) -> set[str]:
    return {w for w in name.lower().split() if len(w) > 2}


def is_self_copy_token(token_name: str, card_name: str) -> bool:
    """
    True if a token looks like a copy of its parent card.

    Only meaningful once the parent is known to have self-copy mechanics.
    """
    token = token_name.lower().strip()
    if not token:
        return False

    for parent in (n.lower() for n in _name_variants(card_name)):
        if token in parent or parent in token:
            return True
        if len(_significant_words(token) & _significant_words(parent)) >= 2:
            return True

    return any(syn in token for syn in COPY_SYNONYMS)


def should_suppress_token(token_name: str, card_name: str, parent_self_copies: bool) -> bool:
    """Decide whether a related token is dropped before it reaches the model."""
    if _LITERAL_COPY.search(token_name):
        return True
    return parent_self_copies and is_self_copy_token(token_name, card_name)


# =============================================================================
# CREATION CLAUSE
# =============================================================================


def find_creation_clause(rules_text: str, token_name: str, type_line: str) -> str | None:
    """
    Find the first clause that creates the given token.

    A creation clause mentions "create" and either the token's name or one of
    its subtype phrases. Returns None when no clause qualifies.
    """
    name = token_name.strip()
    phrases = subtype_phrases(type_line)
    for clause in split_clauses(rules_text):
        if not _CREATE_WORD.search(clause):
            continue
        if name and _contains_phrase(clause, name):
            return clause
        if any(_contains_phrase(clause, p) for p in phrases):
            return clause
    return None


# =============================================================================
# FIELD EXTRACTORS
# =============================================================================


@dataclass(frozen=True, slots=True)
class ExtractionContext:
    """What a field extractor gets to look at."""

    rules_text: str
    clause: str | None

    @property
    def search_space(self) -> str:
        """The creation clause, or the whole rules text when none was found."""
        return self.clause if self.clause is not None else self.rules_text


# An extractor returns None for "no match", or the extracted value
Extractor = Callable[[ExtractionContext], str | None]


def _quoted_rules(ctx: ExtractionContext) -> str | None:
    """A quoted ability anywhere in the card text wins outright."""
    for match in _QUOTED.finditer(ctx.rules_text):
        quoted = match.group(1).strip()
        lowered = quoted.lower()
        if any(hint in lowered for hint in GRANTED_RULES_HINTS):
            return quoted
    return None


def _normalize_ability_list(text: str) -> str:
    text = _TRAILING_TEMPORAL.sub("", text.strip())
    text = _AND_JOIN.sub(", ", text)
    while _DOUBLE_COMMA.search(text):
        text = _DOUBLE_COMMA.sub(",", text)
    text = _COMMA_SPACING.sub(", ", text)
    return text.strip(" ,;")


def _keyword_extractor(keyword: str) -> Extractor:
    pattern = re.compile(
        rf"\b{re.escape(keyword)}\s+(.+?)\s*(?:;|,\s*then\b|$)",
        re.IGNORECASE,
    )

    def extract(ctx: ExtractionContext) -> str | None:
        if ctx.clause is None:
            return None
        # Abilities granted to the token follow the word "create"
        create = _CREATE_WORD.search(ctx.clause)
        match = pattern.search(ctx.clause, create.start() if create else 0)
        if not match:
            return None
        ability = _normalize_ability_list(match.group(1))
        return ability or None

    extract.__name__ = f"_ability_after_{keyword.replace(' ', '_')}"
    return extract


def _bare_stat_line(ctx: ExtractionContext) -> str | None:
    """A "create a 2/2 ..." clause with no ability phrase grants nothing."""
    if ctx.clause is not None and _STAT_LINE.search(ctx.clause):
        return ""
    return None


RULES_TEXT_EXTRACTORS: tuple[Extractor, ...] = (
    _quoted_rules,
    *(_keyword_extractor(kw) for kw in ABILITY_KEYWORDS),
    _bare_stat_line,
)


def _power_toughness(ctx: ExtractionContext) -> str | None:
    match = _POWER_TOUGHNESS.search(ctx.search_space)
    return f"{match.group(1)}/{match.group(2)}" if match else None


def _color_identity(ctx: ExtractionContext) -> str | None:
    symbols = [COLOR_SYMBOLS[m.group(1).lower()] for m in _COLOR_WORD.finditer(ctx.search_space)]
    return "".join(dict.fromkeys(symbols)) or None


def run_extractors(extractors: Iterable[Extractor], ctx: ExtractionContext) -> str:
    """Try extractors in priority order; the first match wins, else empty."""
    for extractor in extractors:
        result = extractor(ctx)
        if result is not None:
            return result
    return ""


# =============================================================================
# ENGINE
# =============================================================================


def describe_token(part: RelatedPart, rules_text: str) -> TokenType:
    """Build a TokenType for one related token part."""
    clause = find_creation_clause(rules_text, part.name, part.type_line)
    ctx = ExtractionContext(rules_text=rules_text, clause=clause)

    granted = part.oracle_text or run_extractors(RULES_TEXT_EXTRACTORS, ctx)

    return TokenType(
        name=part.name,
        rules_text=granted,
        power_toughness=run_extractors((_power_toughness,), ctx),
        color_identity=run_extractors((_color_identity,), ctx),
        type_line=part.type_line,
    )


def resolve_token_types(
    rules_text: str,
    card_name: str,
    parts: Sequence[RelatedPart],
) -> list[TokenType]:
    """
    Resolve the distinct, non-self-copy tokens a card creates.

    Args:
        rules_text: The parent card's full rules text
        card_name: The parent card's name
        parts: The card's related parts; non-token parts are ignored

    Returns:
        One TokenType per distinct surviving token part, in part order.
    """
    token_parts = [p for p in parts if p.is_token]
    if not token_parts:
        return []

    self_copies = has_self_copy_mechanics(rules_text, card_name)

    resolved: list[TokenType] = []
    seen: set[tuple[str, str, str]] = set()
    for part in token_parts:
        if should_suppress_token(part.name, card_name, self_copies):
            logger.debug("Suppressed self-copy token %r of %r", part.name, card_name)
            continue

        key = (part.name.lower(), part.type_line.lower(), part.oracle_text or "")
        if key in seen:
            continue
        seen.add(key)

        resolved.append(describe_token(part, rules_text))

    return resolved
