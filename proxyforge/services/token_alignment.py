"""
Token/Idea Alignment Matcher.

The model returns token writeups in whatever order it likes. This module
pairs each writeup with the token type it most plausibly describes, so the
right power/toughness and rules text are shown next to the right flavor.

The assignment is greedy and stable: writeups are handled in their given
order, each taking the highest-scoring token type still unassigned, with the
first candidate winning ties. It is not globally optimal; two token types
sharing most of their subtype words can be mis-paired.
"""

from collections.abc import Sequence

from proxyforge.models.card import TokenType
from proxyforge.models.idea import ThematicPart
from proxyforge.services.token_extraction import subtype_phrases

SUBTYPE_SYNONYMS: dict[str, tuple[str, ...]] = {
    "angel": ("angel", "seraph", "seraphim", "archangel"),
    "soldier": ("soldier", "trooper", "guard", "marshal", "legionnaire", "sentinel"),
    "goblin": ("goblin",),
    "zombie": ("zombie",),
    "spirit": ("spirit",),
    "elf": ("elf", "elven"),
    "merfolk": ("merfolk",),
    "vampire": ("vampire",),
    "dragon": ("dragon",),
    "eldrazi": ("eldrazi",),
    "spawn": ("spawn",),
}

SYNONYM_SCORE = 3
SUBTYPE_SCORE = 2
POWER_TOUGHNESS_SCORE = 1
NAME_SCORE = 1


def subtype_synonyms(word: str) -> tuple[str, ...]:
    """Synonyms for a subtype word; unknown words are their own synonym."""
    return SUBTYPE_SYNONYMS.get(word, (word,))


def score_writeup(writeup: ThematicPart, token_type: TokenType) -> int:
    """Score how well a generated writeup matches a token type."""
    haystack = writeup.search_text()

    score = 0
    for word in subtype_phrases(token_type.type_line):
        if any(syn in haystack for syn in subtype_synonyms(word)):
            score += SYNONYM_SCORE
        if word in haystack:
            score += SUBTYPE_SCORE
    if token_type.power_toughness and token_type.power_toughness in haystack:
        score += POWER_TOUGHNESS_SCORE
    if token_type.name and token_type.name.lower() in haystack:
        score += NAME_SCORE
    return score


def align_token_types(
    writeups: Sequence[ThematicPart] | None,
    token_types: Sequence[TokenType],
) -> list[TokenType | None]:
    """
    Pair each writeup, in order, with its best-matching token type.

    Returns:
        A list the same length as ``writeups`` holding the assigned token type
        or None once token types run out. With no writeups, the token types
        are returned unchanged.
    """
    if not writeups:
        return list(token_types)

    remaining = list(token_types)
    aligned: list[TokenType | None] = []
    for writeup in writeups:
        if not remaining:
            aligned.append(None)
            continue

        best_index = 0
        best_score = -1
        for index, candidate in enumerate(remaining):
            score = score_writeup(writeup, candidate)
            if score > best_score:
                best_index, best_score = index, score

        aligned.append(remaining.pop(best_index))

    return aligned
