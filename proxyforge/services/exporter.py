"""
Deck exporters.

CSV export flattens each card's chosen idea into one base row followed by
one row per face and per token writeup. Token rows carry the mechanical
details of the token type the writeup was aligned to. JSON export is the
enriched deck view, pretty-printed.
"""

import csv
import io
import re
from collections.abc import Iterable, Mapping, Sequence

from proxyforge.services.deck_view import DeckCardView, DeckView, current_idea

CSV_HEADER = [
    "Original Name",
    "Thematic Name",
    "Mana Cost",
    "Type",
    "Rules Text",
    "Thematic Flavor Text",
    "Media Reference (artist credit)",
    "Midjourney Prompt",
    "Is Double-Faced",
    "Produces Tokens",
    "Part Type",
    "Part Index",
    "Part Thematic Name",
    "Part Flavor",
    "Part Reference",
    "Part Prompt",
    "Part TypeLine",
    "Part P/T",
    "Part Token Rules",
    "Part Token Color",
]

PART_COLUMNS = len(CSV_HEADER) - 10

FACE_PART = "DFC Face"
TOKEN_PART = "Token"

# Spreadsheet apps evaluate cells starting with these as formulas
FORMULA_PREFIX = re.compile(r"^[=+\-@]")

NON_WORD = re.compile(r"\W+")


def sanitize_csv_cell(value: object) -> str:
    """Flatten a cell to one line and defuse formula-like content."""
    text = "" if value is None else str(value)
    text = text.replace("\r", "").replace("\n", " ")
    if FORMULA_PREFIX.match(text):
        return f"'{text}"
    return text


def to_csv(rows: Iterable[Sequence[object]]) -> str:
    """Render rows as CSV, quoting cells only when needed."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    for row in rows:
        writer.writerow([sanitize_csv_cell(cell) for cell in row])
    return buffer.getvalue()


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def card_rows(card: DeckCardView, selected_version: int | None = None) -> list[list[str]]:
    """CSV rows for one card: the base row, then face rows, then token rows."""
    idea = current_idea(card, selected_version)
    base = [
        card.original_name,
        idea.thematic_name if idea else "",
        card.mana_cost,
        card.type_line,
        card.rules_text,
        idea.thematic_flavor_text if idea else "",
        idea.media_reference if idea else "",
        idea.midjourney_prompt if idea else "",
        _yes_no(card.is_double_faced),
        _yes_no(card.produces_tokens),
    ]
    rows = [base + [""] * PART_COLUMNS]
    if idea is None:
        return rows

    faces = card.card_faces or []
    for index, part in enumerate(idea.card_faces or []):
        face = faces[index] if index < len(faces) else None
        rows.append(
            base
            + [
                FACE_PART,
                str(index + 1),
                part.thematic_name,
                part.thematic_flavor_text,
                part.media_reference,
                part.midjourney_prompt,
                face.type_line if face else "",
                (face.power_toughness or "") if face else "",
                "",
                "",
            ]
        )

    aligned = idea.aligned_token_types
    for index, part in enumerate(idea.tokens or []):
        token_type = aligned[index] if index < len(aligned) else None
        rows.append(
            base
            + [
                TOKEN_PART,
                str(index + 1),
                part.thematic_name,
                part.thematic_flavor_text,
                part.media_reference,
                part.midjourney_prompt,
                token_type.type_line if token_type else "",
                token_type.power_toughness if token_type else "",
                token_type.rules_text if token_type else "",
                token_type.color_identity if token_type else "",
            ]
        )
    return rows


def deck_to_csv(deck: DeckView, selections: Mapping[str, int] | None = None) -> str:
    """Export a deck as CSV, using selected idea versions where given."""
    chosen = selections or {}
    rows: list[list[str]] = [CSV_HEADER]
    for card in deck.cards:
        rows.extend(card_rows(card, chosen.get(card.id)))
    return to_csv(rows)


def deck_to_json(deck: DeckView) -> str:
    """Export a deck as pretty-printed JSON."""
    return deck.model_dump_json(indent=2)


def export_filename(deck_name: str, extension: str) -> str:
    """File name for a downloaded export."""
    stem = NON_WORD.sub("-", deck_name)
    return f"{stem}.{extension}"
