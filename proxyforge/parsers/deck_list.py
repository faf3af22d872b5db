"""
Parser for plaintext deck lists.

Supports lines like:
- "1 Sol Ring"
- "3 Lightning Bolt"
- "Commander: Atraxa, Praetors' Voice"
- "Kenrith, the Returned King // make him a space pirate"

Blank lines and lines starting with "#" are ignored. Text after the first
"//" is an inline note for the model, not part of the card name.
"""

import re
from dataclasses import dataclass

# Pattern: "Commander: Name" (case-insensitive)
COMMANDER_PATTERN = re.compile(r"^commander\s*:\s*(.+)$", re.IGNORECASE)

# Pattern: "3 Lightning Bolt"
# Groups: (quantity, rest)
QUANTITY_PATTERN = re.compile(r"^(\d+)\s+(.+)$")

NOTE_SEPARATOR = re.compile(r"\s*//\s*")


@dataclass(frozen=True, slots=True)
class ParsedLine:
    """
    One deck-list entry.

    Attributes:
        quantity: Number of copies, always at least 1
        name: Card name as typed by the user
        note: Inline note after "//", None if absent
        is_commander: True for "Commander:" lines
    """

    quantity: int
    name: str
    note: str | None = None
    is_commander: bool = False


def _split_note(text: str) -> tuple[str, str | None]:
    """Split "Name // note" into name and note."""
    parts = NOTE_SEPARATOR.split(text)
    if len(parts) > 1:
        return parts[0].strip(), " // ".join(parts[1:])
    return text.strip(), None


def parse_deck_line(line: str) -> ParsedLine | None:
    """
    Parse a single deck-list line.

    Returns None for blank lines, comments and lines with no card name.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    commander = COMMANDER_PATTERN.match(line)
    if commander:
        name, note = _split_note(commander.group(1).strip())
        if not name:
            return None
        return ParsedLine(quantity=1, name=name, note=note, is_commander=True)

    quantity = 1
    rest = line
    match = QUANTITY_PATTERN.match(line)
    if match:
        quantity = int(match.group(1)) or 1
        rest = match.group(2)

    name, note = _split_note(rest)
    if not name:
        return None
    return ParsedLine(quantity=quantity, name=name, note=note, is_commander=False)


def parse_deck_text(text: str) -> list[ParsedLine]:
    """
    Parse a plaintext deck list.

    Returns:
        Parsed lines in input order. Duplicate names are kept as separate
        entries.
    """
    results: list[ParsedLine] = []
    for raw in re.split(r"\r?\n", text):
        parsed = parse_deck_line(raw)
        if parsed is not None:
            results.append(parsed)
    return results
