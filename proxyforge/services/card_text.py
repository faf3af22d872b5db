"""
Card-Text Normalizer.

Flattens a (possibly multi-faced) Scryfall card into the single description
the rest of the pipeline works with. Pure: no network access, no failure
modes. Missing fields degrade to empty string, 0 or None.
"""

from proxyforge.models.card import CardFace, CardRecord, CardText, FaceText, TokenHint
from proxyforge.services.token_extraction import resolve_token_types

FACE_DIVIDER = " // "


def format_power_toughness(power: str | None, toughness: str | None) -> str | None:
    """Return "P/T" when both values are present."""
    if power is None or toughness is None or power == "" or toughness == "":
        return None
    return f"{power}/{toughness}"


def _face_text(face: CardFace) -> FaceText:
    return FaceText(
        name=face.name,
        type_line=face.type_line,
        rules_text=face.oracle_text,
        mana_cost=face.mana_cost,
        power_toughness=format_power_toughness(face.power, face.toughness),
    )


def token_hints(card: CardRecord) -> tuple[TokenHint, ...]:
    """Raw token references for the model, unfiltered."""
    return tuple(
        TokenHint(name=p.name, type_line=p.type_line, rules_text=p.oracle_text or "")
        for p in card.related_parts
        if p.is_token
    )


def normalize_card(card: CardRecord) -> CardText:
    """
    Produce the flattened description of a card.

    Multi-faced cards get their face rules texts and mana costs joined with
    " // " and an ordered face list. Single-faced cards get a power/toughness
    when both values are printed.
    """
    is_double_faced = len(card.faces) > 1

    if card.faces:
        rules_text = FACE_DIVIDER.join(f.oracle_text for f in card.faces if f.oracle_text)
        mana_cost = FACE_DIVIDER.join(f.mana_cost for f in card.faces if f.mana_cost)
    else:
        rules_text = card.oracle_text
        mana_cost = card.mana_cost

    power_toughness = None
    if not is_double_faced:
        power_toughness = format_power_toughness(card.power, card.toughness)

    faces = tuple(_face_text(f) for f in card.faces) if is_double_faced else None

    token_types = resolve_token_types(rules_text, card.name, card.related_parts)

    return CardText(
        rules_text=rules_text,
        type_line=card.type_line,
        mana_cost=mana_cost,
        cmc=card.cmc,
        is_double_faced=is_double_faced,
        produces_tokens=any(p.is_token for p in card.related_parts),
        power_toughness=power_toughness,
        faces=faces,
        token_types=tuple(token_types) or None,
        token_hints=token_hints(card),
    )
