"""
Card domain types.

``CardRecord`` is an immutable snapshot of one Scryfall card as returned by a
lookup. The remaining types are derived from it by the card-text normalizer
and the token extraction engine, and are what gets persisted on a deck card.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True, slots=True)
class CardFace:
    """
    One side of a double-faced card.

    Attributes:
        name: Face name
        type_line: Face type line (e.g., "Legendary Creature — Human Wizard")
        mana_cost: Face mana cost, empty for back faces
        oracle_text: Face rules text
        power: Printed power, None for non-creatures
        toughness: Printed toughness, None for non-creatures
    """

    name: str
    type_line: str = ""
    mana_cost: str = ""
    oracle_text: str = ""
    power: str | None = None
    toughness: str | None = None

    @classmethod
    def from_scryfall(cls, data: dict[str, Any]) -> "CardFace":
        return cls(
            name=_str(data.get("name")),
            type_line=_str(data.get("type_line")),
            mana_cost=_str(data.get("mana_cost")),
            oracle_text=_str(data.get("oracle_text")),
            power=data.get("power"),
            toughness=data.get("toughness"),
        )


@dataclass(frozen=True, slots=True)
class RelatedPart:
    """
    An entry from Scryfall's ``all_parts`` list.

    Attributes:
        id: Scryfall id of the related object
        component: Relation kind ("token", "meld_part", "combo_piece", ...)
        name: Related object's name
        type_line: Related object's type line
        oracle_text: Rules text, only when the source happened to supply it
    """

    id: str
    component: str
    name: str
    type_line: str = ""
    oracle_text: str | None = None

    @property
    def is_token(self) -> bool:
        return self.component == "token"

    @classmethod
    def from_scryfall(cls, data: dict[str, Any]) -> "RelatedPart":
        oracle_text = data.get("oracle_text")
        return cls(
            id=_str(data.get("id")),
            component=_str(data.get("component")),
            name=_str(data.get("name")),
            type_line=_str(data.get("type_line")),
            oracle_text=oracle_text if isinstance(oracle_text, str) and oracle_text else None,
        )


@dataclass(frozen=True, slots=True)
class CardRecord:
    """
    Canonical rules data for one card, as fetched from Scryfall.

    Missing optional fields degrade to empty values; construction never fails
    for a JSON object that has at least a name.
    """

    id: str
    oracle_id: str
    name: str
    type_line: str = ""
    mana_cost: str = ""
    cmc: float = 0.0
    color_identity: tuple[str, ...] = ()
    oracle_text: str = ""
    power: str | None = None
    toughness: str | None = None
    faces: tuple[CardFace, ...] = ()
    related_parts: tuple[RelatedPart, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_scryfall(cls, data: dict[str, Any]) -> "CardRecord":
        """Build a record from a Scryfall card object."""
        cmc = data.get("cmc")
        faces = data.get("card_faces") or []
        parts = data.get("all_parts") or []
        return cls(
            id=_str(data.get("id")),
            oracle_id=_str(data.get("oracle_id")),
            name=_str(data.get("name")),
            type_line=_str(data.get("type_line")),
            mana_cost=_str(data.get("mana_cost")),
            cmc=float(cmc) if isinstance(cmc, int | float) else 0.0,
            color_identity=tuple(data.get("color_identity") or ()),
            oracle_text=_str(data.get("oracle_text")),
            power=data.get("power"),
            toughness=data.get("toughness"),
            faces=tuple(CardFace.from_scryfall(f) for f in faces if isinstance(f, dict)),
            related_parts=tuple(RelatedPart.from_scryfall(p) for p in parts if isinstance(p, dict)),
            raw=data,
        )

    @property
    def is_legendary(self) -> bool:
        return "Legendary" in self.type_line


@dataclass(frozen=True, slots=True)
class FaceText:
    """A normalized face of a double-faced card, as stored on a deck card."""

    name: str
    type_line: str
    rules_text: str
    mana_cost: str
    power_toughness: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FaceText":
        return cls(
            name=_str(data.get("name")),
            type_line=_str(data.get("type_line")),
            rules_text=_str(data.get("rules_text")),
            mana_cost=_str(data.get("mana_cost")),
            power_toughness=data.get("power_toughness") or None,
        )


@dataclass(frozen=True, slots=True)
class TokenType:
    """
    A resolved description of one kind of token a card produces.

    Derived from a related token part plus the parent card's rules text.
    Never a self-copy of the parent card.
    """

    name: str
    rules_text: str
    power_toughness: str
    color_identity: str
    type_line: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenType":
        return cls(
            name=_str(data.get("name")),
            rules_text=_str(data.get("rules_text")),
            power_toughness=_str(data.get("power_toughness")),
            color_identity=_str(data.get("color_identity")),
            type_line=_str(data.get("type_line")),
        )


@dataclass(frozen=True, slots=True)
class TokenHint:
    """A raw token reference passed to the model alongside the card."""

    name: str
    type_line: str
    rules_text: str = ""


@dataclass(frozen=True, slots=True)
class CardText:
    """
    Flattened description of a card, ready to persist and send to the model.

    ``faces`` is None for single-faced cards and ``token_types`` is None when
    the card produces no distinguishable tokens; neither is ever empty.
    """

    rules_text: str
    type_line: str
    mana_cost: str
    cmc: float
    is_double_faced: bool
    produces_tokens: bool
    power_toughness: str | None = None
    faces: tuple[FaceText, ...] | None = None
    token_types: tuple[TokenType, ...] | None = None
    token_hints: tuple[TokenHint, ...] = ()
