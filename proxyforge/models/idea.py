"""
Language-model input and output shapes.

Generated writeups have historically been stored under two key spellings
(``thematic_name`` and ``thematicName``). ``ThematicPart`` is the single
normalized type: it accepts either spelling on input and always serializes
to snake_case.
"""

from typing import Any

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from proxyforge.models.card import FaceText, TokenHint, TokenType


class ThematicPart(BaseModel):
    """A thematic writeup for one face or token of a card."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True
    )

    thematic_name: str = ""
    thematic_flavor_text: str = ""
    media_reference: str = ""
    midjourney_prompt: str = ""

    def search_text(self) -> str:
        """Lower-cased name, flavor and prompt, used for token alignment."""
        fields = (self.thematic_name, self.thematic_flavor_text, self.midjourney_prompt)
        return " ".join(f for f in fields if f).lower()


def parse_parts(raw: Any) -> list[ThematicPart] | None:
    """Parse a stored list of writeups, tolerating either key spelling."""
    if not isinstance(raw, list) or not raw:
        return None
    return [ThematicPart.model_validate(item) for item in raw if isinstance(item, dict)]


class GeneratedIdea(BaseModel):
    """One card's result from a batch generation call."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True
    )

    original_name: str
    thematic_name: str = ""
    mana_cost: str = ""
    type_line: str = ""
    rules_text: str = ""
    thematic_flavor_text: str = ""
    media_reference: str = ""
    midjourney_prompt: str = ""
    card_faces: list[ThematicPart] | None = None
    tokens: list[ThematicPart] | None = None


class GeneratedBatch(BaseModel):
    """Top-level JSON object the model must return."""

    cards: list[GeneratedIdea]


class LlmCardInput(BaseModel):
    """Everything the model is told about one deck card."""

    original_name: str
    type_line: str
    mana_cost: str
    rules_text: str
    is_legendary: bool
    is_commander: bool
    color_identity: list[str] = Field(default_factory=list)
    token_hints: list[TokenHint] = Field(default_factory=list)
    user_note: str | None = None
    is_double_faced: bool = False
    card_faces: list[FaceText] | None = None
    produces_tokens: bool = False
    token_types: list[TokenType] | None = None
