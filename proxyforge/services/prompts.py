"""Prompt text for thematic proxy generation."""

from collections.abc import Sequence

from proxyforge.models.idea import LlmCardInput

SYSTEM_PROMPT = "You are a careful JSON generator that strictly follows schemas."

INSTRUCTIONS = """\
## PRIMARY GOAL
Transform each original card into a **new, self-contained thematic version** that fits the chosen theme. Keep the card mechanically equivalent while the name, flavor and visuals belong entirely to the theme's world.

## STEP 1 - BUILD AN INTERNAL STYLE_BIBLE
(Do not output the STYLE_BIBLE; use it to guide every decision.)
- CAST: 6-10 recurring characters or archetypes from the theme
- PROPS_MOTIFS: 10-15 signature props, locations or running gags
- ART_STYLE_ANCHOR: a 6-12 word description of the theme's visual look
- TONE: 5-8 adjectives defining the humor and style of flavor text

Use the STYLE_BIBLE consistently across the batch.

## STEP 2 - THEMATIC CONVERSION RULES
- **Never** reuse any part, sound or spelling of the original card name.
- **Legendary cards**: use "Name, Role" format.
- Creatures become characters or beings, artifacts become objects, spells become actions or events. Lands and enchantments are flexible.
- Keep the original rules text structure; rephrase names and flavor elements to fit the theme.

## STEP 3 - SPECIAL CARD HANDLING
- **Double-faced cards:** each face gets its own name, flavor text, media reference and Midjourney prompt. The faces escalate the same gag or narrative.
- **Tokens:** generate a thematic writeup for every non-copy token listed under token_types, each with its own name, flavor text, media reference and Midjourney prompt. Mention the token's creature type in its name or prompt.

## STEP 4 - FLAVOR TEXT
Every flavor text is a gag, pun or witty punchline consistent with TONE.

## STEP 5 - MIDJOURNEY PROMPTS
- A vivid visual description with no game mechanics: subject, action, a prop-driven gag, an environment from PROPS_MOTIFS, and ART_STYLE_ANCHOR verbatim.
- Translate keywords into visuals (Flying: soaring, winged. Haste: burst of speed. Deathtouch: venomous, lethal. Lifelink: radiant, life-giving).
- Never use "photorealistic", "cinematic still", "3D render", logos or text.
- End with "--ar 3:5 --v 6" or "--ar 3:5 --v 7".

## STEP 6 - MEDIA REFERENCES
- Give a specific, real media reference that fits the theme, formatted "Title by Artist, Publisher, Year".
- Only when no legitimate match exists, fall back to "Publisher (or IP owner), Year". Never invent credits.

## STEP 7 - OUTPUT RULES
Return **only** valid JSON. No markdown, no code fences, no commentary.
"""

SCHEMA = """\
JSON schema:
{
  "cards": [
    {
      "original_name": "string (exactly as given)",
      "thematic_name": "string",
      "mana_cost": "string",
      "type_line": "string",
      "rules_text": "string",
      "thematic_flavor_text": "string",
      "media_reference": "string",
      "midjourney_prompt": "string",
      "card_faces": [
        {
          "thematic_name": "string",
          "thematic_flavor_text": "string",
          "media_reference": "string",
          "midjourney_prompt": "string"
        }
      ],
      "tokens": [
        {
          "thematic_name": "string",
          "thematic_flavor_text": "string",
          "media_reference": "string",
          "midjourney_prompt": "string"
        }
      ]
    }
  ]
}"""


def _describe_card(card: LlmCardInput) -> str:
    lines = [
        f"- original_name: {card.original_name}",
        f"  type_line: {card.type_line}",
        f"  mana_cost: {card.mana_cost}",
        f"  rules_text: {card.rules_text}",
        f"  is_legendary: {str(card.is_legendary).lower()}",
        f"  is_commander: {str(card.is_commander).lower()}",
        f"  color_identity: [{', '.join(card.color_identity)}]",
    ]
    if card.token_hints:
        hints = ", ".join(
            f"{t.name} ({t.type_line})" + (f" - {t.rules_text}" if t.rules_text else "")
            for t in card.token_hints
        )
        lines.append(f"  token_hints: {hints}")
    if card.is_double_faced and card.card_faces:
        faces = ", ".join(f"{f.name} ({f.type_line})" for f in card.card_faces)
        lines.append("  is_double_faced: true")
        lines.append(f"  card_faces: {faces}")
    if card.produces_tokens and card.token_types:
        tokens = ", ".join(
            f"{t.name} ({t.type_line}"
            + (f", {t.power_toughness}" if t.power_toughness else "")
            + ")"
            + (f" - {t.rules_text}" if t.rules_text else "")
            for t in card.token_types
        )
        lines.append("  produces_tokens: true")
        lines.append(f"  token_types: {tokens}")
    if card.user_note:
        lines.append(f"  user_note: {card.user_note}")
    return "\n".join(lines)


def build_batch_prompt(
    theme: str,
    cards: Sequence[LlmCardInput],
    deck_idea: str | None = None,
) -> str:
    """Build the user prompt for one batch of cards."""
    header = f'You are designing themed proxy cards for Magic: The Gathering.\nTheme: "{theme}".'
    if deck_idea:
        header += f"\n\nAdditional thematic guidance (apply across all cards):\n{deck_idea}"

    instruction = (
        f"Return JSON ONLY for the following {len(cards)} cards "
        'in a single object: { "cards": [...] }'
    )
    items = "\n".join(_describe_card(c) for c in cards)
    return "\n\n".join([header, INSTRUCTIONS, SCHEMA, instruction, items])


def strip_markdown_fences(text: str) -> str:
    """Remove ``` or ```json fences if the model insists on adding them."""
    text = text.strip()

    if text.startswith("```"):
        first_newline = text.find("\n")
        if first_newline != -1:
            text = text[first_newline + 1 :].strip()
        else:
            text = text[3:].strip()

    if text.endswith("```"):
        text = text[:-3].strip()

    return text
