"""Tests for card records and the card-text normalizer."""

from proxyforge.models.card import CardRecord, FaceText
from proxyforge.services.card_text import format_power_toughness, normalize_card, token_hints

from factories import scryfall_card, token_part

DELVER = scryfall_card(
    "Delver of Secrets // Insectile Aberration",
    type_line="Creature — Human Wizard // Creature — Human Insect",
    mana_cost="",
    color_identity=["U"],
    card_faces=[
        {
            "name": "Delver of Secrets",
            "type_line": "Creature — Human Wizard",
            "mana_cost": "{U}",
            "oracle_text": "At the beginning of your upkeep, look at the top card of your library.",
            "power": "1",
            "toughness": "1",
        },
        {
            "name": "Insectile Aberration",
            "type_line": "Creature — Human Insect",
            "mana_cost": "",
            "oracle_text": "Flying",
            "power": "3",
            "toughness": "2",
        },
    ],
)


class TestCardRecord:
    def test_from_scryfall(self) -> None:
        card = CardRecord.from_scryfall(
            scryfall_card(
                "Grizzly Bears",
                type_line="Creature — Bear",
                mana_cost="{1}{G}",
                cmc=2,
                color_identity=["G"],
                power="2",
                toughness="2",
            )
        )

        assert card.name == "Grizzly Bears"
        assert card.cmc == 2.0
        assert card.color_identity == ("G",)
        assert card.power == "2"
        assert card.faces == ()
        assert card.raw["name"] == "Grizzly Bears"

    def test_missing_fields_degrade(self) -> None:
        card = CardRecord.from_scryfall({"name": "Mystery"})

        assert card.type_line == ""
        assert card.cmc == 0.0
        assert card.oracle_id == ""
        assert card.related_parts == ()

    def test_is_legendary(self) -> None:
        card = CardRecord.from_scryfall(
            scryfall_card("Krenko, Mob Boss", type_line="Legendary Creature — Goblin Warrior")
        )

        assert card.is_legendary


class TestFormatPowerToughness:
    def test_both_present(self) -> None:
        assert format_power_toughness("3", "2") == "3/2"

    def test_star_values(self) -> None:
        assert format_power_toughness("*", "1+*") == "*/1+*"

    def test_missing_value(self) -> None:
        assert format_power_toughness("3", None) is None
        assert format_power_toughness("", "2") is None


class TestNormalizeCard:
    def test_single_faced_creature(self) -> None:
        card = CardRecord.from_scryfall(
            scryfall_card(
                "Goblin Guide",
                type_line="Creature — Goblin Scout",
                oracle_text="Haste",
                power="2",
                toughness="2",
            )
        )

        text = normalize_card(card)

        assert text.rules_text == "Haste"
        assert text.mana_cost == "{R}"
        assert text.power_toughness == "2/2"
        assert not text.is_double_faced
        assert text.faces is None
        assert text.token_types is None
        assert not text.produces_tokens

    def test_double_faced_card(self) -> None:
        text = normalize_card(CardRecord.from_scryfall(DELVER))

        assert text.is_double_faced
        assert text.rules_text == (
            "At the beginning of your upkeep, look at the top card of your library. // Flying"
        )
        # Back faces have no mana cost
        assert text.mana_cost == "{U}"
        assert text.power_toughness is None
        assert text.faces == (
            FaceText(
                name="Delver of Secrets",
                type_line="Creature — Human Wizard",
                rules_text="At the beginning of your upkeep, look at the top card of your library.",
                mana_cost="{U}",
                power_toughness="1/1",
            ),
            FaceText(
                name="Insectile Aberration",
                type_line="Creature — Human Insect",
                rules_text="Flying",
                mana_cost="",
                power_toughness="3/2",
            ),
        )

    def test_token_maker(self) -> None:
        card = CardRecord.from_scryfall(
            scryfall_card(
                "Raise the Alarm",
                mana_cost="{1}{W}",
                color_identity=["W"],
                oracle_text="Create two 1/1 white Soldier creature tokens.",
                all_parts=[token_part("Soldier", "Token Creature — Soldier")],
            )
        )

        text = normalize_card(card)

        assert text.produces_tokens
        assert text.token_types is not None
        assert [t.name for t in text.token_types] == ["Soldier"]
        assert text.token_types[0].power_toughness == "1/1"
        assert text.token_hints[0].name == "Soldier"

    def test_only_self_copy_tokens(self) -> None:
        card = CardRecord.from_scryfall(
            scryfall_card(
                "Scute Swarm",
                oracle_text=(
                    "If you control six or more lands, "
                    "create a token that's a copy of Scute Swarm."
                ),
                all_parts=[token_part("Scute Swarm", "Token Creature — Insect")],
            )
        )

        text = normalize_card(card)

        assert text.produces_tokens
        assert text.token_types is None
        # Hints are passed along unfiltered
        assert [h.name for h in token_hints(card)] == ["Scute Swarm"]
