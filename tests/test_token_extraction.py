"""Tests for the token extraction engine."""

from proxyforge.models.card import RelatedPart, TokenType
from proxyforge.services.token_extraction import (
    describe_token,
    find_creation_clause,
    has_self_copy_mechanics,
    is_self_copy_token,
    name_pattern,
    resolve_token_types,
    should_suppress_token,
    split_clauses,
    subtype_phrases,
)


def token(name: str, type_line: str, oracle_text: str | None = None) -> RelatedPart:
    return RelatedPart(
        id=f"t-{name}",
        component="token",
        name=name,
        type_line=type_line,
        oracle_text=oracle_text,
    )


class TestTextHelpers:
    def test_split_clauses(self) -> None:
        text = "Flying. When this enters, create a token!\nDraw a card?"

        assert split_clauses(text) == [
            "Flying",
            "When this enters, create a token",
            "Draw a card",
        ]

    def test_subtype_phrases(self) -> None:
        assert subtype_phrases("Token Creature — Eldrazi Spawn") == [
            "eldrazi",
            "spawn",
            "eldrazi spawn",
        ]

    def test_subtype_phrases_single_word(self) -> None:
        assert subtype_phrases("Token Creature — Zombie") == ["zombie"]

    def test_subtype_phrases_skip_short_words(self) -> None:
        assert subtype_phrases("Token Creature — Ox") == ["ox"]

    def test_subtype_phrases_without_separator(self) -> None:
        assert subtype_phrases("Token Artifact") == []

    def test_name_pattern_tolerates_punctuation(self) -> None:
        pattern = name_pattern("Kiki-Jiki, Mirror Breaker")

        assert pattern is not None
        assert pattern.search("copy of kiki jiki mirror-breaker")

    def test_name_pattern_empty_name(self) -> None:
        assert name_pattern("  ") is None


class TestSelfCopyDetection:
    def test_copy_of_named_card(self) -> None:
        text = (
            "If you control six or more lands, "
            "create a token that's a copy of Scute Swarm instead."
        )

        assert has_self_copy_mechanics(text, "Scute Swarm")

    def test_copy_of_itself(self) -> None:
        assert has_self_copy_mechanics("Create a token that's a copy of itself.", "Anything")

    def test_populate(self) -> None:
        assert has_self_copy_mechanics("Populate.", "Growing Ranks")

    def test_plain_token_maker(self) -> None:
        text = "Create a 2/2 black Zombie creature token."

        assert not has_self_copy_mechanics(text, "Army of the Damned")

    def test_copy_of_another_card_is_not_self_copy(self) -> None:
        text = "Create a token that's a copy of target creature you control."

        assert not has_self_copy_mechanics(text, "Cackling Counterpart")

    def test_self_copy_token_matches_parent_name(self) -> None:
        assert is_self_copy_token("Scute Swarm", "Scute Swarm")

    def test_self_copy_token_matches_face_of_split_name(self) -> None:
        assert is_self_copy_token("Brutal Cathar", "Brutal Cathar // Moonrage Brute")

    def test_self_copy_token_by_copy_synonym(self) -> None:
        assert is_self_copy_token("Mirror Image", "Spark Double")

    def test_unrelated_token_is_not_self_copy(self) -> None:
        assert not is_self_copy_token("Insect", "Scute Swarm")

    def test_literal_copy_is_always_suppressed(self) -> None:
        assert should_suppress_token("Copy", "Helm of the Host", parent_self_copies=False)

    def test_parent_name_token_kept_without_self_copy_mechanics(self) -> None:
        assert not should_suppress_token("Scute Swarm", "Scute Swarm", parent_self_copies=False)


class TestCreationClause:
    def test_finds_clause_by_name(self) -> None:
        text = "Flying. When this enters, create a 1/1 white Spirit creature token."

        clause = find_creation_clause(text, "Spirit", "Token Creature — Spirit")

        assert clause == "When this enters, create a 1/1 white Spirit creature token"

    def test_finds_clause_by_subtype_phrase(self) -> None:
        text = "Create two 0/1 colorless Eldrazi Spawn creature tokens."

        clause = find_creation_clause(
            text, "Eldrazi Spawn Token", "Token Creature — Eldrazi Spawn"
        )

        assert clause == "Create two 0/1 colorless Eldrazi Spawn creature tokens"

    def test_clause_must_create(self) -> None:
        text = "Zombies you control get +1/+1."

        assert find_creation_clause(text, "Zombie", "Token Creature — Zombie") is None

    def test_first_matching_clause_wins(self) -> None:
        text = (
            "Create a 1/1 red Goblin creature token. "
            "Then create a 2/2 red Goblin creature token."
        )

        clause = find_creation_clause(text, "Goblin", "Token Creature — Goblin")

        assert clause == "Create a 1/1 red Goblin creature token"


class TestDescribeToken:
    def test_zombie_with_decayed(self) -> None:
        part = token("Zombie", "Token Creature — Zombie")

        result = describe_token(
            part, "Create a 2/2 black Zombie token with decayed."
        )

        assert result == TokenType(
            name="Zombie",
            rules_text="decayed",
            power_toughness="2/2",
            color_identity="{B}",
            type_line="Token Creature — Zombie",
        )

    def test_ability_list_joined_with_commas(self) -> None:
        part = token("Dragon", "Token Creature — Dragon")

        result = describe_token(
            part, "Create a 4/4 red Dragon creature token with flying and haste."
        )

        assert result.rules_text == "flying, haste"
        assert result.power_toughness == "4/4"
        assert result.color_identity == "{R}"

    def test_quoted_ability_wins(self) -> None:
        part = token("Eldrazi Spawn", "Token Creature — Eldrazi Spawn")
        text = (
            "When this enters, create a 0/1 colorless Eldrazi Spawn creature token "
            'with "Sacrifice this creature: Add {C}."'
        )

        result = describe_token(part, text)

        assert result.rules_text == "Sacrifice this creature: Add {C}."
        assert result.power_toughness == "0/1"
        assert result.color_identity == "{C}"

    def test_quoted_flavor_is_ignored(self) -> None:
        part = token("Soldier", "Token Creature — Soldier")
        text = 'Create a 1/1 white Soldier creature token with vigilance. "Hold the line!"'

        result = describe_token(part, text)

        assert result.rules_text == "vigilance"

    def test_bare_stat_line_grants_nothing(self) -> None:
        part = token("Goblin", "Token Creature — Goblin")

        result = describe_token(
            part, "Create a 1/1 red Goblin creature token."
        )

        assert result.rules_text == ""
        assert result.power_toughness == "1/1"

    def test_trailing_temporal_phrase_is_dropped(self) -> None:
        part = token("Elemental", "Token Creature — Elemental")
        text = "Create a 3/1 red Elemental creature token. It gains haste until end of turn."

        result = describe_token(part, text)

        # The ability lives in a later clause; only the creation clause counts
        assert result.rules_text == ""
        assert result.power_toughness == "3/1"

    def test_multicolor_token(self) -> None:
        part = token("Knight", "Token Creature — Knight")

        result = describe_token(
            part, "Create a 2/2 red and white Knight creature token with vigilance."
        )

        assert result.color_identity == "{R}{W}"
        assert result.rules_text == "vigilance"

    def test_stat_modifiers_are_not_power_toughness(self) -> None:
        part = token("Bird", "Token Creature — Bird")
        text = "Create a 1/1 blue Bird creature token with flying. Birds you control get +1/+1."

        assert describe_token(part, text).power_toughness == "1/1"

    def test_part_rules_text_takes_precedence(self) -> None:
        part = token(
            "Treasure", "Token Artifact — Treasure", "{T}, Sacrifice this artifact: Add one mana."
        )

        result = describe_token(
            part, "Create a Treasure token."
        )

        assert result.rules_text == "{T}, Sacrifice this artifact: Add one mana."

    def test_no_creation_clause_degrades_to_empty(self) -> None:
        part = token("Clue", "Token Artifact — Clue")

        result = describe_token(part, "Investigate.")

        assert result.rules_text == ""
        assert result.power_toughness == ""
        assert result.color_identity == ""


class TestResolveTokenTypes:
    def test_scute_swarm_suppresses_its_own_copy(self) -> None:
        text = (
            "Landfall — Whenever a land you control enters, create a 1/1 green Insect "
            "creature token. If you control six or more lands, create a token that's a "
            "copy of Scute Swarm instead."
        )

        parts = [token("Scute Swarm", "Token Creature — Insect")]
        result = resolve_token_types(text, "Scute Swarm", parts)

        assert result == []

    def test_scute_swarm_keeps_insect_token(self) -> None:
        text = (
            "Landfall — Whenever a land you control enters, create a 1/1 green Insect "
            "creature token. If you control six or more lands, create a token that's a "
            "copy of Scute Swarm instead."
        )
        parts = [
            token("Insect", "Token Creature — Insect"),
            token("Scute Swarm", "Token Creature — Insect"),
        ]

        result = resolve_token_types(text, "Scute Swarm", parts)

        assert [t.name for t in result] == ["Insect"]
        assert result[0].power_toughness == "1/1"
        assert result[0].color_identity == "{G}"

    def test_every_token_appears_once_without_self_copy_mechanics(self) -> None:
        text = "Create a 1/1 white Soldier creature token and a 2/2 black Zombie creature token."
        parts = [
            token("Soldier", "Token Creature — Soldier"),
            token("Zombie", "Token Creature — Zombie"),
            token("Soldier", "Token Creature — Soldier"),
            token("Copy", "Token"),
        ]

        result = resolve_token_types(text, "Odd Couple", parts)

        assert [t.name for t in result] == ["Soldier", "Zombie"]

    def test_non_token_parts_are_ignored(self) -> None:
        parts = [
            RelatedPart(id="c1", component="combo_piece", name="Army", type_line="Creature"),
            token("Zombie", "Token Creature — Zombie"),
        ]

        result = resolve_token_types("Create a 2/2 black Zombie creature token.", "Army", parts)

        assert [t.name for t in result] == ["Zombie"]

    def test_no_token_parts(self) -> None:
        assert resolve_token_types("Draw a card.", "Opt", []) == []
