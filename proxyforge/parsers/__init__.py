from proxyforge.parsers.deck_list import ParsedLine, parse_deck_line, parse_deck_text

__all__ = [
    "ParsedLine",
    "parse_deck_line",
    "parse_deck_text",
]
