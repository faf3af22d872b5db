from proxyforge.db.database import dispose_db, get_session, get_session_factory, init_db
from proxyforge.db.operations import (
    add_deck_card,
    create_deck,
    create_proxy_idea,
    deck_card_faces,
    deck_card_token_types,
    get_cached_cards,
    get_deck,
    get_deck_card,
    get_latest_version,
    upsert_cached_card,
)

__all__ = [
    "add_deck_card",
    "create_deck",
    "create_proxy_idea",
    "deck_card_faces",
    "deck_card_token_types",
    "dispose_db",
    "get_cached_cards",
    "get_deck",
    "get_deck_card",
    "get_latest_version",
    "get_session",
    "get_session_factory",
    "init_db",
    "upsert_cached_card",
]
