from proxyforge.api.decks import router as decks_router
from proxyforge.api.generate import router as generate_router
from proxyforge.api.health import router as health_router
from proxyforge.api.reroll import router as reroll_router

__all__ = [
    "decks_router",
    "generate_router",
    "health_router",
    "reroll_router",
]
