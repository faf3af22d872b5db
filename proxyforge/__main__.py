"""Run the ProxyForge API with uvicorn."""

import logging

import uvicorn

from proxyforge.config import settings


def main() -> None:
    """CLI entry point for serving the API."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run("proxyforge.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
