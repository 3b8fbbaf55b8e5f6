"""
Distimo API Python Client - Basic Usage Example

This example demonstrates the basic usage of the Distimo API client.
Credentials are read from DISTIMO_* environment variables.
"""

import asyncio
import json
import logging
from pathlib import Path

from distimo_api import (
    APIError,
    DistimoAsyncClient,
    DistimoClient,
    DistimoConfig,
    TokenResult,
    TransportError,
)


TOKEN_FILE = Path("distimo_tokens.json")


def save_tokens(tokens: TokenResult) -> None:
    """Persist refreshed tokens so the next run starts with them."""
    TOKEN_FILE.write_text(json.dumps({
        "accessToken": tokens.access_token,
        "refreshToken": tokens.refresh_token,
    }))


def load_config() -> DistimoConfig:
    config = DistimoConfig.from_env()
    config.debug = True
    if TOKEN_FILE.exists():
        saved = json.loads(TOKEN_FILE.read_text())
        config.access_token = saved.get("accessToken") or config.access_token
        config.refresh_token = saved.get("refreshToken") or config.refresh_token
    return config


def sync_example():
    """Synchronous client example."""
    print("=== Sync Client Example ===\n")

    with DistimoClient(load_config()) as client:
        client.add_token_listener(save_tokens)

        try:
            for app in client.applications():
                print(f"{app.id}: {app.name}")

            downloads = client.downloads({"from": "2014-01-01", "to": "2014-01-31"})
            print(f"Downloads: {downloads}")
        except APIError as e:
            print(f"API error {e.code}: {e.message}")
        except TransportError as e:
            print(f"Network error: {e.message}")


async def async_example():
    """Asynchronous client example."""
    print("\n=== Async Client Example ===\n")

    async with DistimoAsyncClient(load_config()) as client:
        client.add_token_listener(save_tokens)

        try:
            apps = await client.apps({"appstore": "itunes"})
            print(f"Apps: {apps}")
        except APIError as e:
            print(f"API error {e.code}: {e.message}")
        except TransportError as e:
            print(f"Network error: {e.message}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    sync_example()
    asyncio.run(async_example())
