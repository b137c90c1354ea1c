"""SSH public key lookup for machine templates (``Machine(keys=github_keys(...))``)."""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import quote

import httpx
import structlog

from stitch.constants import GITHUB_API_URL
from stitch.validation import KeyLookupError

KeyFetcher = Callable[[str], list[str]]

_DEFAULT_TIMEOUT_SECONDS = 10.0

_logger = structlog.get_logger(__name__)
_key_cache: dict[str, tuple[str, ...]] = {}


def fetch_github_keys(
    username: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = _DEFAULT_TIMEOUT_SECONDS,
) -> list[str]:
    """Fetch the public SSH keys GitHub lists for ``username``."""

    owns_client = client is None
    http = client if client is not None else httpx.Client(timeout=timeout)
    try:
        response = http.get(
            f"{GITHUB_API_URL}/users/{quote(username, safe='')}/keys",
            headers={"Accept": "application/vnd.github+json"},
        )
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPError as exc:
        raise KeyLookupError(f"unable to fetch GitHub keys for {username!r}: {exc}") from exc
    except ValueError as exc:
        raise KeyLookupError(f"invalid GitHub keys response for {username!r}: {exc}") from exc
    finally:
        if owns_client:
            http.close()

    if not isinstance(payload, list):
        raise KeyLookupError(f"invalid GitHub keys response for {username!r}: expected array")

    keys: list[str] = []
    for entry in payload:
        if not isinstance(entry, dict) or not isinstance(entry.get("key"), str):
            raise KeyLookupError(
                f"invalid GitHub keys response for {username!r}: entry without 'key'"
            )
        keys.append(entry["key"])
    return keys


def github_keys(username: str, *, fetcher: KeyFetcher | None = None) -> list[str]:
    """Return ``username``'s GitHub SSH keys, cached for the life of the process."""

    if not isinstance(username, str) or not username.strip():
        raise KeyLookupError("github_keys requires a non-empty username")

    cached = _key_cache.get(username)
    if cached is not None:
        return list(cached)

    keys = (fetcher or fetch_github_keys)(username)
    _key_cache[username] = tuple(keys)
    _logger.info("stitch_github_keys_fetched", username=username, count=len(keys))
    return list(keys)


def clear_key_cache() -> None:
    _key_cache.clear()


__all__ = [
    "KeyFetcher",
    "clear_key_cache",
    "fetch_github_keys",
    "github_keys",
]
