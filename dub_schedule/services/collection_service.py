"""
Collection Service

Fetches the user's tracked anime collection from AniList and resolves
media identifiers against it.
"""
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from dub_schedule.services.schedule_types import AnimeMetadata, MediaFormat
from dub_schedule.utils.http_fetch import fetch_json


logger = logging.getLogger(__name__)

ANIME_COLLECTION_QUERY = """
query ($userName: String) {
  MediaListCollection(userName: $userName, type: ANIME) {
    lists {
      name
      entries {
        media {
          id
          title { userPreferred }
          coverImage { large medium }
          episodes
          format
        }
      }
    }
  }
}
"""


class CollectionUnavailableError(RuntimeError):
    """Raised when the collection snapshot cannot be retrieved."""


async def fetch_anime_collection(
    api_url: str,
    username: str | None,
    *,
    token: str | None = None,
    timeout: float = 30.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    client: httpx.AsyncClient | None = None,
) -> dict:
    """
    Fetch the user's anime collection snapshot

    Returns:
        The `data` object of the GraphQL response, i.e. `{"MediaListCollection": {"lists": [...]}}`

    Raises:
        CollectionUnavailableError: If no username is configured or AniList reports errors
        httpx.HTTPError: On transport failure
    """
    if not username:
        raise CollectionUnavailableError("ANILIST_USERNAME not configured")

    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    payload = await fetch_json(
        api_url,
        method="POST",
        json_body={"query": ANIME_COLLECTION_QUERY, "variables": {"userName": username}},
        headers=headers,
        timeout=timeout,
        max_retries=max_retries,
        backoff_factor=backoff_factor,
        client=client,
    )

    if not isinstance(payload, Mapping):
        raise CollectionUnavailableError("AniList returned a non-object response")
    if payload.get("errors"):
        messages = [error.get("message", "unknown error") for error in payload["errors"] if isinstance(error, Mapping)]
        raise CollectionUnavailableError(f"AniList errors: {'; '.join(messages) or payload['errors']}")

    data = payload.get("data")
    if not isinstance(data, Mapping) or not data.get("MediaListCollection"):
        raise CollectionUnavailableError("AniList response has no MediaListCollection")

    entry_count = sum(len(group.get("entries") or []) for group in _iter_lists(data))
    logger.info("Loaded AniList collection for %s: %s entries", username, entry_count)
    return dict(data)


def find_anime_in_collection(media_id: int, collection: Any) -> AnimeMetadata | None:
    """
    Look up display metadata for a media id in the collection snapshot

    Scans every list group and returns the first matching entry. Absence is
    expected (the user does not track every dubbed title) and never raises.
    """
    for group in _iter_lists(collection):
        for entry in group.get("entries") or []:
            if not isinstance(entry, Mapping):
                continue
            media = entry.get("media")
            if isinstance(media, Mapping) and media.get("id") == media_id:
                return _to_metadata(media)
    return None


def _iter_lists(collection: Any):
    if not isinstance(collection, Mapping):
        return
    media_list_collection = collection.get("MediaListCollection")
    if not isinstance(media_list_collection, Mapping):
        return
    for group in media_list_collection.get("lists") or []:
        if isinstance(group, Mapping):
            yield group


def _to_metadata(media: Mapping) -> AnimeMetadata:
    title = media.get("title") if isinstance(media.get("title"), Mapping) else {}
    cover = media.get("coverImage") if isinstance(media.get("coverImage"), Mapping) else {}

    episodes = media.get("episodes")
    try:
        total_episodes = int(episodes) if episodes else None
    except (TypeError, ValueError):
        total_episodes = None
    if total_episodes is not None and total_episodes <= 0:
        total_episodes = None

    return AnimeMetadata(
        media_id=media["id"],
        display_title=title.get("userPreferred") or "",
        cover_image_url=cover.get("large") or cover.get("medium"),
        total_episodes=total_episodes,
        format=MediaFormat.MOVIE if media.get("format") == "MOVIE" else MediaFormat.OTHER,
    )
