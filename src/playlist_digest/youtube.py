"""
YouTube Data API v3 catalog fetcher.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import CatalogError, CollectionNotFoundError
from .jobs.backends import CatalogFetcher
from .jobs.models import CatalogItem, PlaylistInfo, VideoInfo

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://www.googleapis.com/youtube/v3"
MAX_IDS_PER_REQUEST = 50

DEFAULT_HTTP_RETRY_TOTAL = 5
DEFAULT_HTTP_BACKOFF_FACTOR = 0.5
HTTP_RETRY_STATUS_CODES = (429, 500, 502, 503, 504)
HTTP_RETRY_ALLOWED_METHODS = frozenset({"GET"})

_PLAYLIST_PATTERNS = [
    re.compile(r"[?&]list=([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/playlist\?list=([a-zA-Z0-9_-]+)"),
]
_VIDEO_PATTERNS = [
    re.compile(r"youtu\.be/([a-zA-Z0-9_-]+)"),
    re.compile(r"[?&]v=([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/embed/([a-zA-Z0-9_-]+)"),
]
_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def parse_playlist_id(url: str) -> str:
    """Extract the playlist id from a playlist (or watch-in-list) URL."""
    for pattern in _PLAYLIST_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    raise ValueError(f"Invalid playlist URL: {url}")


def parse_video_id(url: str) -> str:
    """Extract the video id from watch, short, or embed URLs."""
    for pattern in _VIDEO_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    raise ValueError(f"Invalid video URL: {url}")


def parse_duration(iso_duration: str) -> int:
    """ISO 8601 duration (``PT1H2M3S``) to seconds."""
    match = _ISO_DURATION.match(iso_duration or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def configure_http_session(session: requests.Session) -> requests.Session:
    """Mount retry-enabled adapters for transient network and 5xx failures."""
    retry = Retry(
        total=DEFAULT_HTTP_RETRY_TOTAL,
        connect=DEFAULT_HTTP_RETRY_TOTAL,
        read=DEFAULT_HTTP_RETRY_TOTAL,
        status=DEFAULT_HTTP_RETRY_TOTAL,
        backoff_factor=DEFAULT_HTTP_BACKOFF_FACTOR,
        status_forcelist=HTTP_RETRY_STATUS_CODES,
        allowed_methods=HTTP_RETRY_ALLOWED_METHODS,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    logger.debug("Configured HTTP session with %d retries", DEFAULT_HTTP_RETRY_TOTAL)
    return session


class YouTubeCatalog(CatalogFetcher):
    """Playlist and video metadata via the public Data API (API key auth)."""

    def __init__(
        self,
        api_key: str,
        api_base: str = DEFAULT_API_BASE,
        page_size: int = 50,
        timeout_s: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.page_size = page_size
        self.timeout_s = timeout_s
        self.session = session or configure_http_session(requests.Session())

    def _get(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.api_base}/{resource}"
        try:
            response = self.session.get(
                url, params={**params, "key": self.api_key}, timeout=self.timeout_s
            )
        except requests.RequestException as e:
            raise CatalogError(f"{resource} request failed: {e}") from e

        if response.status_code != 200:
            raise CatalogError(
                f"{resource} returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise CatalogError(f"{resource} returned invalid JSON: {e}") from e

    def get_playlist_info(self, playlist_id: str) -> PlaylistInfo:
        data = self._get("playlists", {"part": "snippet,contentDetails", "id": playlist_id})
        items = data.get("items") or []
        if not items:
            raise CollectionNotFoundError(f"Playlist not found: {playlist_id}")

        playlist = items[0]
        snippet = playlist.get("snippet", {})
        return PlaylistInfo(
            id=playlist.get("id", playlist_id),
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            channel_title=snippet.get("channelTitle", ""),
            video_count=playlist.get("contentDetails", {}).get("itemCount", 0),
        )

    def get_playlist_items(self, playlist_id: str) -> List[CatalogItem]:
        """All available videos of a playlist, in playlist order.

        Deleted and private entries disappear because the videos endpoint
        returns nothing for them.
        """
        videos: List[VideoInfo] = []
        page_token: Optional[str] = None

        while True:
            params = {
                "part": "snippet,contentDetails",
                "playlistId": playlist_id,
                "maxResults": self.page_size,
            }
            if page_token:
                params["pageToken"] = page_token

            data = self._get("playlistItems", params)
            video_ids = [
                item.get("contentDetails", {}).get("videoId")
                for item in data.get("items") or []
            ]
            video_ids = [v for v in video_ids if v]
            if video_ids:
                videos.extend(self.get_video_details(video_ids))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Fetched %d videos for playlist %s", len(videos), playlist_id)
        return [CatalogItem(id=v.id, title=v.title) for v in videos]

    def get_video_details(self, video_ids: List[str]) -> List[VideoInfo]:
        videos: List[VideoInfo] = []
        for start in range(0, len(video_ids), MAX_IDS_PER_REQUEST):
            chunk = video_ids[start : start + MAX_IDS_PER_REQUEST]
            data = self._get("videos", {"part": "snippet,contentDetails", "id": ",".join(chunk)})
            for video in data.get("items") or []:
                videos.append(_video_from_api(video))
        return videos

    def get_video(self, video_id: str) -> VideoInfo:
        videos = self.get_video_details([video_id])
        if not videos:
            raise CollectionNotFoundError(f"Video not found: {video_id}")
        return videos[0]


def _video_from_api(video: Dict[str, Any]) -> VideoInfo:
    snippet = video.get("snippet", {})
    thumbnails = snippet.get("thumbnails", {})
    return VideoInfo(
        id=video["id"],
        title=snippet.get("title", ""),
        description=snippet.get("description", ""),
        channel_title=snippet.get("channelTitle", ""),
        published_at=snippet.get("publishedAt", ""),
        duration_seconds=parse_duration(video.get("contentDetails", {}).get("duration", "PT0S")),
        thumbnail_url=thumbnails.get("high", {}).get("url", ""),
    )
