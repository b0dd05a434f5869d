"""Audio acquisition: resolve a source URI to a local decodable audio file.

A StreamManifestProvider lists the streams a source offers. The acquirer
picks the highest-bitrate audio-only stream, downloads it, and normalizes
its container to WAV for the speech engine.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
import yt_dlp
from yt_dlp.utils import DownloadError

from agent_metrics.audio.transcode import normalize_container
from agent_metrics.utils.errors import AudioFetchError, NoSuitableStreamError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024

CONTENT_TYPE_CONTAINERS: dict[str, str] = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mp4": "mp4",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/mpeg": "mp3",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "video/mp4": "mp4",
    "video/webm": "webm",
}

AUDIO_FILE_SUFFIXES = frozenset({"wav", "m4a", "mp3", "ogg"})

YOUTUBE_HOSTS = frozenset(
    {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com", "youtu.be"}
)


@dataclass(frozen=True)
class StreamInfo:
    """One stream offered by a media source."""

    url: str
    container: str
    bitrate: int
    audio_only: bool = True


@dataclass(frozen=True)
class AudioSource:
    """A source URI resolved to a local audio file.

    The caller owns local_path and is responsible for removing it.
    """

    uri: str
    local_path: str
    container_format: str


def select_audio_stream(streams: Iterable[StreamInfo]) -> StreamInfo:
    """Pick the audio-only stream with the highest bitrate.

    Raises:
        NoSuitableStreamError: If no audio-only stream is offered.
    """
    candidates = [s for s in streams if s.audio_only]
    if not candidates:
        raise NoSuitableStreamError("No suitable audio stream found for this source")
    return max(candidates, key=lambda s: s.bitrate)


class StreamManifestProvider(ABC):
    """Lists the streams available for a source URI."""

    @abstractmethod
    async def get_streams(self, uri: str) -> list[StreamInfo]:
        """Return every stream the source offers, in any order."""


class DirectStreamProvider(StreamManifestProvider):
    """Treats the URI as a single directly downloadable stream.

    The container is taken from the Content-Type of a HEAD response,
    falling back to the URL path suffix when the server is unspecific.

    Args:
        client: Optional httpx.AsyncClient to reuse.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def get_streams(self, uri: str) -> list[StreamInfo]:
        if self._client is not None:
            response = await self._head(self._client, uri)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await self._head(client, uri)

        content_type = (
            response.headers.get("content-type", "").split(";")[0].strip().lower()
        )
        container = CONTENT_TYPE_CONTAINERS.get(content_type)
        audio_only = content_type.startswith("audio/")

        if container is None:
            suffix = os.path.splitext(urlparse(uri).path)[1].lower().lstrip(".")
            if not suffix:
                return []
            container = suffix
            audio_only = suffix in AUDIO_FILE_SUFFIXES

        return [StreamInfo(url=uri, container=container, bitrate=0, audio_only=audio_only)]

    async def _head(self, client: httpx.AsyncClient, uri: str) -> httpx.Response:
        try:
            response = await client.head(uri)
        except httpx.HTTPError as exc:
            raise AudioFetchError(
                f"Failed to inspect source: {exc}", uri=uri
            ) from exc
        if response.status_code >= 400:
            raise AudioFetchError(
                f"Source inspection failed with status {response.status_code}",
                uri=uri,
            )
        return response


class YouTubeStreamProvider(StreamManifestProvider):
    """Lists the formats of a YouTube video with yt-dlp.

    Only the manifest is read; the chosen stream is downloaded by the
    acquirer. Bitrates come from yt-dlp's average audio bitrate (abr) in
    kbit/s, falling back to the total bitrate (tbr).

    Args:
        ydl_options: Extra options merged over the quiet defaults.
    """

    def __init__(self, ydl_options: dict | None = None) -> None:
        self._options = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            **(ydl_options or {}),
        }

    async def get_streams(self, uri: str) -> list[StreamInfo]:
        info = await asyncio.to_thread(self._extract_info, uri)
        streams = [self._to_stream(fmt) for fmt in info.get("formats") or []]
        return [s for s in streams if s is not None]

    def _extract_info(self, uri: str) -> dict:
        try:
            with yt_dlp.YoutubeDL(self._options) as ydl:
                info = ydl.extract_info(uri, download=False)
        except DownloadError as exc:
            raise AudioFetchError(f"Failed to read stream manifest: {exc}", uri=uri) from exc
        if not info:
            raise AudioFetchError("Stream manifest is empty", uri=uri)
        return info

    @staticmethod
    def _to_stream(fmt: dict) -> StreamInfo | None:
        url = fmt.get("url")
        container = fmt.get("ext")
        if not url or not container:
            return None
        audio_only = fmt.get("acodec") not in (None, "none") and fmt.get("vcodec") == "none"
        kbps = fmt.get("abr") or fmt.get("tbr") or 0
        return StreamInfo(
            url=url,
            container=container,
            bitrate=int(kbps * 1000),
            audio_only=audio_only,
        )


def is_youtube_uri(uri: str) -> bool:
    return (urlparse(uri).hostname or "").lower() in YOUTUBE_HOSTS


class AudioAcquirer:
    """Resolves a source URI to a local WAV file.

    Args:
        manifest_provider: Stream lister. By default YouTube URIs are listed
            with YouTubeStreamProvider and anything else with
            DirectStreamProvider.
        client: Optional httpx.AsyncClient used for downloads.
    """

    def __init__(
        self,
        manifest_provider: StreamManifestProvider | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._manifest_provider = manifest_provider
        self._client = client

    async def resolve(self, uri: str, download_dir: str) -> AudioSource:
        """Download the best audio stream for uri into download_dir.

        Returns:
            AudioSource pointing at a decodable WAV file.

        Raises:
            NoSuitableStreamError: If the source has no audio-only stream.
            AudioFetchError: If the download fails.
            UnsupportedContainerError: If the container cannot be decoded.
            TranscodeError: If transcoding fails.
        """
        streams = await self._provider_for(uri).get_streams(uri)
        stream = select_audio_stream(streams)
        logger.info(
            "Selected %s stream at %d bps",
            stream.container,
            stream.bitrate,
            extra={"source_uri": uri, "stage": "acquire"},
        )

        download_path = os.path.join(download_dir, f"{uuid.uuid4()}.{stream.container}")
        await self._download(stream.url, download_path)
        logger.info("Audio downloaded to %s", download_path, extra={"source_uri": uri})

        local_path = normalize_container(download_path, stream.container, download_dir)
        return AudioSource(uri=uri, local_path=local_path, container_format=stream.container)

    def _provider_for(self, uri: str) -> StreamManifestProvider:
        if self._manifest_provider is not None:
            return self._manifest_provider
        if is_youtube_uri(uri):
            return YouTubeStreamProvider()
        return DirectStreamProvider(self._client)

    async def _download(self, url: str, destination: str) -> None:
        if self._client is not None:
            await self._stream_to_file(self._client, url, destination)
            return
        async with httpx.AsyncClient(follow_redirects=True, timeout=60.0) as client:
            await self._stream_to_file(client, url, destination)

    async def _stream_to_file(
        self, client: httpx.AsyncClient, url: str, destination: str
    ) -> None:
        try:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise AudioFetchError(
                        f"Download failed with status {response.status_code}",
                        uri=url,
                    )
                with open(destination, "wb") as f:
                    async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
        except (OSError, httpx.HTTPError) as exc:
            raise AudioFetchError(f"Failed to download audio: {exc}", uri=url) from exc
