import math
import re
from threading import Event, Lock
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse
import requests
from tubetldr.core.errors import (
    InvalidReference,
    LanguageNotAvailable,
    MalformedCaptionDocument,
    NetworkFailure,
    NoCaptionsAvailable,
    TokenNotFound,
    raise_if_cancelled,
)
from tubetldr.core.video import CaptionSource
from tubetldr.models.transcript import Segment, Transcript
from tubetldr.models.video import CaptionTrack, VideoReference
from tubetldr.utils.logger import logger

WATCH_URL = "https://www.youtube.com/watch"
PLAYER_URL = "https://www.youtube.com/youtubei/v1/player"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/142.0.0.0 Safari/537.36"

_YOUTUBE_HOSTS = {"youtube.com", "m.youtube.com", "music.youtube.com", "youtu.be", "youtube-nocookie.com"}
_BARE_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")
_ID_IN_URL_RE = re.compile(r"(?:[?&]v=|/embed/|/live/|/v/|/shorts/|youtu\.be/)([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])")

_TOKEN_RE = re.compile(r'"INNERTUBE_API_KEY"\s*:\s*"([^"]+)"')

_FMT_SUFFIX_RE = re.compile(r"&fmt=[^&]*$")
_TEXT_RE = re.compile(r"<text\b([^>]*?)(?:/>|>(.*?)</text>)", re.DOTALL)
_ATTR_RE = re.compile(r'([\w:-]+)\s*=\s*"([^"]*)"')
_EMPTY_TRANSCRIPT_RE = re.compile(r"\s*(?:<\?xml\b[^>]*\?>\s*)?<transcript\b[^>]*?(?:/>|>\s*</transcript>)\s*$")
_XML_ENTITIES = {"amp": "&", "lt": "<", "gt": ">", "quot": '"', "apos": "'"}
_ENTITY_RE = re.compile(r"&(amp|lt|gt|quot|apos);")


def resolve_reference(raw_input: str) -> VideoReference:
    """Extract the 11-character video id from a URL, short link or bare id."""
    candidate = (raw_input or "").strip().strip('`"\'').strip()
    if _BARE_ID_RE.fullmatch(candidate):
        return VideoReference(raw_input=raw_input, video_id=candidate)

    url = candidate if "://" in candidate else f"https://{candidate}"
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        raise InvalidReference(f"Invalid YouTube URL: {raw_input}")
    if host.startswith("www."):
        host = host[4:]
    if host not in _YOUTUBE_HOSTS:
        raise InvalidReference(f"Invalid YouTube URL: {raw_input}")

    m = _ID_IN_URL_RE.search(url)
    if not m:
        raise InvalidReference(f"No video id found in URL: {raw_input}")
    return VideoReference(raw_input=raw_input, video_id=m.group(1))


def extract_token(html: str) -> str:
    """Pull the player API key out of a watch page.

    This is a plain marker search over the page source, not a parse. It is
    expected to break whenever YouTube changes the page layout.
    """
    m = _TOKEN_RE.search(html or "")
    if m:
        return m.group(1)
    lowered = (html or "").lower()
    if "consent.youtube.com" in lowered or "before you continue" in lowered:
        raise TokenNotFound("Watch page is a cookie consent page; API key not found")
    if "g-recaptcha" in lowered or "/sorry/" in lowered:
        raise TokenNotFound("Watch page is a captcha challenge; API key not found")
    raise TokenNotFound("API key not found on watch page (video may be private, removed or age-restricted)")


def parse_player_response(data: Any, video_id: str) -> Tuple[str, List[CaptionTrack]]:
    """Return ``(title, tracks)`` from a player endpoint response."""
    if not isinstance(data, dict):
        raise NoCaptionsAvailable(f"Unexpected player response for video: {video_id}")

    details = data.get("videoDetails")
    title = details.get("title") if isinstance(details, dict) else None
    if not title:
        logger.warning(f"No title in player response for {video_id}, using the id instead")
        title = video_id

    captions = data.get("captions")
    renderer = captions.get("playerCaptionsTracklistRenderer") if isinstance(captions, dict) else None
    raw_tracks = renderer.get("captionTracks") if isinstance(renderer, dict) else None

    tracks = []
    for item in raw_tracks if isinstance(raw_tracks, list) else []:
        if not isinstance(item, dict):
            continue
        base_url = item.get("baseUrl")
        code = item.get("languageCode")
        if not base_url or not code:
            continue
        name = item.get("name")
        tracks.append(CaptionTrack(
            language_code=code,
            fetch_url=base_url,
            is_auto_generated=item.get("kind") == "asr",
            name=name.get("simpleText") if isinstance(name, dict) else None,
        ))

    if not tracks:
        message = f"No captions found for video: {video_id}"
        status = data.get("playabilityStatus")
        if isinstance(status, dict) and status.get("status") not in (None, "OK"):
            message += f" ({status.get('reason') or status.get('status')})"
        raise NoCaptionsAvailable(message)
    return title, tracks


def _track_rank(track: CaptionTrack) -> int:
    # manual > punctuated ASR > plain ASR
    if not track.is_auto_generated and "kind=asr" not in track.fetch_url:
        return 0
    if "variant=punctuated" in track.fetch_url:
        return 1
    return 2


def select_track(tracks: List[CaptionTrack], language: str = "en") -> CaptionTrack:
    """Pick the best track in exactly ``language``; never another language."""
    candidates = [t for t in tracks if t.language_code == language]
    if not candidates:
        available = sorted({t.language_code for t in tracks})
        raise LanguageNotAvailable(f"No captions for '{language}'. Available: {available}")
    # min() keeps the first of equal rank, so source order breaks ties
    return min(candidates, key=_track_rank)


def normalize_track_url(url: str) -> str:
    """Drop a trailing ``&fmt=...``; the bare URL returns the XML timed-text shape."""
    return _FMT_SUFFIX_RE.sub("", url)


def decode_xml_entities(text: str) -> str:
    """Decode the five predefined XML entities in a single pass; leave the rest alone."""
    return _ENTITY_RE.sub(lambda m: _XML_ENTITIES[m.group(1)], text)


def parse_timed_text(body: str) -> List[Segment]:
    body = (body or "").lstrip("\ufeff")
    if not body.strip():
        raise MalformedCaptionDocument("Caption document is empty")

    matches = list(_TEXT_RE.finditer(body))
    if not matches and not _EMPTY_TRANSCRIPT_RE.match(body):
        raise MalformedCaptionDocument("Response is not a timed-text caption document")

    segments = []
    for m in matches:
        attrs = dict(_ATTR_RE.findall(m.group(1)))
        try:
            start = float(attrs["start"])
            duration = float(attrs.get("dur", "0"))
        except (KeyError, ValueError):
            raise MalformedCaptionDocument(f"Caption element has invalid timing: <text{m.group(1)}>")
        if not (math.isfinite(start) and math.isfinite(duration)) or start < 0 or duration < 0:
            raise MalformedCaptionDocument(f"Caption element has invalid timing: <text{m.group(1)}>")
        segments.append(Segment(start=start, end=start + duration, text=decode_xml_entities(m.group(2) or "")))
    return segments


class YouTubeProvider(CaptionSource):
    def __init__(
        self,
        timeout: float = 10.0,
        client_name: str = "ANDROID",
        client_version: str = "20.10.38",
        user_agent: Optional[str] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        token_extractor: Callable[[str], str] = extract_token,
    ):
        self.timeout = timeout
        self.client_name = client_name
        self.client_version = client_version
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.session_factory = session_factory
        self.token_extractor = token_extractor
        self._sessions = set()
        self._sessions_lock = Lock()

    @classmethod
    def from_config(cls, config, **kwargs) -> "YouTubeProvider":
        return cls(
            timeout=config.request_timeout,
            client_name=config.client_name,
            client_version=config.client_version,
            user_agent=config.user_agent,
            **kwargs
        )

    def resolve(self, raw_input: str) -> VideoReference:
        return resolve_reference(raw_input)

    def _headers(self) -> Dict[str, str]:
        return {
            'User-Agent': self.user_agent,
            'Referer': 'https://www.youtube.com/',
            'Accept-Language': 'en-US,en;q=0.9',
        }

    def _request(self, session: requests.Session, method: str, url: str, what: str, **kwargs) -> requests.Response:
        logger.debug(f"{method} {what}: {url}")
        try:
            resp = session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.Timeout:
            raise NetworkFailure(f"{what} timed out after {self.timeout:g}s")
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "error"
            raise NetworkFailure(f"{what} returned HTTP {status}")
        except requests.RequestException as e:
            raise NetworkFailure(f"{what} failed: {e.__class__.__name__}")
        return resp

    def fetch_token(self, session: requests.Session, video_id: str) -> str:
        resp = self._request(session, "GET", WATCH_URL, "Watch page", params={"v": video_id})
        return self.token_extractor(resp.text)

    def list_tracks(self, session: requests.Session, video_id: str, token: str) -> Tuple[str, List[CaptionTrack]]:
        payload = {
            "context": {
                "client": {
                    "clientName": self.client_name,
                    "clientVersion": self.client_version,
                }
            },
            "videoId": video_id,
        }
        resp = self._request(
            session, "POST", PLAYER_URL, "Player endpoint",
            params={"key": token, "prettyPrint": "false"},
            json=payload,
        )
        try:
            data = resp.json()
        except ValueError:
            raise NoCaptionsAvailable(f"Player endpoint returned a non-JSON response for video: {video_id}")
        return parse_player_response(data, video_id)

    def fetch_segments(self, session: requests.Session, track: CaptionTrack) -> List[Segment]:
        resp = self._request(session, "GET", normalize_track_url(track.fetch_url), "Caption document")
        return parse_timed_text(resp.text)

    def get_transcript(self, reference: VideoReference, language: str, cancel_event: Optional[Event] = None) -> Transcript:
        video_id = reference.video_id
        session = self.session_factory()
        with self._sessions_lock:
            self._sessions.add(session)
        try:
            raise_if_cancelled(cancel_event)
            token = self.fetch_token(session, video_id)

            raise_if_cancelled(cancel_event)
            title, tracks = self.list_tracks(session, video_id, token)
            track = select_track(tracks, language)
            logger.debug(f"{video_id}: using {track.language_code} track (auto={track.is_auto_generated}) of {len(tracks)}")

            raise_if_cancelled(cancel_event)
            segments = self.fetch_segments(session, track)
        finally:
            with self._sessions_lock:
                self._sessions.discard(session)
            session.close()

        logger.info(f"Fetched {len(segments)} caption segments for {video_id}")
        return Transcript(video_id=video_id, language=track.language_code, title=title, segments=segments)

    def abort(self):
        """Close every session still in use so pending requests fail fast."""
        with self._sessions_lock:
            sessions = list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            session.close()
        if sessions:
            logger.info(f"Closed {len(sessions)} in-flight YouTube sessions")
