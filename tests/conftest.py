import copy
import pytest
import requests

VIDEO_ID = "AAAAAAAAAAA"
WATCH_PREFIX = "https://www.youtube.com/watch"
PLAYER_PREFIX = "https://www.youtube.com/youtubei/v1/player"
CAPTIONS_PREFIX = "https://www.youtube.com/api/timedtext"

WATCH_HTML = (
    '<html><head><title>Test Video - YouTube</title></head><body><script>'
    'ytcfg.set({"INNERTUBE_API_KEY":"test-key-123","INNERTUBE_CLIENT_NAME":"WEB"});'
    '</script></body></html>'
)

PLAYER_RESPONSE = {
    "playabilityStatus": {"status": "OK"},
    "videoDetails": {"videoId": VIDEO_ID, "title": "Test Video"},
    "captions": {
        "playerCaptionsTracklistRenderer": {
            "captionTracks": [
                {
                    "baseUrl": f"{CAPTIONS_PREFIX}?v={VIDEO_ID}&lang=en&kind=asr&fmt=srv3",
                    "languageCode": "en",
                    "kind": "asr",
                },
                {
                    "baseUrl": f"{CAPTIONS_PREFIX}?v={VIDEO_ID}&lang=en&fmt=srv3",
                    "languageCode": "en",
                    "name": {"simpleText": "English"},
                },
                {
                    "baseUrl": f"{CAPTIONS_PREFIX}?v={VIDEO_ID}&lang=de",
                    "languageCode": "de",
                },
            ]
        }
    },
}

CAPTIONS_XML = (
    '<?xml version="1.0" encoding="utf-8" ?><transcript>'
    '<text start="0.5" dur="2.1">Hello &amp; welcome</text>'
    '<text start="2.6" dur="1.4">it&#39;s &lt;great&gt;</text>'
    '</transcript>'
)


class FakeResponse:
    def __init__(self, text="", status_code=200, json_data=None):
        self.text = text
        self.status_code = status_code
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for ``requests.Session``; routes requests by method and URL prefix."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        for (route_method, prefix), handler in self.routes.items():
            if route_method == method and url.startswith(prefix):
                if isinstance(handler, BaseException):
                    raise handler
                if callable(handler):
                    return handler(url, **kwargs)
                return handler
        raise AssertionError(f"Unexpected request: {method} {url}")

    def close(self):
        self.closed = True


def make_routes(watch=None, player=None, captions=None):
    return {
        ("GET", WATCH_PREFIX): watch if watch is not None else FakeResponse(WATCH_HTML),
        ("POST", PLAYER_PREFIX): player if player is not None else FakeResponse(json_data=copy.deepcopy(PLAYER_RESPONSE)),
        ("GET", CAPTIONS_PREFIX): captions if captions is not None else FakeResponse(CAPTIONS_XML),
    }


@pytest.fixture
def player_response():
    return copy.deepcopy(PLAYER_RESPONSE)


@pytest.fixture
def fake_session():
    return FakeSession(make_routes())
