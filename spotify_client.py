"""Shared Spotify OAuth and client setup.

The OAuth manager keeps its token in memory only: every run logs in again
through the local callback listener (see auth_callback.py).
"""

import time

import requests as _requests
import spotipy
import spotipy.exceptions
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth

from log_setup import get_logger

log = get_logger("spotify_client")

SCOPES = "user-read-private playlist-read-private user-library-read playlist-modify-public playlist-modify-private"

REQUEST_TIMEOUT = 15
MAX_RATE_LIMIT_RETRIES = 3
RATE_LIMIT_PADDING = 1
DEFAULT_RETRY_AFTER = 60

# Everything a Spotify call can fail with: API errors, a token refresh that
# fails mid-run (SpotifyOauthError is not a SpotifyException) and transport errors.
API_ERRORS = (
    spotipy.exceptions.SpotifyException,
    spotipy.exceptions.SpotifyOauthError,
    _requests.exceptions.RequestException,
)


def create_oauth(client_id, client_secret, redirect_uri):
    """Create the authorization-code flow manager.

    open_browser is off: the caller prints the URL and launches the browser itself,
    and the code arrives through our own callback listener rather than spotipy's.
    """
    return SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        scope=SCOPES,
        open_browser=False,
        cache_handler=MemoryCacheHandler(),
        requests_timeout=REQUEST_TIMEOUT,
    )


def create_client(oauth):
    """Return a spotipy.Spotify bound to an OAuth manager that already holds a token."""
    session = _requests.Session()
    session.mount("https://", _requests.adapters.HTTPAdapter(max_retries=0))

    return spotipy.Spotify(
        auth_manager=oauth,
        requests_session=session,
        requests_timeout=REQUEST_TIMEOUT,
    )


def get_retry_after(e):
    """Seconds to wait before retrying a 429, from its Retry-After header.

    Header names are matched case-insensitively; a missing or non-numeric
    value falls back to DEFAULT_RETRY_AFTER.
    """
    headers = {k.lower(): v for k, v in (e.headers or {}).items()}
    try:
        return max(0, int(headers["retry-after"]))
    except (KeyError, TypeError, ValueError):
        return DEFAULT_RETRY_AFTER


def call_with_backoff(fn, *args, **kwargs):
    """Call a spotipy method, sleeping through HTTP 429 responses.

    Any other error, or a 429 that keeps coming back after
    MAX_RATE_LIMIT_RETRIES waits, is raised to the caller.
    """
    attempt = 0
    while True:
        try:
            return fn(*args, **kwargs)
        except spotipy.exceptions.SpotifyException as e:
            if e.http_status != 429 or attempt >= MAX_RATE_LIMIT_RETRIES:
                raise
            attempt += 1
            retry_after = get_retry_after(e)
            log.warning(f"  Rate limited, waiting {retry_after}s (attempt {attempt}/{MAX_RATE_LIMIT_RETRIES})...")
            time.sleep(retry_after + RATE_LIMIT_PADDING)
