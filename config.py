# Spotify app credentials and sync settings, read once from the environment.
# Create an app at https://developer.spotify.com/dashboard
# Set Redirect URI to: http://127.0.0.1:8080/callback (or SPOTIFY_REDIRECT_URI)
#
# Scopes used:
#   - user-library-read (liked songs)
#   - playlist-read-private playlist-modify-public playlist-modify-private (target playlist)

import os
from urllib.parse import urlparse

CLIENT_ID = os.environ.get("SPOTIFY_ID", "")
CLIENT_SECRET = os.environ.get("SPOTIFY_SECRET", "")
REDIRECT_URI = os.environ.get("SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8080/callback")

PORT = int(os.environ.get("LIKED_SYNC_PORT") or urlparse(REDIRECT_URI).port or 8080)

PLAYLIST_NAME = os.environ.get("LIKED_SYNC_PLAYLIST", "Liked Songs (public)")
BATCH_SIZE = int(os.environ.get("LIKED_SYNC_BATCH_SIZE", "100"))


class ConfigError(Exception):
    pass


def check():
    """Raise ConfigError if the required credentials are missing."""
    missing = [name for name, value in (("SPOTIFY_ID", CLIENT_ID), ("SPOTIFY_SECRET", CLIENT_SECRET)) if not value]
    if missing:
        raise ConfigError(f"Missing environment variable(s): {', '.join(missing)}")
