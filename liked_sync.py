#!/usr/bin/env python3
"""
Mirror Spotify Liked Songs into a playlist.

Logs in through the browser, then adds every liked track missing from the
target playlist and removes every playlist track that is no longer liked.
One-shot: nothing is stored between runs.

Usage:
  python3 liked_sync.py                              # Sync the configured playlist
  python3 liked_sync.py --playlist "My Public Likes" # Sync a playlist by name
  python3 liked_sync.py --dry-run                    # Show the changes without applying them
  python3 liked_sync.py --no-browser                 # Only print the login URL
  python3 liked_sync.py --sequential                 # Fetch liked songs and playlist one after the other

Exit status: 0 on success, 1 on a fatal error, 2 when some batches failed.
"""

import argparse
import logging
import secrets
import sys
import webbrowser
from concurrent.futures import Future, ThreadPoolExecutor
from urllib.parse import urlparse

import config
from auth_callback import AuthError, start_callback_server, stop_callback_server
from batching import MAX_BATCH_SIZE, ApplyReport, apply_changes, playlist_mutators
from log_setup import get_logger, reset_latest, set_console_level
from paging import fetch_liked_track_ids, fetch_playlist_track_ids, iter_playlists
from reconcile import reconcile
from spotify_client import API_ERRORS, create_oauth

log = get_logger("liked_sync")

EXIT_FATAL = 1
EXIT_PARTIAL = 2


class PlaylistNotFoundError(Exception):
    pass


class FetchError(Exception):
    """One or both collections could not be fetched completely."""

    def __init__(self, errors):
        self.errors = errors
        super().__init__("; ".join(f"{name}: {e}" for name, e in errors.items()))


# --- Authentication ---

def authenticate(oauth, port, host="127.0.0.1", open_browser=True):
    """Run the authorization-code flow and return an authenticated spotipy client.

    Blocks until the callback arrives; there is no timeout.
    """
    state = secrets.token_urlsafe(16)
    result = Future()
    try:
        server = start_callback_server(oauth, state, result, port, host=host)
    except OSError as e:
        raise AuthError(f"Could not listen for the callback on {host}:{port}: {e}") from e

    try:
        url = oauth.get_authorize_url(state=state)
        log.info(f"Please log in to Spotify by visiting the following page in your browser:\n{url}")
        if open_browser:
            webbrowser.open(url)
        client = result.result()
    finally:
        stop_callback_server(server)

    log.info("Login completed.")
    return client


# --- Sync ---

def find_playlist_id(sp, name):
    """Return the ID of the first playlist whose display name equals name."""
    for playlist in iter_playlists(sp):
        if playlist.get("name") == name:
            log.debug(f"Playlist '{name}' -> {playlist['id']}")
            return playlist["id"]
    raise PlaylistNotFoundError(f"No playlist named '{name}' found")


def _capture(fn, *args):
    try:
        return fn(*args), None
    except API_ERRORS as e:
        return None, e


def fetch_both(sp, playlist_id, concurrent=True):
    """Fetch (liked_ids, playlist_ids). Raises FetchError naming every fetch that failed."""
    tasks = {
        "liked songs": (fetch_liked_track_ids, (sp,)),
        "playlist": (fetch_playlist_track_ids, (sp, playlist_id)),
    }

    if concurrent:
        with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="fetch") as pool:
            futures = {name: pool.submit(_capture, fn, *args) for name, (fn, args) in tasks.items()}
            outcomes = {name: f.result() for name, f in futures.items()}
    else:
        outcomes = {name: _capture(fn, *args) for name, (fn, args) in tasks.items()}

    errors = {name: e for name, (_, e) in outcomes.items() if e is not None}
    if errors:
        for name, e in errors.items():
            log.error(f"Failed to fetch {name}: {e}")
        raise FetchError(errors)

    return outcomes["liked songs"][0], outcomes["playlist"][0]


def sync(sp, playlist_name, batch_size=config.BATCH_SIZE, dry_run=False, concurrent=True):
    """Make the named playlist mirror Liked Songs. Returns an ApplyReport."""
    log.info(f"Looking up playlist '{playlist_name}'...")
    playlist_id = find_playlist_id(sp, playlist_name)

    log.info("Fetching liked songs and playlist tracks...")
    liked, current = fetch_both(sp, playlist_id, concurrent=concurrent)

    changes = reconcile(liked, current)
    log.info(f"Liked songs: {len(liked)}, playlist: {len(current)} "
             f"-> {len(changes.to_add)} to add, {len(changes.to_remove)} to remove")

    if changes.is_empty():
        log.info("Playlist already up to date.")
        return ApplyReport()

    to_add = sorted(changes.to_add)
    to_remove = sorted(changes.to_remove)

    if dry_run:
        for track_id in to_add:
            log.info(f"  + {track_id}")
        for track_id in to_remove:
            log.info(f"  - {track_id}")
        log.info("Dry run: no changes applied.")
        return ApplyReport()

    log.info("Begin syncing")
    add_batch, remove_batch = playlist_mutators(sp, playlist_id)
    report = apply_changes(to_add, to_remove, add_batch, remove_batch, batch_size=batch_size)

    if report.ok:
        log.info(f"Sync complete: {report.summary()}")
    else:
        log.warning(f"Sync completed with {len(report.failures)} failed batch(es): {report.summary()}")
    return report


# --- CLI ---

def main(argv=None):
    parser = argparse.ArgumentParser(description="Mirror Spotify Liked Songs into a playlist")
    parser.add_argument("--playlist", default=config.PLAYLIST_NAME, metavar="NAME",
                        help=f"Target playlist name, exact match (default: {config.PLAYLIST_NAME!r})")
    parser.add_argument("--batch-size", type=int, default=config.BATCH_SIZE,
                        help=f"Tracks per add/remove call, at most {MAX_BATCH_SIZE} (default: {config.BATCH_SIZE})")
    parser.add_argument("--port", type=int, default=config.PORT,
                        help=f"Port for the OAuth callback listener (default: {config.PORT})")
    parser.add_argument("--no-browser", action="store_true", help="Don't open the login page automatically")
    parser.add_argument("--sequential", action="store_true", help="Fetch liked songs and playlist one after the other")
    parser.add_argument("--dry-run", action="store_true", help="Show the changes without applying them")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to the console")
    args = parser.parse_args(argv)

    if not 1 <= args.batch_size <= MAX_BATCH_SIZE:
        parser.error(f"--batch-size (or LIKED_SYNC_BATCH_SIZE) must be between 1 and {MAX_BATCH_SIZE}")

    reset_latest()
    if args.verbose:
        set_console_level(logging.DEBUG)

    redirect = urlparse(config.REDIRECT_URI)
    if redirect.port and redirect.port != args.port:
        log.warning(f"Listening on port {args.port} but the redirect URI points to port {redirect.port}")

    try:
        config.check()
        sp = authenticate(
            create_oauth(config.CLIENT_ID, config.CLIENT_SECRET, config.REDIRECT_URI),
            args.port,
            host=redirect.hostname or "127.0.0.1",
            open_browser=not args.no_browser,
        )
        report = sync(
            sp,
            args.playlist,
            batch_size=args.batch_size,
            dry_run=args.dry_run,
            concurrent=not args.sequential,
        )
    except (config.ConfigError, AuthError, PlaylistNotFoundError, FetchError) as e:
        log.error(f"Error: {e}")
        sys.exit(EXIT_FATAL)
    except API_ERRORS as e:
        log.error(f"Spotify error: {e}")
        sys.exit(EXIT_FATAL)

    if not report.ok:
        sys.exit(EXIT_PARTIAL)


if __name__ == "__main__":
    main()
