"""Drain Spotify paging objects into sets of track IDs.

A page is the dict Spotify returns for any list endpoint: an "items" list
plus a "next" URL that is null on the last page. Items whose track is null
(removed from the catalogue) or has no ID (local files) are skipped.
Errors other than rate limiting propagate: a partial set must never reach
the reconciliation step.
"""

from log_setup import get_logger
from spotify_client import call_with_backoff

log = get_logger("paging")

LIKED_PAGE_SIZE = 50        # max for GET /me/tracks
PLAYLIST_PAGE_SIZE = 100    # max for GET /playlists/{id}/tracks
PROGRESS_EVERY = 500


def extract_track_ids(page):
    """Return the track IDs of one page, skipping null and ID-less entries."""
    ids = []
    for item in page.get("items") or []:
        track = item.get("track") if item else None
        if not track:
            continue
        track_id = track.get("id")
        if not track_id:
            continue
        ids.append(track_id)
    return ids


def collect_track_ids(sp, first_page, label="tracks"):
    """Follow "next" links from first_page and return every track ID as a frozenset."""
    ids = set()
    page = first_page
    seen = 0
    while page:
        page_ids = extract_track_ids(page)
        ids.update(page_ids)

        before = seen
        seen += len(page.get("items") or [])
        if seen // PROGRESS_EVERY > before // PROGRESS_EVERY:
            log.info(f"  Fetched {seen} {label}...")

        if not page.get("next"):
            break
        page = call_with_backoff(sp.next, page)

    log.info(f"  Fetched {len(ids)} {label} total.")
    return frozenset(ids)


def fetch_liked_track_ids(sp):
    """Return the IDs of the current user's Liked Songs."""
    first = call_with_backoff(sp.current_user_saved_tracks, limit=LIKED_PAGE_SIZE)
    return collect_track_ids(sp, first, label="liked songs")


def fetch_playlist_track_ids(sp, playlist_id):
    """Return the IDs of every track in a playlist (episodes are left out)."""
    first = call_with_backoff(
        sp.playlist_items,
        playlist_id,
        fields="items(track(id)),next",
        limit=PLAYLIST_PAGE_SIZE,
        additional_types=("track",),
    )
    return collect_track_ids(sp, first, label="playlist tracks")


def iter_playlists(sp):
    """Yield every playlist summary owned or followed by the current user."""
    page = call_with_backoff(sp.current_user_playlists, limit=50)
    while page:
        for playlist in page.get("items") or []:
            if playlist:
                yield playlist
        if not page.get("next"):
            break
        page = call_with_backoff(sp.next, page)
