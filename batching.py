"""Apply a ChangeSet to a playlist in bounded-size batches.

Playlist mutation is not transactional on Spotify's side, so a failed batch
is logged and skipped: the remaining batches still go out, nothing is retried
or rolled back. Batches run one at a time to avoid concurrent writes to the
same playlist.
"""

from collections import namedtuple

from log_setup import get_logger
from spotify_client import API_ERRORS

log = get_logger("batching")

MAX_BATCH_SIZE = 100        # max items per add/remove call (API limit)
DEFAULT_BATCH_SIZE = MAX_BATCH_SIZE

BatchFailure = namedtuple("BatchFailure", ["action", "index", "track_ids", "error"])


class ApplyReport:
    """Outcome of one apply_changes() call."""

    def __init__(self):
        self.added = 0
        self.removed = 0
        self.batches = 0
        self.failures = []

    @property
    def ok(self):
        return not self.failures

    def summary(self):
        failed_tracks = sum(len(f.track_ids) for f in self.failures)
        return (f"{self.added} added, {self.removed} removed, "
                f"{len(self.failures)}/{self.batches} batches failed ({failed_tracks} tracks)")


def chunked(items, size):
    """Split items into consecutive lists of at most size elements, keeping order."""
    if size < 1:
        raise ValueError(f"batch size must be at least 1, got {size}")
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


def apply_batches(action, track_ids, mutate, batch_size, report):
    """Call mutate(batch) once per batch; failures are recorded in report, never raised."""
    batches = chunked(track_ids, batch_size)
    for i, batch in enumerate(batches, start=1):
        report.batches += 1
        try:
            mutate(batch)
        except API_ERRORS as e:
            log.error(f"  Failed to {action} batch {i}/{len(batches)} "
                      f"({len(batch)} tracks, first {batch[0]}): {e}")
            report.failures.append(BatchFailure(action, i, batch, e))
            continue
        if action == "add":
            report.added += len(batch)
        else:
            report.removed += len(batch)
        log.debug(f"  {action} batch {i}/{len(batches)}: {len(batch)} tracks")


def apply_changes(to_add, to_remove, add_batch, remove_batch, batch_size=DEFAULT_BATCH_SIZE):
    """Send additions, then removals, in list order. Returns an ApplyReport.

    add_batch and remove_batch take a list of track IDs and perform one remote call.
    """
    report = ApplyReport()
    if to_add:
        log.info(f"Adding {len(to_add)} tracks...")
        apply_batches("add", to_add, add_batch, batch_size, report)
    if to_remove:
        log.info(f"Removing {len(to_remove)} tracks...")
        apply_batches("remove", to_remove, remove_batch, batch_size, report)
    return report


def playlist_mutators(sp, playlist_id):
    """Return (add_batch, remove_batch) callables bound to one playlist."""

    def add_batch(track_ids):
        sp.playlist_add_items(playlist_id, track_ids)

    def remove_batch(track_ids):
        sp.playlist_remove_all_occurrences_of_items(playlist_id, track_ids)

    return add_batch, remove_batch
