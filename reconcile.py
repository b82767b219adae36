"""Compute the playlist changes that make a target set mirror a source set."""

from collections import namedtuple


class ChangeSet(namedtuple("ChangeSet", ["to_add", "to_remove"])):
    """Tracks missing from the target (to_add) and extraneous in it (to_remove)."""

    __slots__ = ()

    def is_empty(self):
        return not self.to_add and not self.to_remove

    def apply_to(self, target):
        """Return the target set as it looks once every change has gone through."""
        return (frozenset(target) | self.to_add) - self.to_remove


def reconcile(source, target):
    """Diff source (liked songs) against target (playlist contents).

    Pure: no I/O, and the result does not depend on iteration order.
    Reconciling source against ChangeSet.apply_to(target) yields an empty ChangeSet.
    """
    source = frozenset(source)
    target = frozenset(target)
    return ChangeSet(to_add=source - target, to_remove=target - source)
