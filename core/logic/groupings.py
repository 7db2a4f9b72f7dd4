"""
Grouping Set Operations.

Groupings have no identifiers of their own on the wire, only a category and
a peer set, so reconciling a record's groupings is a set comparison between
what the store holds for the record and what the new version declares.

Exports:
    GroupingDiff: retained / removed / created groupings
    diff_groupings: Compute the diff for one record
    detach_peer: Groupings left after removing a record from them
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set


@dataclass
class GroupingDiff:
    retained: Set = field(default_factory=set)
    removed: Set = field(default_factory=set)
    created: Set = field(default_factory=set)

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.created)


def diff_groupings(existing: Iterable, declared: Iterable) -> GroupingDiff:
    """
    Compare the groupings a record is currently part of with the ones its
    new version declares.

    retained = existing & declared
    removed  = existing - declared
    created  = declared - existing
    """
    old = set(existing)
    new = set(declared)
    retained = old & new
    return GroupingDiff(
        retained=retained,
        removed=old - retained,
        created=new - retained,
    )


def detach_peer(groupings: Iterable, id_code: str) -> List:
    """
    Remove ``id_code`` from each grouping.

    Groupings left without peers are dropped and groupings that become
    identical collapse into one.
    """
    remaining = set()
    for grouping in groupings:
        reduced = grouping.without_peer(id_code)
        if reduced.peers:
            remaining.add(reduced)
    return sorted(remaining, key=lambda g: g.key)
