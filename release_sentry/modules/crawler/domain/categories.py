"""Album group registry.

Base album groups come from the catalog; extended album groups refine them
for playlist separation (EPs, remixes, live releases). Every extended group
maps back to exactly one base group.
"""

from enum import StrEnum


class AlbumGroup(StrEnum):
    """Base album groups as delivered by the catalog."""

    ALBUM = "album"
    SINGLE = "single"
    COMPILATION = "compilation"
    APPEARS_ON = "appears_on"


class AlbumGroupExtended(StrEnum):
    """Album groups used for playlist separation.

    Contains the 1:1 image of every base group plus finer sub-groups.
    """

    ALBUM = "album"
    SINGLE = "single"
    COMPILATION = "compilation"
    APPEARS_ON = "appears_on"
    EP = "ep"
    REMIX = "remix"
    LIVE = "live"

    @classmethod
    def from_album_group(cls, album_group: AlbumGroup) -> "AlbumGroupExtended":
        """Return the 1:1 image of a base album group."""
        return cls(album_group.value)

    @property
    def parent(self) -> AlbumGroup:
        """The base album group this group refines."""
        return _PARENTS[self]

    @property
    def is_base(self) -> bool:
        return self.value == self.parent.value


_PARENTS: dict[AlbumGroupExtended, AlbumGroup] = {
    AlbumGroupExtended.ALBUM: AlbumGroup.ALBUM,
    AlbumGroupExtended.SINGLE: AlbumGroup.SINGLE,
    AlbumGroupExtended.COMPILATION: AlbumGroup.COMPILATION,
    AlbumGroupExtended.APPEARS_ON: AlbumGroup.APPEARS_ON,
    AlbumGroupExtended.EP: AlbumGroup.SINGLE,
    AlbumGroupExtended.REMIX: AlbumGroup.SINGLE,
    AlbumGroupExtended.LIVE: AlbumGroup.ALBUM,
}

# Playlist order used for every ordered output (enabled groups, reports, results)
ALBUM_GROUP_ORDER: tuple[AlbumGroupExtended, ...] = (
    AlbumGroupExtended.ALBUM,
    AlbumGroupExtended.SINGLE,
    AlbumGroupExtended.EP,
    AlbumGroupExtended.REMIX,
    AlbumGroupExtended.LIVE,
    AlbumGroupExtended.COMPILATION,
    AlbumGroupExtended.APPEARS_ON,
)

_RANKS: dict[AlbumGroupExtended, int] = {
    group: rank for rank, group in enumerate(ALBUM_GROUP_ORDER)
}


def to_extended(album_group: AlbumGroup | AlbumGroupExtended) -> AlbumGroupExtended:
    """Normalize a base or extended album group to its extended value."""
    if isinstance(album_group, AlbumGroupExtended):
        return album_group
    return AlbumGroupExtended.from_album_group(album_group)


def album_group_rank(album_group: AlbumGroup | AlbumGroupExtended) -> int:
    """Position of the album group in the fixed playlist order."""
    return _RANKS[to_extended(album_group)]
