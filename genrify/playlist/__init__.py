"""Public façade for the genrify.playlist package.

Compound playlist operations (pattern search, merge with verification and
rollback, bulk delete) built on top of genrify.spotify.
"""

from .service import PlaylistService, deduplicate_uris

__all__ = [
    "PlaylistService",
    "deduplicate_uris",
]
