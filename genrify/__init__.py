"""genrify: Spotify playlist search, merge and bulk-delete tooling."""

__version__ = "0.1.0"
