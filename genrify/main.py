"""genrify command line.

    genrify me
    genrify playlists list [--filter TEXT] [--limit N]
    genrify playlists tracks <playlist> [--limit N] [--uris]
    genrify playlists create --name NAME [--description TEXT] [--public]
    genrify playlists add <playlist> <track> [<track> ...]
    genrify playlists merge --pattern REGEX --name NAME [--deduplicate] [--public]
                            [--description TEXT] [--delete-sources] [--dry-run] [--yes]
    genrify playlists delete <playlist> [<playlist> ...] [--yes]

Playlists and tracks may be given as ids, spotify: URIs or open.spotify.com links.
"""

import argparse
import logging
import sys
from typing import List, Optional

from genrify.config import load_config, is_configured
from genrify.core import (
    GenrifyError,
    MergeOptions,
    configure_logging,
    log_error,
    log_info,
    log_section,
    log_step,
    log_success,
    log_warning,
)
from genrify.playlist import PlaylistService
from genrify.spotify import (
    SpotifyClient,
    build_client,
    filter_playlists_by_name,
    join_artist_names,
    normalize_playlist_id,
    normalize_track_uri,
)

DEFAULT_PLAYLIST_LIMIT = 50
DEFAULT_TRACK_LIMIT = 100


def confirm(question: str) -> bool:
    try:
        answer = input(f"?  {question} [y/N]: ").strip().lower()
    except EOFError:
        return False
    return answer in ("y", "yes")


def _playlist_row(p) -> str:
    return f"{p.id}\t{p.name}\t{p.tracks.total} tracks"


def _track_row(t) -> str:
    return f"{t.uri}\t{t.name} – {join_artist_names(t.artists)}"


def cmd_me(args: argparse.Namespace, client: SpotifyClient) -> int:
    me = client.get_me()
    print(f"{me.id}\t{me.display_name or ''}")
    return 0


def cmd_list(args: argparse.Namespace, client: SpotifyClient) -> int:
    # Filtering needs every playlist; the limit then applies to what is printed.
    fetch_max = 0 if args.filter.strip() else args.limit
    playlists = client.list_current_user_playlists(fetch_max)
    filtered = filter_playlists_by_name(playlists, args.filter)
    if args.limit > 0:
        filtered = filtered[: args.limit]
    for p in filtered:
        print(_playlist_row(p))
    return 0


def cmd_tracks(args: argparse.Namespace, client: SpotifyClient) -> int:
    playlist_id = normalize_playlist_id(args.playlist)
    for t in client.list_playlist_tracks(playlist_id, args.limit):
        print(t.uri if args.uris else _track_row(t))
    return 0


def cmd_create(args: argparse.Namespace, client: SpotifyClient) -> int:
    with client.write_access():
        playlist = client.create_playlist(args.name, args.description, args.public)
    print(f"{playlist.id}\t{playlist.name}")
    return 0


def cmd_add(args: argparse.Namespace, client: SpotifyClient) -> int:
    playlist_id = normalize_playlist_id(args.playlist)
    uris = [normalize_track_uri(t) for t in args.tracks]
    with client.write_access():
        snapshot_id = client.add_tracks_to_playlist(playlist_id, uris)
    print(snapshot_id)
    return 0


def cmd_merge(args: argparse.Namespace, client: SpotifyClient) -> int:
    service = PlaylistService(client)

    matched = service.find_playlists_by_pattern(args.pattern)
    log_section(f"Matched {len(matched)} playlist(s)")
    for p in matched:
        print(_playlist_row(p))

    if not args.yes and not confirm("Proceed with merge?"):
        log_info("Merge cancelled.")
        return 1

    if args.dry_run:
        log_info("Dry run: no changes made.")
        return 0

    source_ids = [p.id for p in matched if p.id]
    with client.write_access():
        result = service.merge_playlists(
            source_ids,
            args.name,
            MergeOptions(
                deduplicate=args.deduplicate,
                public=args.public,
                description=args.description,
            ),
        )

    log_success(f"Created playlist: {result.new_playlist_id}")
    log_info(
        f"Tracks added: {result.track_count} "
        f"(duplicates removed: {result.duplicates_removed})"
    )
    if not result.verified:
        log_warning(f"Verification FAILED (missing {len(result.missing_uris)} track(s))")
        for uri in result.missing_uris[:10]:
            log_info(f"- {uri}")
        return 1
    log_success("Verification: OK")

    if args.delete_sources and (args.yes or confirm("Delete source playlists?")):
        with client.write_access():
            service.delete_playlists(source_ids)
        log_success("Deleted source playlists.")
    return 0


def cmd_delete(args: argparse.Namespace, client: SpotifyClient) -> int:
    ids = [normalize_playlist_id(p) for p in args.playlists]
    for playlist_id in ids:
        print(playlist_id)
    if not args.yes and not confirm(f"Delete/unfollow {len(ids)} playlist(s)?"):
        log_info("Delete cancelled.")
        return 1

    with client.write_access():
        deleted = PlaylistService(client).delete_playlists(ids)
    log_success(f"Deleted {len(deleted)} playlist(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="genrify", description="Spotify playlist tools")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    me = sub.add_parser("me", help="Show the current Spotify user")
    me.set_defaults(handler=cmd_me)

    playlists = sub.add_parser("playlists", help="Playlist operations")
    psub = playlists.add_subparsers(dest="playlists_command", required=True)

    p_list = psub.add_parser("list", help="List playlists")
    p_list.add_argument("--filter", default="", help="Name substring (case-insensitive)")
    p_list.add_argument("--limit", type=int, default=DEFAULT_PLAYLIST_LIMIT, help="0 = no limit")
    p_list.set_defaults(handler=cmd_list)

    p_tracks = psub.add_parser("tracks", help="List tracks in a playlist")
    p_tracks.add_argument("playlist")
    p_tracks.add_argument("--limit", type=int, default=DEFAULT_TRACK_LIMIT, help="0 = no limit")
    p_tracks.add_argument("--uris", action="store_true", help="Only print track URIs")
    p_tracks.set_defaults(handler=cmd_tracks)

    p_create = psub.add_parser("create", help="Create a playlist")
    p_create.add_argument("--name", required=True)
    p_create.add_argument("--description", default="")
    p_create.add_argument("--public", action="store_true")
    p_create.set_defaults(handler=cmd_create)

    p_add = psub.add_parser("add", help="Add tracks to a playlist")
    p_add.add_argument("playlist")
    p_add.add_argument("tracks", nargs="+")
    p_add.set_defaults(handler=cmd_add)

    p_merge = psub.add_parser("merge", help="Merge playlists matching a regex")
    p_merge.add_argument("--pattern", required=True, help="Regex on playlist names")
    p_merge.add_argument("--name", required=True, help="Name of the merged playlist")
    p_merge.add_argument("--description", default="")
    p_merge.add_argument("--public", action="store_true")
    p_merge.add_argument("--deduplicate", action="store_true")
    p_merge.add_argument("--delete-sources", action="store_true")
    p_merge.add_argument("--dry-run", action="store_true")
    p_merge.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p_merge.set_defaults(handler=cmd_merge)

    p_delete = psub.add_parser("delete", help="Delete (unfollow) playlists")
    p_delete.add_argument("playlists", nargs="+")
    p_delete.add_argument("--yes", action="store_true")
    p_delete.set_defaults(handler=cmd_delete)

    return parser


def main(argv: Optional[List[str]] = None, client: Optional[SpotifyClient] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if client is None:
        cfg = load_config()
        if not is_configured(cfg):
            log_error("Please set SPOTIFY_CLIENT_ID (environment, .env or config.json).")
            return 2
        log_step("Loading Spotify client...")
        client = build_client(cfg, require_write_access=True)

    try:
        return args.handler(args, client)
    except GenrifyError as e:
        log_error(str(e))
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
