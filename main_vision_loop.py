# main_vision_loop.py

import argparse
import logging
import os
import random
import sys

# --- Environment Setup ---
# Kivy must not parse our command line or attach handlers to the root logger.
# This must be done before importing Kivy.
os.environ.setdefault('KIVY_NO_ARGS', '1')
os.environ.setdefault('KIVY_LOG_MODE', 'PYTHON')

from logging_config import setup_logging
from vision_loop.app import VisionLoopApp
from vision_loop.constants import APP_HOME_ENV
from vision_loop.core.exceptions import VisionLoopError
from vision_loop.core.playback_sequencer import PlaybackSequencer
from vision_loop.utils.formatting import calculate_total_seconds, duration_display_value

# --- Command Functions ---
def cmd_playlists(app, args):
    playlists = app.playlist_manager.get_playlists()
    if not playlists:
        print("No playlists.")
    for playlist in playlists:
        loop = "loop" if playlist.settings.loop else "once"
        print(f"{playlist.id}\t{playlist.name}\t{len(playlist.items)} items\t{loop}\t{playlist.updated_at:%Y-%m-%d %H:%M}")
    return 0

def cmd_create(app, args):
    playlist = app.playlist_manager.create_playlist(args.name)
    print(playlist.id)
    return 0

def cmd_add(app, args):
    manager = app.playlist_manager
    if len(args.files) == 1:
        items = [manager.add_media(args.playlist_id, args.files[0], media_type=args.type,
                                   duration_seconds=args.duration)]
    else:
        items = manager.add_media_files(args.playlist_id, args.files)
    for item in items:
        print(f"{item.id}\t{item.type.value}\t{item.uri}")
    return 0 if len(items) == len(args.files) else 1

def cmd_remove(app, args):
    item = app.playlist_manager.remove_media(args.playlist_id, args.item_id)
    print(f"Removed {item.id} (refs left for {os.path.basename(item.uri)}: {app.content_store.ref_count(item.uri)})")
    return 0

def cmd_delete(app, args):
    app.playlist_manager.delete_playlists(args.playlist_ids)
    print(f"Deleted {len(args.playlist_ids)} playlist(s).")
    return 0

def cmd_stats(app, args):
    for key, value in app.content_store.get_storage_stats().items():
        print(f"{key}: {value}")
    return 0

def cmd_sweep(app, args):
    report = app.content_store.sweep()
    print(f"Orphans deleted: {len(report.orphans_deleted)}")
    print(f"Orphans left (delete failed): {len(report.orphans_failed)}")
    print(f"Stale records dropped: {len(report.stale_hashes)}")
    return 0

def cmd_order(app, args):
    """Prints the order in which a playback session would visit the items."""
    playlist = app.playlist_manager.get_playlist(args.playlist_id)
    settings = app.settings_manager.get_app_settings()
    mode = args.mode or settings.playback_mode
    rng = random.Random(args.seed) if args.seed is not None else None
    sequencer = PlaybackSequencer(playlist.items, mode, playlist.settings.loop, rng=rng)

    visited = [sequencer.current_index] if playlist.items else []
    while playlist.items and len(visited) < args.count and sequencer.can_advance():
        sequencer.move_to(sequencer.advance())
        visited.append(sequencer.current_index)
    print(" ".join(str(index) for index in visited))
    return 0

def cmd_settings(app, args):
    manager = app.settings_manager
    if args.mode:
        manager.set_playback_mode(args.mode)
    if args.orientation:
        manager.set_playback_orientation(args.orientation)
    if args.slide_unit:
        manager.set_slide_duration_unit(args.slide_unit)
    if args.limit_unit:
        manager.set_playback_duration_unit(args.limit_unit)
    # Amounts are typed in the stored display unit, as on the settings page.
    if args.slide is not None:
        manager.set_slide_duration(calculate_total_seconds(args.slide, manager.get_slide_duration_unit()))
    if args.limit is not None:
        manager.set_max_playback_duration(calculate_total_seconds(args.limit, manager.get_playback_duration_unit()))

    settings = manager.get_app_settings()
    for key, value in settings.to_dict().items():
        print(f"{key}: {value}")
    slide = duration_display_value(settings.slide_duration_seconds, settings.slide_duration_unit)
    print(f"slide: {slide} {settings.slide_duration_unit.value}")
    if settings.max_playback_duration is None:
        print("limit: unlimited")
    else:
        limit = duration_display_value(settings.max_playback_duration, settings.playback_duration_unit)
        print(f"limit: {limit} {settings.playback_duration_unit.value}")
    return 0

# --- Argument Parsing ---
def build_parser():
    parser = argparse.ArgumentParser(prog="vision-loop", description="Manage Vision Loop playlists and media storage.")
    parser.add_argument("--data-dir", help="Use this directory instead of the per-user data directory.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output on the console.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("playlists", help="List playlists.").set_defaults(func=cmd_playlists)

    p = sub.add_parser("create", help="Create an empty playlist.")
    p.add_argument("name", nargs="?", default="", help="Defaults to the current date and time.")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("add", help="Add photos or videos to a playlist.")
    p.add_argument("playlist_id")
    p.add_argument("files", nargs="+")
    p.add_argument("--type", choices=["image", "video"])
    p.add_argument("--duration", type=int, help="Seconds to show the item.")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("remove", help="Remove one item from a playlist.")
    p.add_argument("playlist_id")
    p.add_argument("item_id")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("delete", help="Delete playlists and release their files.")
    p.add_argument("playlist_ids", nargs="+")
    p.set_defaults(func=cmd_delete)

    sub.add_parser("stats", help="Show managed storage statistics.").set_defaults(func=cmd_stats)
    sub.add_parser("sweep", help="Delete orphaned files and stale records.").set_defaults(func=cmd_sweep)

    p = sub.add_parser("order", help="Print the playback order of a playlist.")
    p.add_argument("playlist_id")
    p.add_argument("--count", type=int, default=20)
    p.add_argument("--mode", choices=["sequential", "reverse", "random"])
    p.add_argument("--seed", type=int)
    p.set_defaults(func=cmd_order)

    p = sub.add_parser("settings", help="Show or change global playback settings.")
    p.add_argument("--mode", choices=["sequential", "reverse", "random"])
    p.add_argument("--orientation", choices=["portrait", "landscape"])
    p.add_argument("--slide", type=int, help="Time per image, in the slide unit.")
    p.add_argument("--limit", type=int, help="Stop playback after this long, in the limit unit (0 = no limit).")
    p.add_argument("--slide-unit", choices=["seconds", "minutes", "hours"])
    p.add_argument("--limit-unit", choices=["seconds", "minutes", "hours"])
    p.set_defaults(func=cmd_settings)
    return parser

# --- Main Entry Point ---
def main(argv=None):
    """Main function to run one command."""
    args = build_parser().parse_args(argv)
    if args.data_dir:
        os.environ[APP_HOME_ENV] = args.data_dir
    setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING)

    app = VisionLoopApp(user_data_dir=args.data_dir).build(sweep=False)
    try:
        return args.func(app, args)
    except (VisionLoopError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        app.on_stop()

if __name__ == "__main__":
    sys.exit(main())
