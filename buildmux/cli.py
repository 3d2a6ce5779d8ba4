"""
Command-line interface for buildmux.

Notes
-----
The CLI is intentionally thin. It parses arguments, opens a session for the
selected workspace, and delegates to engine services.

Activation runs the session's scheduler until idle before returning, so the
load, the settle delay and the profile-enabling pass all complete within one
invocation.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from buildmux.logging_setup import init_logging
from mux_engine.entry_store.api import Entry
from mux_engine.entry_store.patterns import pattern_error
from mux_engine.errors import MuxError
from mux_engine.host import capabilities
from mux_engine.paths import default_data_root
from mux_engine.profile_enabler import EnableReport, enable_matching_profiles
from mux_engine.session import MuxSession, open_session
from mux_engine.settings import load_settings, save_settings


def _add_direction(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--up", dest="delta", action="store_const", const=-1, help="Move up one position")
    group.add_argument("--down", dest="delta", action="store_const", const=1, help="Move down one position")


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="buildmux",
        description="Switch between registered build roots and enable matching profiles",
    )
    parser.add_argument("--workspace", default="default", help="Workspace name (default: default)")
    parser.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help="Override buildmux data root (primarily for testing). If omitted, defaults are used.",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: $BUILDMUX_LOG_LEVEL or WARNING)")
    parser.add_argument("--log-file", type=Path, default=None, help="Append JSONL log records to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List registered build roots (active one marked with *)")

    add_p = sub.add_parser("add", help="Register a build root, or replace the one with the same path")
    add_p.add_argument("path", help="Path to the build root file (e.g. CMakeLists.txt)")
    add_p.add_argument("--nickname", default=None, help="Display name (default: parent folder name)")
    add_p.add_argument(
        "--pattern",
        action="append",
        default=[],
        help="Profile pattern (regular expression). May be repeated.",
    )

    rename_p = sub.add_parser("rename", help="Change the nickname of a registered build root")
    rename_p.add_argument("path")
    rename_p.add_argument("nickname")

    remove_p = sub.add_parser("remove", help="Unregister a build root")
    remove_p.add_argument("path")

    move_p = sub.add_parser("move", help="Reorder a registered build root")
    move_p.add_argument("path")
    _add_direction(move_p)

    pattern_p = sub.add_parser("pattern", help="Edit the profile patterns of a build root")
    pattern_sub = pattern_p.add_subparsers(dest="pattern_command", required=True)

    p_list = pattern_sub.add_parser("list", help="Show patterns")
    p_list.add_argument("path")

    p_add = pattern_sub.add_parser("add", help="Append a pattern")
    p_add.add_argument("path")
    p_add.add_argument("regex")

    p_edit = pattern_sub.add_parser("edit", help="Replace the pattern at a 1-based position")
    p_edit.add_argument("path")
    p_edit.add_argument("position", type=int)
    p_edit.add_argument("regex")

    p_remove = pattern_sub.add_parser("remove", help="Remove the pattern at a 1-based position")
    p_remove.add_argument("path")
    p_remove.add_argument("position", type=int)

    p_move = pattern_sub.add_parser("move", help="Reorder the pattern at a 1-based position")
    p_move.add_argument("path")
    p_move.add_argument("position", type=int)
    _add_direction(p_move)

    activate_p = sub.add_parser("activate", help="Load a build root and enable matching profiles")
    activate_p.add_argument("path", nargs="?", default=None, help="Registered build root path")
    activate_p.add_argument("--index", type=int, default=None, help="1-based position in the quick-pick list")
    activate_p.add_argument(
        "--next", action="store_true", help="Cycle to the quick-pick entry after the active one"
    )

    reapply_p = sub.add_parser(
        "reapply", help="Re-run profile enabling for the active (or given) build root"
    )
    reapply_p.add_argument("path", nargs="?", default=None)

    sub.add_parser("profiles", help="Show the host's profiles and their enabled state")

    settings_p = sub.add_parser("settings", help="Show or change buildmux settings")
    settings_sub = settings_p.add_subparsers(dest="settings_command", required=True)
    settings_sub.add_parser("show", help="Print current settings")
    s_set = settings_sub.add_parser("set", help="Change one setting")
    s_set.add_argument("key")
    s_set.add_argument("value")

    return parser


def _default_nickname(path: str) -> str:
    parent = Path(path).parent.name
    return parent or "CMakeLists"


def _print_entries(session: MuxSession) -> None:
    entries = session.store.list_entries()
    if not entries:
        print("No build roots registered.")
        return
    limit = session.settings.quick_pick_limit
    for idx, entry in enumerate(entries, start=1):
        marker = "*" if session.tracker.is_active(entry.path) else " "
        ordinal = f"{idx}." if idx <= limit else "  "
        line = f"{marker} {ordinal:<3} {entry.title}  {entry.path}"
        if entry.patterns:
            line += f"  [{', '.join(entry.patterns)}]"
        print(line)


def _print_patterns(entry: Entry) -> None:
    if not entry.patterns:
        print(f"{entry.title}: no patterns")
        return
    print(f"{entry.title}:")
    for idx, pattern in enumerate(entry.patterns, start=1):
        print(f"  {idx}. {pattern}")


def _print_report(report: EnableReport) -> None:
    if report.error:
        print(f"WARNING: profile enabling stopped early: {report.error}")
    for pattern in report.skipped_patterns:
        print(f"WARNING: skipped invalid pattern {pattern!r}")
    for name in report.refused:
        print(f"WARNING: profile {name!r} could not be enabled")
    if not report.profiles_found:
        print("Host profiles not available; no profiles enabled.")
        return
    names = f": {', '.join(report.flipped)}" if report.flipped else ""
    print(f"Enabled {report.count} profile(s){names}")


def _warn_if_invalid(regex: str) -> None:
    error = pattern_error(regex)
    if error is not None:
        print(f"WARNING: {error} (stored anyway; it will be skipped when enabling profiles)")


def _run_pattern_command(session: MuxSession, args: argparse.Namespace) -> int:
    store = session.store
    if args.pattern_command == "list":
        _print_patterns(store.require(args.path))
        return 0
    if args.pattern_command == "add":
        _warn_if_invalid(args.regex)
        _print_patterns(store.add_pattern(args.path, args.regex))
        return 0
    if args.pattern_command == "edit":
        _warn_if_invalid(args.regex)
        _print_patterns(store.edit_pattern(args.path, args.position - 1, args.regex))
        return 0
    if args.pattern_command == "remove":
        _print_patterns(store.remove_pattern(args.path, args.position - 1))
        return 0
    if args.pattern_command == "move":
        if not store.move_pattern(args.path, args.position - 1, args.delta):
            print("Pattern cannot move further in that direction.")
        _print_patterns(store.require(args.path))
        return 0
    return 2


def _run_session_command(session: MuxSession, args: argparse.Namespace) -> int:
    store = session.store

    if args.command == "list":
        _print_entries(session)
        return 0

    if args.command == "add":
        nickname = (args.nickname or "").strip() or _default_nickname(args.path)
        for regex in args.pattern:
            _warn_if_invalid(regex)
        entry = Entry(nickname=nickname, path=args.path, patterns=tuple(args.pattern))
        store.add_or_replace(entry)
        print(f"Registered {entry.title}: {entry.path}")
        return 0

    if args.command == "rename":
        entry = store.rename(args.path, args.nickname)
        print(f"Renamed to {entry.title}")
        return 0

    if args.command == "remove":
        if store.remove_by_path(args.path):
            print("Removed.")
        else:
            print("Not registered; nothing removed.")
        return 0

    if args.command == "move":
        index = store.index_of(args.path)
        if index < 0:
            print("Not registered.")
            return 2
        if not store.reorder(index, args.delta):
            print("Entry cannot move further in that direction.")
        _print_entries(session)
        return 0

    if args.command == "pattern":
        return _run_pattern_command(session, args)

    if args.command == "activate":
        chosen = sum((args.path is not None, args.index is not None, args.next))
        if chosen != 1:
            print("ERROR: give exactly one of a path, --index or --next.")
            return 2
        reports: list[EnableReport] = []
        if args.next:
            entry = session.activate_next(on_profiles_enabled=reports.append)
        elif args.index is not None:
            entry = session.activate_index(args.index, on_profiles_enabled=reports.append)
        else:
            entry = session.activate(args.path, on_profiles_enabled=reports.append)
        session.scheduler.run_until_idle()  # type: ignore[attr-defined]
        if not session.tracker.is_active(entry.path):
            print(f"ERROR: the host did not load {entry.path}")
            return 2
        print(f"Active: {entry.title} ({entry.path})")
        if reports:
            _print_report(reports[0])
        else:
            print("No patterns configured; profiles unchanged.")
        return 0

    if args.command == "reapply":
        path = args.path or session.tracker.get_active()
        if path is None:
            print("ERROR: no active build root; pass a path.")
            return 2
        entry = store.require(path)
        if not entry.patterns:
            print("No patterns configured; profiles unchanged.")
            return 0
        _print_report(enable_matching_profiles(session.host, entry.patterns))
        return 0

    if args.command == "profiles":
        settings = capabilities.find_profile_settings(session.host)
        found = capabilities.find_profiles(settings.value) if settings is not None else None
        if found is None:
            print("Host profiles not available.")
            return 0
        if not found.value:
            print("Host has no profiles.")
            return 0
        for profile in found.value:
            name = capabilities.profile_name(profile) or "<unnamed>"
            state = "enabled" if capabilities.profile_enabled(profile) else "disabled"
            print(f"{state:<9} {name}")
        return 0

    return 2


def _run_settings_command(args: argparse.Namespace) -> int:
    data_root = args.data_root or default_data_root()
    settings = load_settings(data_root=data_root)
    if args.settings_command == "set":
        settings = settings.with_value(args.key, args.value)
        save_settings(data_root=data_root, settings=settings)
    for key, value in settings.as_dict().items():
        print(f"{key} = {value}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    init_logging(args.log_level, args.log_file)

    try:
        if args.command == "settings":
            return _run_settings_command(args)

        with open_session(args.workspace, data_root=args.data_root) as session:
            session.start()
            return _run_session_command(session, args)
    except (MuxError, ValueError) as exc:
        print(f"ERROR: {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
