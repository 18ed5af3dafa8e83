"""ftt CLI.

Thin argparse layer over FttController: parse arguments, call one controller
method, print its result, and map it to an exit status (0 success, 1 error).
"""

from __future__ import annotations

import argparse
import sys
from typing import Any

from .. import __version__
from ..core.controller import FttController
from ..core.errors import FttError
from ..core.snapshot_index import make_selector
from ..utils.env import determine_project_root
from ..utils.logs import configure_logging


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ftt",
        description="Filesystem Time Travel - snapshot, diff and rewind a directory tree",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )

    subparsers = parser.add_subparsers(dest="command")

    def add_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "path",
            nargs="?",
            default=None,
            help="Tracked root (default: $FTT_ROOT or the current directory)",
        )
        return sub

    add_command("init", "Start tracking a directory")

    save = add_command("save", "Record a snapshot of the current tree")
    save.add_argument("-m", "--message", default="", help="Optional description")

    add_command("log", "List recorded snapshots")

    rewind = add_command("rewind", "Restore the tree to a recorded snapshot")
    rewind.add_argument("--back", help="Snapshots back from the latest (0 = latest)")
    rewind.add_argument("--tag", help="Tag label")
    rewind.add_argument("--id", dest="snapshot_id", help="Snapshot id")
    rewind.add_argument("--ago", help="Newest snapshot at least this old: <n>d, <n>h or <n>m")

    diff = add_command("diff", "Compare two recorded snapshots")
    diff.add_argument("--from", dest="from_id", help="Source snapshot id")
    diff.add_argument("--from-tag", dest="from_tag", help="Source tag label")
    diff.add_argument("--to", dest="to_id", help="Target snapshot id")
    diff.add_argument("--to-tag", dest="to_tag", help="Target tag label")

    tag = add_command("tag", "Give a snapshot a label")
    tag.add_argument("--snapshot", required=True, help="Snapshot id")
    tag.add_argument("--label", required=True, help="Tag label")

    add_command("status", "Show changes since the latest snapshot")

    return parser


def main(args: list[str] | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    configure_logging(debug=True if parsed.debug else None)

    if not parsed.command:
        parser.print_help()
        return 1

    controller = FttController(project_root=determine_project_root(parsed.path))

    if parsed.command == "init":
        return cmd_init(controller)
    if parsed.command == "save":
        return cmd_save(parsed, controller)
    if parsed.command == "log":
        return cmd_log(controller)
    if parsed.command == "rewind":
        return cmd_rewind(parsed, controller)
    if parsed.command == "diff":
        return cmd_diff(parsed, controller)
    if parsed.command == "tag":
        return cmd_tag(parsed, controller)
    if parsed.command == "status":
        return cmd_status(controller)

    parser.print_help()
    return 1


def cmd_init(controller: FttController) -> int:
    result = controller.init()
    if not result.get("success"):
        return _print_error(result)

    if result.get("alreadyInitialized"):
        print(f"Already initialized at {result['fttDir']}")
    else:
        print(f"Initialized ftt at {result['fttDir']}")
    if result.get("enclosingRoot"):
        print(f"Note: this directory is inside another tracked root: {result['enclosingRoot']}")
    return 0


def cmd_save(args: argparse.Namespace, controller: FttController) -> int:
    result = controller.save(message=(args.message or "").strip())
    if not result.get("success"):
        return _print_error(result)

    print(f"Snapshot saved as ID {result['id']}  ({result['fileCount']} files, {result['newBlobs']} new blobs)")
    return 0


def cmd_log(controller: FttController) -> int:
    result = controller.log()
    if not result.get("success"):
        return _print_error(result)

    print("ID    Files   Saved                             Message")
    for snap in result["snapshots"]:
        tags = snap.get("tags") or []
        tag_text = f"  [{', '.join(tags)}]" if tags else ""
        print(f"{snap['id']:<5} {snap['fileCount']:<7} {snap['timestamp'] or '-':<33} {snap['message']}{tag_text}")
    return 0


def cmd_rewind(args: argparse.Namespace, controller: FttController) -> int:
    try:
        selector = make_selector(
            snapshot_id=args.snapshot_id,
            tag=args.tag,
            back=args.back,
            ago=args.ago,
        )
    except FttError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    result = controller.rewind(selector)
    if "snapshotId" not in result:
        return _print_error(result)

    print(f"Rewinding to snapshot ID {result['snapshotId']}")
    for path in result["restored"]:
        print(f"  restored  {path}")
    for path in result["deleted"]:
        print(f"  deleted   {path}")
    for path in result["removedDirs"]:
        print(f"  removed   {path}/")
    for missing in result["missingBlobs"]:
        print(f"  MISSING   {missing['path']}  (blob {missing['fingerprint'][:12]})", file=sys.stderr)

    if not result.get("success"):
        return _print_error(result)

    if not (result["restored"] or result["deleted"] or result["removedDirs"]):
        print("Already up to date.")
    else:
        print("Rewind complete.")
    return 0


def cmd_diff(args: argparse.Namespace, controller: FttController) -> int:
    try:
        source = make_selector(snapshot_id=args.from_id, tag=args.from_tag)
        target = make_selector(snapshot_id=args.to_id, tag=args.to_tag)
    except FttError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    result = controller.diff(source, target)
    if not result.get("success"):
        return _print_error(result)

    print(f"Diff from ID {result['fromId']} -> ID {result['toId']}")
    _print_changes(result)
    return 0


def cmd_tag(args: argparse.Namespace, controller: FttController) -> int:
    try:
        snapshot_id = int(args.snapshot)
    except ValueError:
        print(f"Error: Invalid snapshot ID: {args.snapshot}", file=sys.stderr)
        return 1

    result = controller.tag(snapshot_id, args.label)
    if not result.get("success"):
        return _print_error(result)

    moved = result.get("previousId")
    if moved is not None and moved != result["id"]:
        print(f"Tagged snapshot {result['id']} as '{result['label']}' (was {moved})")
    else:
        print(f"Tagged snapshot {result['id']} as '{result['label']}'")
    return 0


def cmd_status(controller: FttController) -> int:
    result = controller.status()
    if not result.get("success"):
        return _print_error(result)

    print(f"Changes since snapshot ID {result['latestId']}:")
    _print_changes(result)
    return 0


def _print_changes(result: dict[str, Any]) -> None:
    for path in result["added"]:
        print(f"  added     {path}")
    for path in result["modified"]:
        print(f"  modified  {path}")
    for path in result["deleted"]:
        print(f"  deleted   {path}")
    if not (result["added"] or result["modified"] or result["deleted"]):
        print("  No changes.")


def _print_error(result: dict[str, Any]) -> int:
    print(f"Error: {result.get('error')}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
