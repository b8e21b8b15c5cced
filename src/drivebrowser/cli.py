"""Command-line interface for drivebrowser."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Callable, Optional, Sequence

from drivebrowser.auth import AuthInfo
from drivebrowser.browser import DriveBrowser
from drivebrowser.cache import ROOT_FOLDER_ID
from drivebrowser.errors import DriveBrowserError
from drivebrowser.models import ActivityEntry, DownloadProgressState, DownloadReport, FileNode

logger = logging.getLogger(__name__)

BrowserFactory = Callable[[argparse.Namespace], DriveBrowser]


class ConsoleProgress:
    """Progress observer that logs one line per unit and per reported chunk."""

    def on_unit_started(self, node: FileNode) -> None:
        logger.info("Downloading %s", node.name)

    def on_unit_progress(self, node: FileNode, downloaded_bytes: int) -> None:
        if node.size > 0:
            logger.info("  %s: %d%%", node.name, downloaded_bytes * 100 // node.size)
        else:
            logger.info("  %s: %d bytes", node.name, downloaded_bytes)

    def on_unit_finished(self, node: FileNode, completed: bool) -> None:
        pass

    def on_total_count_changed(self, total_count: int) -> None:
        logger.debug("%d item(s) to download", total_count)

    def on_completed(self, state: DownloadProgressState) -> None:
        logger.info("Downloaded %d/%d item(s)", state.completed_count, state.total_count)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="drivebrowser")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print debug messages")
    parser.add_argument(
        "--client-secrets",
        metavar="FILE",
        default=os.environ.get("DRIVEBROWSER_CLIENT_SECRETS", "credentials.json"),
        help="OAuth client secrets JSON",
    )
    parser.add_argument(
        "--token-file",
        metavar="FILE",
        default=os.environ.get("DRIVEBROWSER_TOKEN_FILE", "token.json"),
        help="Where the authorized user token is stored",
    )
    parser.add_argument("--state", metavar="FILE", help="Load/save the file cache here")

    sub = parser.add_subparsers(dest="command", required=True)

    ls = sub.add_parser("ls", help="List a folder (default: My Drive + Shared with me)")
    ls.add_argument("folder", nargs="?", default=ROOT_FOLDER_ID)

    dl = sub.add_parser("download", help="Download files or folders")
    dl.add_argument("ids", nargs="+", metavar="ID")
    dl.add_argument("--to", dest="target_dir", metavar="DIR")

    act = sub.add_parser("activity", help="Show recent changes of a file or folder")
    act.add_argument("id")

    search = sub.add_parser("search", help="Search Drive by name")
    search.add_argument("term")

    imp = sub.add_parser("import-request", help="Run a saved .drivedl download request")
    imp.add_argument("file")

    sub.add_parser("logout", help="Forget the stored OAuth token")

    return parser


def _default_browser(args: argparse.Namespace) -> DriveBrowser:
    auth_info = AuthInfo(client_secrets_file=args.client_secrets, token_file=args.token_file)
    return DriveBrowser(auth_info)


def _print_node(node: FileNode) -> None:
    kind = "d" if node.is_folder else "-"
    modified = node.modified_time.strftime("%Y-%m-%d %H:%M") if node.modified_time else ""
    print(f"{kind} {node.size:>12} {modified:16} {node.id}  {node.name}")


def _print_report(report: DownloadReport) -> None:
    for r in report.results:
        if r.status in ("failed", "canceled"):
            detail = f": {r.error_message}" if r.error_message else ""
            print(f"{r.status:8} {r.name}{detail}")
    summary = ", ".join(f"{k}={v}" for k, v in report.summary.items())
    print(f"{report.status} ({summary}) -> {report.target_dir or '-'}")


async def _ensure_cached(browser: DriveBrowser, file_ids: Sequence[str]) -> None:
    for file_id in file_ids:
        if await browser.get_file(file_id) is None:
            logger.warning("File %s not found", file_id)


async def run(args: argparse.Namespace, browser: DriveBrowser) -> int:
    if args.command == "ls":
        for node in await browser.list_folder(args.folder):
            _print_node(node)
        return 0

    if args.command == "download":
        await _ensure_cached(browser, args.ids)
        report = await browser.download(args.ids, args.target_dir, observer=ConsoleProgress())
        _print_report(report)
        return 0 if report.status == "completed" else 1

    if args.command == "import-request":
        report = await browser.import_request(args.file, observer=ConsoleProgress())
        _print_report(report)
        return 0 if report.status == "completed" else 1

    if args.command == "activity":
        node = await browser.get_file(args.id)
        if node is None:
            logger.error("File %s not found", args.id)
            return 1

        def show(entry: ActivityEntry) -> None:
            when = entry.timestamp.strftime("%Y-%m-%d %H:%M") if entry.timestamp else ""
            print(f"{when:16} {entry.type.name:8} {entry.username}: {entry.relative_path}")

        await browser.activity(node, show)
        return 0

    if args.command == "search":
        await browser.search(args.term, _print_node)
        return 0

    if args.command == "logout":
        browser.revoke_authentication()
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    browser_factory: BrowserFactory = _default_browser,
) -> int:
    """Run the drivebrowser CLI."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=(logging.DEBUG if args.verbose else logging.INFO),
        format="[%(levelname).1s] %(name)s: %(message)s",
    )

    try:
        browser = browser_factory(args)
        if args.state:
            browser.load_state(args.state)
        try:
            return asyncio.run(run(args, browser))
        finally:
            if args.state:
                browser.save_state(args.state)
    except DriveBrowserError as exc:
        logger.error("%s", exc)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
