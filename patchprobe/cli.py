"""CLI entry point for patchprobe.

Examples:
  patchprobe images            # zypper-capable images, from cache when possible
  patchprobe images --force    # re-probe every image and rebuild the cache
  patchprobe list-updates opensuse/leap:15.5
  patchprobe run opensuse/leap:15.5 -- zypper ref
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from patchprobe.cache import ClassificationCache
from patchprobe.client import DockerEngineClient, EngineClient
from patchprobe.config import Settings
from patchprobe.errors import ProbeError
from patchprobe.probes import ContainerProbe, run_command_in_container
from patchprobe.scanner import ImageScanner
from patchprobe.schemas import ImageClassification

console = Console()


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def humanize_size(size: int) -> str:
    """Decimal units, as ``docker images`` prints them."""
    value = float(size)
    for unit in ("B", "kB", "MB", "GB"):
        if value < 1000:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1000
    return f"{value:.1f} TB"


def humanize_age(created: int, now: Optional[float] = None) -> str:
    seconds = int((now if now is not None else time.time()) - created)
    if seconds < 1:
        return "Less than a second ago"
    for span, unit in ((86400 * 365, "year"), (86400 * 7, "week"), (86400, "day"), (3600, "hour"), (60, "minute")):
        if seconds >= span:
            count = seconds // span
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return f"{seconds} second{'s' if seconds > 1 else ''} ago"


def build_images_table(results: List[ImageClassification], show_all: bool = False) -> Table:
    table = Table(box=None, pad_edge=False, header_style="bold")
    for column in ("REPOSITORY", "TAG", "IMAGE ID", "CREATED", "SIZE"):
        table.add_column(column)
    if show_all:
        table.add_column("PATCHABLE")

    for item in results:
        if not (item.matched or show_all):
            continue
        image = item.image
        row = [image.repository, image.tag, image.short_id, humanize_age(image.created), humanize_size(image.size)]
        if show_all:
            row.append("[green]yes[/green]" if item.matched else "[dim]no[/dim]")
        table.add_row(*row)
    return table


def cmd_images(args: argparse.Namespace, settings: Settings, client: EngineClient) -> int:
    probe = ContainerProbe(client, timeout=settings.timeout, name_prefix=settings.container_prefix)
    scanner = ImageScanner(
        client,
        probe,
        ClassificationCache(settings.cache_path),
        check_command=settings.check_command,
        workers=settings.workers,
    )
    results = scanner.scan(force_refresh=args.force)
    console.print(build_images_table(results, show_all=args.all))
    return 0


def cmd_run(args: argparse.Namespace, settings: Settings, client: EngineClient) -> int:
    command = args.cmd
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        console.print("[red]ERROR: No command given[/red]")
        return 2
    return _stream(args.image, command, settings, client)


def cmd_list_updates(args: argparse.Namespace, settings: Settings, client: EngineClient) -> int:
    return _stream(args.image, [settings.package_manager, "list-updates"], settings, client)


def cmd_list_patches(args: argparse.Namespace, settings: Settings, client: EngineClient) -> int:
    return _stream(args.image, [settings.package_manager, "list-patches"], settings, client)


def _stream(image: str, command: List[str], settings: Settings, client: EngineClient) -> int:
    probe = ContainerProbe(client, timeout=settings.timeout, name_prefix=settings.container_prefix)
    try:
        run_command_in_container(probe, image, command, stream=True)
    except ProbeError as e:
        console.print(f"[red]ERROR: {escape(str(e))}[/red]")
        return 1
    return 0


COMMANDS = {
    "images": cmd_images,
    "run": cmd_run,
    "list-updates": cmd_list_updates,
    "list-patches": cmd_list_patches,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patchprobe",
        description="Find container images that can be patched with zypper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n\n", 1)[1],
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    images_parser = subparsers.add_parser("images", help="List images that have the package manager")
    images_parser.add_argument("--force", action="store_true", help="Ignore the cache and probe every image")
    images_parser.add_argument("--all", action="store_true", help="Also show images without the package manager")

    run_parser = subparsers.add_parser("run", help="Run a command in a disposable container")
    run_parser.add_argument("image", help="Image reference")
    run_parser.add_argument("cmd", nargs=argparse.REMAINDER, help="Command and arguments")

    for name, help_text in (
        ("list-updates", "List pending package updates of an image"),
        ("list-patches", "List pending patches of an image"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("image", help="Image reference")

    return parser


def main(argv: Optional[List[str]] = None, client: Optional[EngineClient] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    load_dotenv()
    configure_logging(args.verbose)
    try:
        settings = Settings.from_env()
    except ValidationError as e:
        console.print(f"[red]ERROR: Invalid configuration: {escape(str(e))}[/red]")
        return 1

    if client is None:
        try:
            client = DockerEngineClient.from_env()
        except Exception as e:
            console.print(f"[red]ERROR: Cannot connect to Docker: {escape(str(e))}[/red]")
            return 1

    return COMMANDS[args.command](args, settings, client)


if __name__ == "__main__":
    sys.exit(main())
