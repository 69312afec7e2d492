"""Command-line interface for reviewing scrim VOD comments."""

import argparse
import asyncio
import sys
from typing import Optional

from . import __version__
from .logging import setup_logging, get_logger

logger = get_logger(__name__)


def display_text(content: str) -> str:
    """Comment content as shown to readers: ``<@Name>`` becomes ``@Name``."""
    from .parser import SegmentKind, render_segments

    parts = []
    for segment in render_segments(content):
        if segment.kind == SegmentKind.MENTION:
            parts.append(f"@{segment.text}")
        else:
            parts.append(segment.raw)
    return "".join(parts)


def parse_time_arg(value: Optional[str]) -> Optional[int]:
    """Parse a ``M:SS`` / seconds argument, exiting with an error if invalid."""
    from .parser import parse_timestamp

    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)


def make_client(args, require_token: bool = False):
    """Build an API client from the command line and environment."""
    from .config import load_token
    from .store import CommentApiClient

    token = load_token(required=require_token)
    return CommentApiClient(base_url=getattr(args, "api_url", None), token=token)


def cmd_setup(args):
    """Report configuration."""
    from .config import SETTINGS, check_configuration, get_api_url

    logger.info("=== vodreview Setup ===")
    logger.info("API: %s", args.api_url or get_api_url())

    present = check_configuration()
    for name, description in SETTINGS.items():
        if present[name]:
            logger.info("%s: set", name)
        else:
            logger.warning("%s not set (%s)", name, description)

    logger.info("Setup complete!")


def cmd_list(args):
    """List a scrim's comments, optionally filtered."""
    from .filters import ALL_MENTIONS, FilterSelection, apply_filters
    from .parser import format_timestamp
    from .store import CommentApiError

    client = make_client(args)
    try:
        comments = client.list_comments(args.scrim)
    except CommentApiError as e:
        logger.error("%s", e)
        sys.exit(1)

    selection = FilterSelection(
        author=args.author,
        tags=set(args.tag or []),
    )
    for name in args.mentioned or []:
        selection.toggle_mentioned(ALL_MENTIONS if name == "all" else name)

    visible = apply_filters(comments, selection)
    if selection.is_active:
        logger.info("Comments (%d of %d)", len(visible), len(comments))
    else:
        logger.info("Comments (%d)", len(comments))

    for comment in visible:
        logger.info(
            "#%d [%s] %s: %s",
            comment.id,
            format_timestamp(comment.timestamp),
            comment.user_name,
            display_text(comment.content),
        )


def cmd_facets(args):
    """Show the authors, tags and mentioned users available for filtering."""
    from .filters import facet_options
    from .parser import tag_color
    from .store import CommentApiError

    client = make_client(args)
    try:
        comments = client.list_comments(args.scrim)
    except CommentApiError as e:
        logger.error("%s", e)
        sys.exit(1)

    options = facet_options(comments)
    logger.info("Authors: %s", ", ".join(options.users) or "-")
    logger.info(
        "Tags: %s",
        ", ".join(f"#{tag} ({tag_color(tag)})" for tag in options.tags) or "-",
    )
    logger.info("Mentioned: %s", ", ".join(options.mentioned) or "-")


def cmd_users(args):
    """List the roster members that can be mentioned."""
    from .store import CommentApiError

    client = make_client(args)
    try:
        users = client.list_mention_users()
    except CommentApiError as e:
        logger.error("%s", e)
        sys.exit(1)

    logger.info("Mentionable users (%d)", len(users))
    for user in users:
        logger.info("  %s (%s)", user.name, user.avatar_url or user.initials)


def cmd_add(args):
    """Add a comment at a playback time."""
    from .store import CommentApiError

    timestamp = parse_time_arg(args.time)
    content = args.content.strip()
    if not content:
        logger.error("Comment content is empty")
        sys.exit(1)

    client = make_client(args, require_token=True)
    try:
        comment = client.create_comment(args.scrim, timestamp, content)
    except CommentApiError as e:
        logger.error("%s", e)
        sys.exit(1)

    logger.info("Added comment #%d", comment.id)


def cmd_edit(args):
    """Edit a comment's content and/or time."""
    from .store import CommentApiError

    timestamp = parse_time_arg(args.time)
    content = args.content.strip() if args.content is not None else None
    if content is None and timestamp is None:
        logger.error("Nothing to change. Use --content and/or --time.")
        sys.exit(1)
    if content is not None and not content:
        logger.error("Comment content is empty")
        sys.exit(1)

    client = make_client(args, require_token=True)
    try:
        client.update_comment(args.id, content=content, timestamp=timestamp)
    except CommentApiError as e:
        logger.error("%s", e)
        sys.exit(1)

    logger.info("Updated comment #%d", args.id)


def cmd_delete(args):
    """Delete a comment."""
    from .store import CommentApiError

    client = make_client(args, require_token=True)
    try:
        client.delete_comment(args.id)
    except CommentApiError as e:
        logger.error("%s", e)
        sys.exit(1)

    logger.info("Deleted comment #%d", args.id)


def cmd_preview(args):
    """Replay the highlight engine for a scrim on a simulated player."""
    client = make_client(args)
    ok = asyncio.run(
        run_preview(
            client,
            args.scrim,
            start=parse_time_arg(args.start) or 0,
            end=parse_time_arg(args.end),
            pause_at=parse_time_arg(args.pause_at),
            pause_for=args.pause_for,
        )
    )
    if not ok:
        sys.exit(1)


async def run_preview(
    client,
    scrim_id: str,
    start: int = 0,
    end: Optional[int] = None,
    pause_at: Optional[int] = None,
    pause_for: float = 5.0,
) -> bool:
    """
    Play a scrim's comments back on a virtual clock and log highlight changes.

    Returns:
        False if the comments could not be loaded
    """
    from .config import HIGHLIGHT_EXPIRY_SECONDS, MATCH_WINDOW_SECONDS
    from .parser import format_timestamp
    from .playback import SimulatedPlayer
    from .scheduling import ManualScheduler
    from .session import ReviewSession

    scheduler = ManualScheduler()
    session = ReviewSession(scrim_id, client=client, scheduler=scheduler, notify=logger.error)
    await session.open()
    if session.store.error:
        session.close()
        return False

    comments = session.comments
    if end is None:
        last = max((c.timestamp for c in comments), default=start)
        end = last + MATCH_WINDOW_SECONDS + int(HIGHLIGHT_EXPIRY_SECONDS) + 1

    def report(comment_id):
        when = format_timestamp(session.state.current_time)
        if comment_id is None:
            logger.info("[%s] highlight cleared", when)
            return
        comment = session.store.get(comment_id)
        logger.info("[%s] %s: %s", when, comment.user_name, display_text(comment.content))

    session.controller.on_change(report)

    player = SimulatedPlayer(scheduler, position=start)
    player.state_listeners.append(session.player_state_changed)
    session.player_ready(player)
    player.play()

    logger.info("Previewing %d comments from %s to %s", len(comments),
                format_timestamp(start), format_timestamp(end))
    paused = False
    try:
        while player.get_current_time() < end:
            if pause_at is not None and not paused and player.get_current_time() >= pause_at:
                paused = True
                player.pause()
                logger.info("[%s] paused for %gs", format_timestamp(pause_at), pause_for)
                scheduler.advance(pause_for)
                player.play()
            scheduler.advance(1)
    finally:
        session.close()
    return True


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="vodreview",
        description="vodreview - Timestamped comments for scrim VODs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vodreview setup                              # Show configuration
  vodreview list 42                            # All comments on scrim 42
  vodreview list 42 --tag retake --author Kai  # Filtered list
  vodreview list 42 --mentioned all            # Comments that mention anyone
  vodreview facets 42                          # Authors, tags and mentions
  vodreview users                              # Who can be mentioned
  vodreview add 42 1:23 "<@Kai> late #rotate"  # Comment at 1:23
  vodreview edit 7 --content "fixed text"      # Edit a comment
  vodreview delete 7                           # Delete a comment
  vodreview preview 42 --pause-at 1:30         # Replay highlights

Environment:
  VODREVIEW_API_URL    Bot API URL (default: http://localhost:3001)
  VODREVIEW_TOKEN      Bearer token for add/edit/delete
        """,
    )
    parser.add_argument("--version", action="version", version=f"vodreview {__version__}")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug output"
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Show only errors"
    )
    parser.add_argument(
        "--log-file", metavar="FILE", help="Write logs to file"
    )
    parser.add_argument(
        "--api-url", help="Bot API URL (overrides VODREVIEW_API_URL)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Setup command
    subparsers.add_parser("setup", help="Show configuration")

    # List command
    list_parser = subparsers.add_parser("list", help="List comments on a scrim")
    list_parser.add_argument("scrim", help="Scrim ID")
    list_parser.add_argument("--author", "-a", help="Only comments by this user")
    list_parser.add_argument(
        "--tag", "-t", action="append", help="Only comments with this tag (can be repeated)"
    )
    list_parser.add_argument(
        "--mentioned",
        "-m",
        action="append",
        help="Only comments mentioning this user, or 'all' for any mention (can be repeated)",
    )

    # Facets command
    facets_parser = subparsers.add_parser("facets", help="Show filter values for a scrim")
    facets_parser.add_argument("scrim", help="Scrim ID")

    # Users command
    subparsers.add_parser("users", help="List users that can be mentioned")

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a comment")
    add_parser.add_argument("scrim", help="Scrim ID")
    add_parser.add_argument("time", help="Playback time (M:SS, H:MM:SS or seconds)")
    add_parser.add_argument("content", help="Comment text (<@Name> mentions, #tags)")

    # Edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a comment")
    edit_parser.add_argument("id", type=int, help="Comment ID")
    edit_parser.add_argument("--content", "-c", help="New comment text")
    edit_parser.add_argument("--time", help="New playback time")

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a comment")
    delete_parser.add_argument("id", type=int, help="Comment ID")

    # Preview command
    preview_parser = subparsers.add_parser("preview", help="Replay highlights on a simulated player")
    preview_parser.add_argument("scrim", help="Scrim ID")
    preview_parser.add_argument("--start", help="Start time (default: 0:00)")
    preview_parser.add_argument("--end", help="End time (default: after the last comment)")
    preview_parser.add_argument("--pause-at", help="Pause playback once at this time")
    preview_parser.add_argument(
        "--pause-for", type=float, default=5.0, help="Pause length in seconds (default: 5)"
    )

    args = parser.parse_args()

    setup_logging(
        verbose=getattr(args, "verbose", False),
        quiet=getattr(args, "quiet", False),
        log_file=getattr(args, "log_file", None),
    )

    if args.command is None:
        parser.print_help()
        return

    commands = {
        "setup": cmd_setup,
        "list": cmd_list,
        "facets": cmd_facets,
        "users": cmd_users,
        "add": cmd_add,
        "edit": cmd_edit,
        "delete": cmd_delete,
        "preview": cmd_preview,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
