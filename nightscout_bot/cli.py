"""
Command line front end for one-off Nightscout lookups.

Usage:
    nightscout-bot --directory users.yaml --invoker 1001 --scope guild-1
    nightscout-bot --directory users.yaml --invoker 1001 --scope guild-1 casscout
    nightscout-bot --invoker 1001 https://example.herokuapp.com
"""

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import Settings, get_settings
from .constants import DEFAULT_LOG_FORMAT, REACTION_EMOJI
from .directory import YamlChannelPreferences, YamlUserDirectory
from .exceptions import ClassifiedError
from .models import LookupResult, ScopeType
from .nightscout_client import NightscoutClient
from .pipeline import GlucosePipeline, make_context, render_failure

logger = logging.getLogger(__name__)


# =============================================================================
# CLI
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Look up the latest reading of a Nightscout site",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Your own stored site:
  nightscout-bot --directory users.yaml --invoker 1001 --scope guild-1

  # Another member, by mention or by name:
  nightscout-bot --directory users.yaml --invoker 1001 --scope guild-1 --mention 1002
  nightscout-bot --directory users.yaml --invoker 1001 --scope guild-1 Cas

  # Any site by URL or herokuapp name:
  nightscout-bot --invoker 1001 https://casscout.herokuapp.com
        """,
    )

    parser.add_argument(
        "arguments",
        nargs="*",
        help="Lookup arguments: a URL, a member name or a herokuapp site name",
    )
    parser.add_argument(
        "--directory", "-d",
        help="Path to YAML user directory (default: NIGHTSCOUT_DIRECTORY_FILE)",
    )
    parser.add_argument(
        "--invoker",
        required=True,
        help="Id of the user running the lookup",
    )
    parser.add_argument(
        "--mention",
        action="append",
        default=[],
        help="Id of a mentioned user (repeatable)",
    )
    parser.add_argument(
        "--everyone",
        action="store_true",
        help="Mark the request as mentioning everyone",
    )
    parser.add_argument(
        "--scope",
        help="Guild/group id the request is made in",
    )
    parser.add_argument(
        "--scope-type",
        choices=[scope_type.value for scope_type in ScopeType],
        default=ScopeType.TEXT.value,
        help="Kind of channel the request is made in (default: text)",
    )
    parser.add_argument(
        "--channel",
        help="Channel id, used for the short display preference",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser


def build_pipeline(directory_file: Optional[str], settings: Settings) -> GlucosePipeline:
    """
    Build a pipeline from an optional YAML directory file.

    Raises:
        FileNotFoundError: If the directory file doesn't exist
        ValueError: If the directory file is invalid
    """
    if directory_file:
        logger.info(f"Loading directory from {directory_file}")
        directory = YamlUserDirectory.from_yaml(directory_file)
        preferences = YamlChannelPreferences.from_yaml(directory_file)
    else:
        directory = YamlUserDirectory([])
        preferences = YamlChannelPreferences()

    return GlucosePipeline(directory, preferences, NightscoutClient(settings), settings)


def format_result(result: LookupResult) -> List[str]:
    """Render a lookup result as plain text lines."""
    presentation = result.presentation
    lines = []

    if presentation.banner:
        lines.append(presentation.banner)
    for field in presentation.fields:
        lines.append(f"{field.label}: {field.value}")
    lines.append(f"zone: {presentation.zone.value}")
    lines.append(f"{presentation.footer} {presentation.timestamp.isoformat()}")
    if presentation.avatar_url:
        lines.append(f"avatar: {presentation.avatar_url}")
    if result.reactions:
        emoji = " ".join(REACTION_EMOJI[trigger.value] for trigger in sorted(result.reactions, key=lambda t: t.value))
        lines.append(f"reactions: {emoji}")

    return lines


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=DEFAULT_LOG_FORMAT,
    )

    try:
        settings = get_settings()
        pipeline = build_pipeline(args.directory or settings.directory_file, settings)
    except (ValueError, ValidationError, FileNotFoundError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    context = make_context(
        pipeline.directory,
        args.invoker,
        arguments=" ".join(args.arguments),
        mentioned_ids=args.mention,
        mentions_everyone=args.everyone,
        scope_id=args.scope,
        scope_type=ScopeType(args.scope_type),
        channel_id=args.channel,
    )

    outcome = pipeline.handle_request(context)

    if isinstance(outcome, ClassifiedError):
        notice = render_failure(outcome, context.invoker, settings.command_prefix)
        print(notice.message or f"Lookup failed ({notice.error})", file=sys.stderr)
        return 1

    for line in format_result(outcome):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
