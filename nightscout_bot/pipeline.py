"""
Lookup pipeline: resolution, aggregation and presentation.

``GlucosePipeline.handle_request`` is the single entry point used by the
HTTP API and the CLI. Collaborators are injected; the pipeline keeps no
state between requests.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, Union

from .aggregator import DataAggregator
from .collaborators import ChannelPreferences, RemoteGlucoseService, UserDirectory
from .config import Settings
from .exceptions import ClassifiedError, ErrorKind
from .models import (
    EndpointDescriptor,
    FailureNotice,
    Identity,
    LookupResult,
    RequestContext,
    ScopeType,
)
from .presentation import build_presentation, resolve_short_mode
from .resolver import SourceResolver

logger = logging.getLogger(__name__)

LookupOutcome = Union[LookupResult, ClassifiedError]


class GlucosePipeline:
    """Resolves, fetches and presents one Nightscout lookup per call."""

    def __init__(
        self,
        directory: UserDirectory,
        preferences: ChannelPreferences,
        service: RemoteGlucoseService,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.directory = directory
        self.preferences = preferences
        self.settings = settings
        self.resolver = SourceResolver(directory, settings)
        self.aggregator = DataAggregator(service)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def resolve(self, context: RequestContext) -> Union[EndpointDescriptor, ClassifiedError]:
        return self.resolver.resolve(context)

    def handle_request(self, context: RequestContext) -> LookupOutcome:
        """
        Run one lookup.

        Returns:
            LookupResult on success, otherwise the ClassifiedError that ended
            the request. Resolution errors are returned before any fetch.
        """
        endpoint = self.resolver.resolve(context)
        if isinstance(endpoint, ClassifiedError):
            logger.info(
                "Lookup rejected during resolution",
                extra={"error_kind": endpoint.kind.value, "invoker_id": context.invoker.id},
            )
            return endpoint

        reading = self.aggregator.aggregate(endpoint)
        if isinstance(reading, ClassifiedError):
            return reading

        short_mode = resolve_short_mode(
            endpoint.display_options,
            context.scope_type,
            context.channel_id,
            self.preferences,
        )
        owner = endpoint.owner_identity
        presentation, reactions = build_presentation(
            reading,
            endpoint.display_options,
            short_mode,
            avatar_url=owner.avatar_url if owner else None,
            now=self._clock(),
            stale_after_minutes=self.settings.stale_after_minutes,
        )

        return LookupResult(presentation=presentation, reactions=reactions, endpoint=endpoint)


def make_context(
    directory: UserDirectory,
    invoker_id: str,
    arguments: str = "",
    mentioned_ids: Sequence[str] = (),
    mentions_everyone: bool = False,
    scope_id: Optional[str] = None,
    scope_type: ScopeType = ScopeType.TEXT,
    channel_id: Optional[str] = None,
) -> RequestContext:
    """Build a request context from raw ids, looking identities up in the directory."""
    def lookup(identity_id: str) -> Identity:
        return directory.get_identity(identity_id) or Identity(id=identity_id, display_name=identity_id)

    return RequestContext(
        invoker=lookup(invoker_id),
        arguments=arguments,
        mentioned=[lookup(identity_id) for identity_id in mentioned_ids],
        mentions_everyone=mentions_everyone,
        scope_id=scope_id,
        scope_type=scope_type,
        channel_id=channel_id,
    )


# =============================================================================
# Failure Rendering
# =============================================================================

def render_failure(
    error: ClassifiedError,
    invoker: Identity,
    command_prefix: str = "nightscout",
) -> FailureNotice:
    """
    Turn a classified error into the acknowledgment shown to the user.

    Expected transient conditions only get an error reaction; details of
    unreachable hosts and unexpected errors stay in the logs.
    """
    kind = error.kind
    name = error.identity.display_name if error.identity else None

    if kind == ErrorKind.UNCONFIGURED:
        message = f"Please set your Nightscout hostname using `{command_prefix} set <hostname>`"
    elif kind == ErrorKind.NO_CONFIGURED_URL:
        message = f"{name or 'User'} does not have a configured Nightscout URL."
    elif kind == ErrorKind.TOO_MANY_MENTIONS:
        message = "Too many mentioned users."
    elif kind == ErrorKind.EVERYONE_MENTIONED:
        message = "Cannot handle mentioning everyone."
    elif kind == ErrorKind.PRIVATE_DATA:
        message = f"Nightscout data for {name} is private" if name else "Nightscout data is private"
    elif kind == ErrorKind.INVALID_ARGUMENT:
        message = f"Error: {error.reason}"
    elif kind == ErrorKind.REMOTE_STATUS:
        message = _status_message(error, invoker, command_prefix)
    else:
        # NoRemoteData, MalformedRemoteData, HostUnreachable, Unexpected
        return FailureNotice(error=kind.value, react_error=True)

    return FailureNotice(error=kind.value, message=message)


def _status_message(error: ClassifiedError, invoker: Identity, command_prefix: str) -> str:
    if error.status_code != 401:
        logger.warning("Connection status %s from Nightscout", error.status_code, extra={"url": error.url})
        return "Could not connect to Nightscout instance."

    if error.identity is None:
        return "Nightscout data is unreadable due to missing token."
    if error.identity.id == invoker.id:
        return (
            "Could not authenticate to Nightscout. Please set an authentication token with "
            f"`{command_prefix} token <token>`"
        )
    return f"Nightscout data for {error.identity.display_name} is unreadable due to missing token."


# =============================================================================
# Dependency Injection
# =============================================================================

_pipeline: Optional[GlucosePipeline] = None


def get_pipeline() -> GlucosePipeline:
    """
    Get the singleton pipeline configured from settings.

    Returns:
        GlucosePipeline backed by the YAML directory and the Nightscout client
    """
    global _pipeline
    if _pipeline is None:
        from .config import get_settings
        from .directory import YamlChannelPreferences, YamlUserDirectory
        from .nightscout_client import NightscoutClient

        settings = get_settings()
        if settings.directory_file:
            directory = YamlUserDirectory.from_yaml(settings.directory_file)
            preferences = YamlChannelPreferences.from_yaml(settings.directory_file)
        else:
            logger.warning("No directory file configured; only anonymous lookups will resolve")
            directory = YamlUserDirectory([])
            preferences = YamlChannelPreferences()

        _pipeline = GlucosePipeline(directory, preferences, NightscoutClient(settings), settings)
    return _pipeline


def reset_pipeline() -> None:
    """Reset the singleton pipeline (useful for testing)."""
    global _pipeline
    _pipeline = None
