"""
Resolution of a lookup request into the Nightscout endpoint to query.

The resolver never touches the network. It reads the user directory,
applies the per-scope privacy gate and returns either an
``EndpointDescriptor`` or a resolution-stage ``ClassifiedError``.
"""

import logging
import re
from typing import TYPE_CHECKING, Union
from urllib.parse import urlsplit, urlunsplit

from .config import Settings
from .exceptions import ClassifiedError
from .models import EndpointDescriptor, Identity, RequestContext
from .privacy import is_visible

if TYPE_CHECKING:
    from .collaborators import UserDirectory

logger = logging.getLogger(__name__)

# Anything that looks like an absolute URL is treated as one
URL_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)

API_SUFFIX = "/api/v1"

ResolveResult = Union[EndpointDescriptor, ClassifiedError]


def normalize_nightscout_url(url: str) -> str:
    """
    Validate and normalize a Nightscout base URL.

    The scheme and host are lower-cased; query, fragment, trailing slashes
    and a trailing ``/api/v1`` are dropped.

    Raises:
        ValueError: If the URL is not an http(s) URL with a host
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    if scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme '{parts.scheme}', expected http or https")
    if not parts.hostname:
        raise ValueError(f"URL '{url}' does not contain a host")

    netloc = parts.hostname.lower()
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"

    path = parts.path.rstrip("/")
    if path.lower().endswith(API_SUFFIX):
        path = path[:-len(API_SUFFIX)].rstrip("/")

    return urlunsplit((scheme, netloc, path, "", ""))


class SourceResolver:
    """
    Decides which Nightscout endpoint a request refers to.

    Rules, first match wins:
    - more than one mention, or mentioning everyone, is rejected
    - exactly one mention looks up that user's stored endpoint
    - no arguments looks up the invoker's own stored endpoint
    - a URL is looked up among stored endpoints, anonymized unless its
      owner shares the scope and is public there
    - anything else is a member name, falling back to a herokuapp host
    """

    def __init__(self, directory: "UserDirectory", settings: Settings):
        self.directory = directory
        self.settings = settings

    def resolve(self, context: RequestContext) -> ResolveResult:
        if len(context.mentioned) > 1:
            return ClassifiedError.too_many_mentions()
        if context.mentions_everyone:
            return ClassifiedError.everyone_mentioned()

        if len(context.mentioned) == 1:
            return self._resolve_mentioned(context, context.mentioned[0])

        tokens = context.tokens
        if not tokens:
            return self._resolve_self(context)

        first = tokens[0]
        if URL_PATTERN.match(first):
            return self._resolve_url(context, first)

        return self._resolve_name(context, first)

    def _resolve_self(self, context: RequestContext) -> ResolveResult:
        endpoint = self.directory.get_stored_endpoint(context.invoker.id)
        if endpoint is None:
            return ClassifiedError.unconfigured()

        return endpoint.with_owner(context.invoker)

    def _resolve_mentioned(self, context: RequestContext, identity: Identity) -> ResolveResult:
        endpoint = self.directory.get_stored_endpoint(identity.id)
        if endpoint is None:
            return ClassifiedError.no_configured_url(identity)

        return self._gate(context, identity, endpoint)

    def _resolve_url(self, context: RequestContext, raw_url: str) -> ResolveResult:
        try:
            url = normalize_nightscout_url(raw_url)
        except ValueError as e:
            return ClassifiedError.invalid_argument(str(e))

        matches = self.directory.find_users_for_url(url)
        if len(matches) != 1:
            logger.debug("URL is not owned by a single user", extra={"matches": len(matches)})
            return EndpointDescriptor.anonymous(url)

        identity_id, endpoint = matches[0]
        owner = endpoint.owner_identity or self.directory.get_identity(identity_id)
        is_self = identity_id == context.invoker.id

        # Owners outside this scope stay anonymous, whatever their privacy flags
        if owner is None or not (is_self or self.directory.is_mutual_scope(identity_id, context.scope_id)):
            return EndpointDescriptor.anonymous(url)

        return self._gate(context, owner, endpoint)

    def _resolve_name(self, context: RequestContext, name: str) -> ResolveResult:
        member = self.directory.find_member_by_name(name, context.scope_id)
        if member is not None:
            endpoint = self.directory.get_stored_endpoint(member.id)
            if endpoint is not None:
                return self._gate(context, member, endpoint)

        # Unreachable fallback hosts surface later as HostUnreachable
        return EndpointDescriptor.anonymous(self.settings.fallback_url(name.lower()))

    def _gate(
        self,
        context: RequestContext,
        identity: Identity,
        endpoint: EndpointDescriptor,
    ) -> ResolveResult:
        is_self = identity.id == context.invoker.id
        if not is_visible(endpoint.visibility_by_scope, context.scope_id, is_self):
            logger.info(
                "Nightscout data is private in this scope",
                extra={"identity_id": identity.id, "scope_id": context.scope_id},
            )
            return ClassifiedError.private_data(identity)

        return endpoint.with_owner(identity)
