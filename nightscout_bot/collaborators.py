"""
Interfaces of the collaborators injected into the lookup pipeline.
"""

from typing import List, Optional, Protocol, Tuple

from .models import DeviceStatus, EndpointDescriptor, EntrySeries, Identity, SiteSettings


class UserDirectory(Protocol):
    """Read-only access to stored users and their Nightscout endpoints."""

    def get_identity(self, identity_id: str) -> Optional[Identity]:
        ...

    def get_stored_endpoint(self, identity_id: str) -> Optional[EndpointDescriptor]:
        """Return the stored endpoint, or None when no URL is stored."""
        ...

    def find_users_for_url(self, url: str) -> List[Tuple[str, EndpointDescriptor]]:
        ...

    def find_member_by_name(self, name: str, scope: Optional[str]) -> Optional[Identity]:
        """Case-insensitive match on display name or handle within ``scope``."""
        ...

    def is_mutual_scope(self, identity_id: str, scope: Optional[str]) -> bool:
        ...


class ChannelPreferences(Protocol):
    """Per-channel display preferences."""

    def has_short_display_preference(self, channel_id: str) -> bool:
        ...


class RemoteGlucoseService(Protocol):
    """
    Fetches the three data products of a Nightscout site.

    Implementations raise ``RemoteFetchError`` subclasses, or let transport
    errors propagate, on failure.
    """

    def fetch_settings(self, endpoint: EndpointDescriptor) -> SiteSettings:
        ...

    def fetch_entries(self, endpoint: EndpointDescriptor) -> EntrySeries:
        ...

    def fetch_device_status(self, endpoint: EndpointDescriptor) -> DeviceStatus:
        ...
