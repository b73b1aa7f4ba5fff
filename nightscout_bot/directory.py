"""
In-memory user directory and channel preferences loaded from YAML.

Example file::

    users:
      - id: "1001"
        display_name: Cas
        handle: cas
        avatar_url: https://cdn.example.com/cas.png
        scopes: ["guild-1"]
        nightscout:
          url: https://casscout.herokuapp.com
          token: cas-token
          public: {"guild-1": true}
          display: [title, trend, iob, cob, avatar]
    channels:
      short: ["channel-7"]
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import yaml

from .models import DEFAULT_DISPLAY_OPTIONS, DisplayOption, EndpointDescriptor, Identity
from .resolver import normalize_nightscout_url

logger = logging.getLogger(__name__)


@dataclass
class DirectoryRecord:
    """A stored user with their scopes and optional Nightscout settings."""
    identity: Identity
    scopes: FrozenSet[str] = frozenset()
    url: Optional[str] = None
    token: Optional[str] = None
    public: Dict[str, bool] = field(default_factory=dict)
    display: FrozenSet[DisplayOption] = DEFAULT_DISPLAY_OPTIONS

    def endpoint(self) -> Optional[EndpointDescriptor]:
        """Build a fresh descriptor for this record, or None without a URL."""
        if not self.url:
            return None
        return EndpointDescriptor(
            base_url=self.url,
            auth_token=self.token,
            owner_identity=self.identity,
            visibility_by_scope=dict(self.public),
            display_options=self.display,
        )


class YamlUserDirectory:
    """Read-only ``UserDirectory`` backed by a list of records."""

    def __init__(self, records: List[DirectoryRecord]):
        self._records: Dict[str, DirectoryRecord] = {
            record.identity.id: record for record in records
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "YamlUserDirectory":
        """
        Build a directory from parsed YAML data.

        Raises:
            ValueError: If a user entry is missing its id or display options are unknown
        """
        records = []
        for raw in data.get("users") or []:
            if "id" not in raw:
                raise ValueError(f"Directory user entry is missing an id: {raw!r}")

            identity = Identity(
                id=str(raw["id"]),
                display_name=raw.get("display_name") or str(raw["id"]),
                handle=raw.get("handle"),
                avatar_url=raw.get("avatar_url"),
            )
            nightscout = raw.get("nightscout") or {}
            url = nightscout.get("url")
            display = nightscout.get("display")

            records.append(DirectoryRecord(
                identity=identity,
                scopes=frozenset(str(scope) for scope in raw.get("scopes") or []),
                url=normalize_nightscout_url(url) if url else None,
                token=nightscout.get("token"),
                public={str(k): bool(v) for k, v in (nightscout.get("public") or {}).items()},
                display=(
                    frozenset(DisplayOption(option) for option in display)
                    if display is not None
                    else DEFAULT_DISPLAY_OPTIONS
                ),
            ))

        return cls(records)

    @classmethod
    def from_yaml(cls, path: str) -> "YamlUserDirectory":
        """
        Load a directory from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        data = _load_yaml(path)
        directory = cls.from_dict(data)
        logger.info("Loaded user directory", extra={"path": path, "users": len(directory._records)})
        return directory

    def get_identity(self, identity_id: str) -> Optional[Identity]:
        record = self._records.get(identity_id)
        return record.identity if record else None

    def get_stored_endpoint(self, identity_id: str) -> Optional[EndpointDescriptor]:
        record = self._records.get(identity_id)
        return record.endpoint() if record else None

    def find_users_for_url(self, url: str) -> List[Tuple[str, EndpointDescriptor]]:
        matches = []
        for identity_id, record in self._records.items():
            endpoint = record.endpoint()
            if endpoint is not None and endpoint.base_url == url:
                matches.append((identity_id, endpoint))
        return matches

    def find_member_by_name(self, name: str, scope: Optional[str]) -> Optional[Identity]:
        if scope is None:
            return None
        wanted = name.casefold()
        for record in self._records.values():
            if scope not in record.scopes:
                continue
            names = [record.identity.display_name, record.identity.handle]
            if any(candidate and candidate.casefold() == wanted for candidate in names):
                return record.identity
        return None

    def is_mutual_scope(self, identity_id: str, scope: Optional[str]) -> bool:
        record = self._records.get(identity_id)
        return record is not None and scope is not None and scope in record.scopes


class YamlChannelPreferences:
    """Read-only ``ChannelPreferences`` backed by a set of short channels."""

    def __init__(self, short_channels: FrozenSet[str] = frozenset()):
        self._short_channels = short_channels

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "YamlChannelPreferences":
        channels = data.get("channels") or {}
        return cls(frozenset(str(channel) for channel in channels.get("short") or []))

    @classmethod
    def from_yaml(cls, path: str) -> "YamlChannelPreferences":
        return cls.from_dict(_load_yaml(path))

    def has_short_display_preference(self, channel_id: str) -> bool:
        return channel_id in self._short_channels


def _load_yaml(path: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Directory file not found: {path}")

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}
