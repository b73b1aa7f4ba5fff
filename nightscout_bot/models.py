"""
Pydantic models for identities, endpoints, readings and presentation.

Every model handed across a component boundary is frozen: it is built
once per request and never mutated afterwards.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import TREND_ARROWS


# =============================================================================
# Enumerations
# =============================================================================

class DisplayOption(str, Enum):
    """Per-user display flags stored alongside a Nightscout URL."""

    TITLE = "title"
    TREND = "trend"
    IOB = "iob"
    COB = "cob"
    AVATAR = "avatar"
    SIMPLE = "simple"


DEFAULT_DISPLAY_OPTIONS: FrozenSet[DisplayOption] = frozenset({
    DisplayOption.TITLE,
    DisplayOption.TREND,
    DisplayOption.IOB,
    DisplayOption.COB,
    DisplayOption.AVATAR,
})


class ScopeType(str, Enum):
    """Kind of channel a request arrived from."""

    TEXT = "text"
    VOICE = "voice"
    PRIVATE = "private"
    OTHER = "other"


class Zone(str, Enum):
    """Classification of a glucose value against the site thresholds."""

    DANGER = "danger"
    WARN = "warn"
    OK = "ok"


class ReactionTrigger(str, Enum):
    """Reactions fired by literal glucose values."""

    SIXTY_NINE = "sixtyNine"
    ONE_HUNDRED = "oneHundred"


# =============================================================================
# Identities and Endpoints
# =============================================================================

class Identity(BaseModel):
    """A user handle supplied by the directory."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    handle: Optional[str] = None
    avatar_url: Optional[str] = None


class EndpointDescriptor(BaseModel):
    """
    A resolved Nightscout site.

    Anonymous when ``owner_identity`` is None; anonymous descriptors never
    carry a token.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    auth_token: Optional[str] = Field(default=None, repr=False)
    owner_identity: Optional[Identity] = None
    visibility_by_scope: Dict[str, bool] = Field(default_factory=dict)
    display_options: FrozenSet[DisplayOption] = DEFAULT_DISPLAY_OPTIONS

    @property
    def is_anonymous(self) -> bool:
        return self.owner_identity is None

    def with_owner(self, identity: Identity) -> "EndpointDescriptor":
        """Return a copy of this descriptor owned by ``identity``."""
        return self.model_copy(update={"owner_identity": identity})

    @classmethod
    def anonymous(cls, base_url: str) -> "EndpointDescriptor":
        """Build an ownerless descriptor for ``base_url``."""
        return cls(base_url=base_url)


class RequestContext(BaseModel):
    """Everything the pipeline knows about one lookup request."""

    model_config = ConfigDict(frozen=True)

    invoker: Identity
    arguments: str = ""
    mentioned: List[Identity] = Field(default_factory=list)
    mentions_everyone: bool = False
    scope_id: Optional[str] = None
    scope_type: ScopeType = ScopeType.TEXT
    channel_id: Optional[str] = None

    @property
    def tokens(self) -> List[str]:
        return self.arguments.split()


# =============================================================================
# Remote Payloads
# =============================================================================

class Thresholds(BaseModel):
    """Site alarm thresholds in mg/dL."""

    model_config = ConfigDict(frozen=True)

    low: float
    bottom: float
    top: float
    high: float

    @model_validator(mode='after')
    def validate_order(self) -> 'Thresholds':
        """Validate that thresholds are in logical order."""
        if not (self.low <= self.bottom <= self.top <= self.high):
            raise ValueError(
                f"thresholds must satisfy low <= bottom <= top <= high, got "
                f"{self.low}, {self.bottom}, {self.top}, {self.high}"
            )
        return self


class SiteSettings(BaseModel):
    """Settings product of a Nightscout site."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    thresholds: Thresholds


class Entry(BaseModel):
    """A single sensor glucose entry."""

    model_config = ConfigDict(frozen=True)

    mgdl: int
    captured_at: datetime
    trend_code: int = Field(default=0, ge=0, le=len(TREND_ARROWS) - 1)


class EntrySeries(BaseModel):
    """Most recent entries, newest first."""

    model_config = ConfigDict(frozen=True)

    entries: List[Entry]

    @property
    def latest(self) -> Entry:
        return self.entries[0]

    @property
    def previous(self) -> Optional[Entry]:
        return self.entries[1] if len(self.entries) > 1 else None


class DeviceStatus(BaseModel):
    """Insulin and carbs on board as reported by the pebble endpoint."""

    model_config = ConfigDict(frozen=True)

    insulin_on_board: float = 0.0
    carbs_on_board: int = 0


# =============================================================================
# Readings
# =============================================================================

class Delta(BaseModel):
    """Magnitude of the change since the previous entry."""

    model_config = ConfigDict(frozen=True)

    mmol: float
    mgdl: int


class Reading(BaseModel):
    """One assembled snapshot of a Nightscout site."""

    model_config = ConfigDict(frozen=True)

    captured_at: datetime
    glucose_mmol: float
    glucose_mgdl: int
    delta: Optional[Delta] = None
    delta_is_negative: bool = False
    trend_code: int = Field(default=0, ge=0, le=len(TREND_ARROWS) - 1)
    insulin_on_board: float = 0.0
    carbs_on_board: int = 0
    thresholds: Thresholds
    title: str = ""

    @property
    def trend_arrow(self) -> str:
        return TREND_ARROWS[self.trend_code]


# =============================================================================
# Presentation
# =============================================================================

class PresentationField(BaseModel):
    """A labeled value in the rendered reply."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: str
    inline: bool = True


class PresentationModel(BaseModel):
    """Fully populated reply handed to the rendering adapter."""

    model_config = ConfigDict(frozen=True)

    fields: List[PresentationField]
    zone: Zone
    color: List[int]
    stale: bool = False
    banner: Optional[str] = None
    avatar_url: Optional[str] = None
    simple: bool = False
    timestamp: datetime
    footer: str
    footer_icon_url: Optional[str] = None

    def field(self, label: str) -> Optional[PresentationField]:
        """Return the first field with ``label``, if any."""
        for entry in self.fields:
            if entry.label == label:
                return entry
        return None


class LookupResult(BaseModel):
    """Successful outcome of a lookup request."""

    model_config = ConfigDict(frozen=True)

    presentation: PresentationModel
    reactions: FrozenSet[ReactionTrigger] = frozenset()
    endpoint: EndpointDescriptor


class FailureNotice(BaseModel):
    """How a failed lookup should be acknowledged to the user."""

    model_config = ConfigDict(frozen=True)

    error: str
    message: Optional[str] = None
    react_error: bool = False


class HealthResponse(BaseModel):
    """Response model for the service root endpoint."""

    status: str
    service: str
