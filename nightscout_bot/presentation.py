"""
Presentation builder for Nightscout readings.

This module turns an assembled reading plus the owner's display options
into an immutable presentation model and the set of reactions to post.
"""

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, AbstractSet, FrozenSet, List, Optional, Tuple

from .constants import (
    FOOTER_ICON_URL,
    FOOTER_TEXT,
    STALE_AFTER_MINUTES,
    STALE_BANNER_TEMPLATE,
    ZONE_COLORS,
)
from .models import (
    DisplayOption,
    PresentationField,
    PresentationModel,
    ReactionTrigger,
    Reading,
    ScopeType,
    Thresholds,
    Zone,
)

if TYPE_CHECKING:
    from .collaborators import ChannelPreferences


# =============================================================================
# Zone Functions
# =============================================================================

def classify_zone(mgdl: float, thresholds: Thresholds) -> Zone:
    """
    Classify a glucose value against the site thresholds.

    - danger: at or beyond ``high``/``low``
    - warn: between ``top`` and ``high``, or between ``low`` and ``bottom``
    - ok: everything else

    Args:
        mgdl: Glucose value in mg/dL
        thresholds: Site thresholds in mg/dL

    Returns:
        Zone of the value
    """
    if mgdl >= thresholds.high or mgdl <= thresholds.low:
        return Zone.DANGER
    elif thresholds.top <= mgdl < thresholds.high or thresholds.low < mgdl <= thresholds.bottom:
        return Zone.WARN
    else:
        return Zone.OK


def get_zone_color(zone: Zone) -> List[int]:
    """Get the RGB color for a zone as an [R, G, B] list."""
    return list(ZONE_COLORS[zone.value])


# =============================================================================
# Text Formatting Functions
# =============================================================================

def format_glucose(value: str, delta: Optional[str], negative: bool) -> str:
    """
    Format a glucose value with its delta, if there is one.

    Args:
        value: Formatted glucose value
        delta: Formatted delta magnitude, or None when absent
        negative: Whether glucose is falling

    Returns:
        Formatted string (e.g., "120 (+5)", "6.7 (-0.3)" or "120")
    """
    if delta is None:
        return value
    sign = "-" if negative else "+"
    return f"{value} ({sign}{delta})"


def build_glucose_strings(reading: Reading) -> Tuple[str, str]:
    """Return the (mmol/L, mg/dL) strings for a reading."""
    delta = reading.delta
    mmol = format_glucose(
        str(reading.glucose_mmol),
        str(delta.mmol) if delta else None,
        reading.delta_is_negative,
    )
    mgdl = format_glucose(
        str(reading.glucose_mgdl),
        str(delta.mgdl) if delta else None,
        reading.delta_is_negative,
    )
    return mmol, mgdl


# =============================================================================
# Staleness and Reactions
# =============================================================================

def is_stale(
    captured_at: datetime,
    now: Optional[datetime] = None,
    stale_after_minutes: int = STALE_AFTER_MINUTES,
) -> bool:
    """Whether a reading is older than the staleness window."""
    now = now or datetime.now(timezone.utc)
    return now - captured_at > timedelta(minutes=stale_after_minutes)


def compute_reactions(reading: Reading) -> FrozenSet[ReactionTrigger]:
    """
    Reactions fired by literal glucose values.

    69 mg/dL or 6.9 mmol/L fires ``sixtyNine``; 100 mg/dL, 5.5 mmol/L or
    10.0 mmol/L fires ``oneHundred``.
    """
    triggers = set()
    if reading.glucose_mgdl == 69 or reading.glucose_mmol == 6.9:
        triggers.add(ReactionTrigger.SIXTY_NINE)
    if (reading.glucose_mgdl == 100
            or reading.glucose_mmol == 5.5
            or reading.glucose_mmol == 10.0):
        triggers.add(ReactionTrigger.ONE_HUNDRED)
    return frozenset(triggers)


# =============================================================================
# Short Mode
# =============================================================================

def resolve_short_mode(
    display_options: AbstractSet[DisplayOption],
    scope_type: ScopeType,
    channel_id: Optional[str],
    preferences: "ChannelPreferences",
) -> bool:
    """
    Decide whether the reply hides the avatar.

    ``simple`` always forces short mode. Otherwise only text channels may
    request it through their stored preference.
    """
    if DisplayOption.SIMPLE in display_options:
        return True
    if scope_type != ScopeType.TEXT or channel_id is None:
        return False
    return preferences.has_short_display_preference(channel_id)


# =============================================================================
# Main Builder
# =============================================================================

def build_presentation(
    reading: Reading,
    display_options: AbstractSet[DisplayOption],
    short_mode: bool,
    avatar_url: Optional[str] = None,
    now: Optional[datetime] = None,
    stale_after_minutes: int = STALE_AFTER_MINUTES,
) -> Tuple[PresentationModel, FrozenSet[ReactionTrigger]]:
    """
    Build the presentation model and reactions for a reading.

    Field order: title, mmol/L, mg/dL, trend, iob, cob. Optional fields are
    included only when their display option is set, and iob/cob only when
    non-zero.

    Args:
        reading: Assembled Nightscout reading
        display_options: Display flags of the endpoint owner
        short_mode: Whether the avatar must be hidden
        avatar_url: Avatar of the endpoint owner, if any
        now: Evaluation time for staleness (defaults to current UTC time)
        stale_after_minutes: Staleness window

    Returns:
        Tuple of (PresentationModel, reaction triggers)
    """
    fields: List[PresentationField] = []

    if DisplayOption.TITLE in display_options:
        fields.append(PresentationField(label="title", value=reading.title, inline=False))

    mmol, mgdl = build_glucose_strings(reading)
    fields.append(PresentationField(label="mmol/L", value=mmol))
    fields.append(PresentationField(label="mg/dL", value=mgdl))

    if DisplayOption.TREND in display_options:
        fields.append(PresentationField(label="trend", value=reading.trend_arrow))
    if DisplayOption.IOB in display_options and reading.insulin_on_board != 0:
        fields.append(PresentationField(label="iob", value=str(reading.insulin_on_board)))
    if DisplayOption.COB in display_options and reading.carbs_on_board != 0:
        fields.append(PresentationField(label="cob", value=str(reading.carbs_on_board)))

    zone = classify_zone(reading.glucose_mgdl, reading.thresholds)
    stale = is_stale(reading.captured_at, now, stale_after_minutes)

    show_avatar = DisplayOption.AVATAR in display_options and avatar_url is not None and not short_mode

    model = PresentationModel(
        fields=fields,
        zone=zone,
        color=get_zone_color(zone),
        stale=stale,
        banner=STALE_BANNER_TEMPLATE.format(minutes=stale_after_minutes) if stale else None,
        avatar_url=avatar_url if show_avatar else None,
        simple=DisplayOption.SIMPLE in display_options,
        timestamp=reading.captured_at,
        footer=FOOTER_TEXT,
        footer_icon_url=FOOTER_ICON_URL,
    )

    return model, compute_reactions(reading)
