"""
Assembles a ``Reading`` from the three data products of a Nightscout site.
"""

import logging
from typing import TYPE_CHECKING, Optional, Union

import requests

from .constants import MGDL_PER_MMOL, MMOL_PRECISION
from .error_classifier import classify_exception
from .exceptions import ClassifiedError, ErrorKind, describe_cause
from .models import Delta, DeviceStatus, EndpointDescriptor, EntrySeries, Reading, SiteSettings

if TYPE_CHECKING:
    from .collaborators import RemoteGlucoseService

logger = logging.getLogger(__name__)

AggregateResult = Union[Reading, ClassifiedError]


def mgdl_to_mmol(mgdl: float) -> float:
    """Convert mg/dL to mmol/L, rounded to one decimal."""
    return round(mgdl / MGDL_PER_MMOL, MMOL_PRECISION)


def compute_delta(entries: EntrySeries) -> Optional[Delta]:
    """Change between the two newest entries, or None with a single entry."""
    previous = entries.previous
    if previous is None:
        return None

    difference = abs(entries.latest.mgdl - previous.mgdl)
    return Delta(mmol=mgdl_to_mmol(difference), mgdl=difference)


def assemble_reading(
    settings: SiteSettings,
    entries: EntrySeries,
    status: DeviceStatus,
) -> Reading:
    """
    Build a reading from fetched data.

    mg/dL from the entries is authoritative; mmol/L values are derived.
    """
    latest = entries.latest
    previous = entries.previous

    return Reading(
        captured_at=latest.captured_at,
        glucose_mmol=mgdl_to_mmol(latest.mgdl),
        glucose_mgdl=latest.mgdl,
        delta=compute_delta(entries),
        delta_is_negative=previous is not None and latest.mgdl < previous.mgdl,
        trend_code=latest.trend_code,
        insulin_on_board=status.insulin_on_board,
        carbs_on_board=status.carbs_on_board,
        thresholds=settings.thresholds,
        title=settings.title,
    )


class DataAggregator:
    """
    Fetches settings, entries and device status in that order.

    The first failing fetch aborts the rest; its failure is classified and
    returned instead of a reading.
    """

    def __init__(self, service: "RemoteGlucoseService"):
        self.service = service

    def aggregate(self, endpoint: EndpointDescriptor) -> AggregateResult:
        try:
            settings = self.service.fetch_settings(endpoint)
            entries = self.service.fetch_entries(endpoint)
            status = self.service.fetch_device_status(endpoint)
            reading = assemble_reading(settings, entries, status)
        except Exception as e:
            error = classify_exception(e, owner=endpoint.owner_identity, url=endpoint.base_url)
            self._log_failure(error)
            return error

        logger.info(
            "Fetched Nightscout reading",
            extra={
                "url": endpoint.base_url,
                "mgdl": reading.glucose_mgdl,
                "trend_code": reading.trend_code,
                "has_delta": reading.delta is not None,
            },
        )
        return reading

    def _log_failure(self, error: ClassifiedError) -> None:
        extra = {"error_kind": error.kind.value, "url": error.url}

        if error.kind == ErrorKind.NO_REMOTE_DATA:
            logger.info("No Nightscout data", extra=extra)
        elif error.kind == ErrorKind.MALFORMED_REMOTE_DATA:
            logger.warning("Malformed Nightscout data", extra=extra)
        elif error.kind == ErrorKind.REMOTE_STATUS:
            logger.warning(
                "Nightscout connection status %s", error.status_code,
                extra={**extra, "status_code": error.status_code},
            )
        elif error.kind == ErrorKind.HOST_UNREACHABLE:
            logger.info("Nightscout host unreachable: %s", describe_cause(error.cause), extra=extra)
        elif isinstance(error.cause, requests.exceptions.RequestException):
            # requests messages embed the full URL, token included
            logger.warning(
                "Unexpected error fetching Nightscout data: %s", describe_cause(error.cause), extra=extra,
            )
        else:
            logger.warning("Unexpected error fetching Nightscout data", extra=extra, exc_info=error.cause)
