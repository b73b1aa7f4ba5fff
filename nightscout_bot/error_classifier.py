"""
Maps fetch and transport failures into the lookup error taxonomy.
"""

import json
from typing import Optional

import requests
from pydantic import ValidationError

from .exceptions import (
    ClassifiedError,
    ErrorKind,
    MalformedRemoteDataError,
    NoRemoteDataError,
    RemoteFetchError,
    RemoteStatusError,
)
from .models import Identity


def classify_exception(
    error: BaseException,
    owner: Optional[Identity] = None,
    url: Optional[str] = None,
) -> ClassifiedError:
    """
    Classify a failure raised while fetching from a Nightscout site.

    Args:
        error: The exception raised by the remote service
        owner: Owner of the endpoint being fetched, if any
        url: Base URL of the endpoint, kept for diagnostics

    Returns:
        ClassifiedError for the failure; never raises
    """
    if isinstance(error, RemoteFetchError) and error.url:
        url = error.url

    if isinstance(error, NoRemoteDataError):
        kind = ErrorKind.NO_REMOTE_DATA
    elif isinstance(error, (MalformedRemoteDataError, ValidationError, json.JSONDecodeError)):
        kind = ErrorKind.MALFORMED_REMOTE_DATA
    elif isinstance(error, RemoteStatusError):
        return ClassifiedError(
            ErrorKind.REMOTE_STATUS,
            identity=owner,
            status_code=error.status_code,
            url=url,
            cause=error,
        )
    elif isinstance(error, requests.exceptions.HTTPError) and error.response is not None:
        return ClassifiedError(
            ErrorKind.REMOTE_STATUS,
            identity=owner,
            status_code=error.response.status_code,
            url=url,
            cause=error,
        )
    elif isinstance(error, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        kind = ErrorKind.HOST_UNREACHABLE
    elif isinstance(error, requests.exceptions.InvalidURL):
        kind = ErrorKind.HOST_UNREACHABLE
    else:
        kind = ErrorKind.UNEXPECTED

    return ClassifiedError(kind, identity=owner, url=url, cause=error)
