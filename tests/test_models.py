"""Tests for nightscout_bot/models.py module."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from nightscout_bot.models import (
    DEFAULT_DISPLAY_OPTIONS,
    DisplayOption,
    EndpointDescriptor,
    Entry,
    EntrySeries,
    Identity,
    RequestContext,
    Thresholds,
)

CAPTURED = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


class TestThresholds:
    """Tests for Thresholds model."""

    def test_valid_order(self):
        """Test ordered thresholds are accepted."""
        thresholds = Thresholds(low=70, bottom=80, top=170, high=250)
        assert thresholds.high == 250

    def test_equal_values_allowed(self):
        """Test equal adjacent thresholds are accepted."""
        Thresholds(low=70, bottom=70, top=180, high=180)

    def test_out_of_order(self):
        """Test unordered thresholds are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Thresholds(low=90, bottom=80, top=170, high=250)
        assert "low <= bottom <= top <= high" in str(exc_info.value)


class TestEndpointDescriptor:
    """Tests for EndpointDescriptor model."""

    def test_anonymous(self):
        """Test anonymous descriptors have no owner or token."""
        endpoint = EndpointDescriptor.anonymous("https://ns.example.org")

        assert endpoint.is_anonymous
        assert endpoint.auth_token is None
        assert endpoint.display_options == DEFAULT_DISPLAY_OPTIONS

    def test_with_owner_copies(self):
        """Test with_owner returns a new descriptor."""
        endpoint = EndpointDescriptor(base_url="https://ns.example.org", auth_token="secret")
        owner = Identity(id="1", display_name="Cas")

        owned = endpoint.with_owner(owner)

        assert owned.owner_identity == owner
        assert owned.auth_token == "secret"
        assert endpoint.is_anonymous

    def test_frozen(self):
        """Test descriptors cannot be mutated."""
        endpoint = EndpointDescriptor.anonymous("https://ns.example.org")

        with pytest.raises(ValidationError):
            endpoint.base_url = "https://other.example.org"

    def test_token_hidden_from_repr(self):
        """Test the token does not leak into logs."""
        endpoint = EndpointDescriptor(base_url="https://ns.example.org", auth_token="secret")
        assert "secret" not in repr(endpoint)

    def test_display_options_parsed(self):
        """Test display options accept their string values."""
        endpoint = EndpointDescriptor(base_url="https://ns.example.org", display_options=["trend"])
        assert endpoint.display_options == frozenset({DisplayOption.TREND})


class TestEntries:
    """Tests for Entry and EntrySeries models."""

    def test_trend_code_bounds(self):
        """Test trend codes outside the arrow table are rejected."""
        with pytest.raises(ValidationError):
            Entry(mgdl=100, captured_at=CAPTURED, trend_code=10)

    def test_latest_and_previous(self):
        """Test series accessors."""
        series = EntrySeries(entries=[
            Entry(mgdl=100, captured_at=CAPTURED),
            Entry(mgdl=90, captured_at=CAPTURED),
        ])

        assert series.latest.mgdl == 100
        assert series.previous.mgdl == 90

    def test_single_entry_has_no_previous(self):
        """Test a single entry has no previous."""
        series = EntrySeries(entries=[Entry(mgdl=100, captured_at=CAPTURED)])
        assert series.previous is None


class TestRequestContext:
    """Tests for RequestContext model."""

    def test_tokens_split_on_whitespace(self):
        """Test arguments are split on whitespace."""
        context = RequestContext(invoker=Identity(id="1", display_name="Cas"), arguments="  a   b ")
        assert context.tokens == ["a", "b"]

    def test_empty_arguments(self):
        """Test empty arguments yield no tokens."""
        context = RequestContext(invoker=Identity(id="1", display_name="Cas"))
        assert context.tokens == []
