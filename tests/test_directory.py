"""Tests for nightscout_bot/directory.py module."""

import pytest
import yaml

from conftest import DIRECTORY_DATA
from nightscout_bot.directory import YamlChannelPreferences, YamlUserDirectory
from nightscout_bot.models import DEFAULT_DISPLAY_OPTIONS, DisplayOption


class TestYamlUserDirectory:
    """Tests for YamlUserDirectory class."""

    def test_stored_endpoint(self, directory, cas):
        """Test stored endpoints carry owner, token and visibility."""
        endpoint = directory.get_stored_endpoint("1001")

        assert endpoint.base_url == "https://casscout.herokuapp.com"
        assert endpoint.auth_token == "cas-token"
        assert endpoint.owner_identity == cas
        assert endpoint.visibility_by_scope == {"guild-1": True}
        assert endpoint.display_options == DEFAULT_DISPLAY_OPTIONS

    def test_stored_url_normalized(self, directory):
        """Test stored URLs are normalized on load."""
        assert directory.get_stored_endpoint("1002").base_url == "https://dana.example.org"

    def test_display_options_loaded(self, directory):
        """Test per-user display options are loaded."""
        endpoint = directory.get_stored_endpoint("1002")
        assert endpoint.display_options == frozenset({DisplayOption.TREND, DisplayOption.SIMPLE})

    def test_no_endpoint(self, directory):
        """Test users without a URL and unknown users have no endpoint."""
        assert directory.get_stored_endpoint("1004") is None
        assert directory.get_stored_endpoint("9999") is None

    def test_endpoints_are_fresh(self, directory):
        """Test each lookup builds a new descriptor."""
        first = directory.get_stored_endpoint("1001")
        second = directory.get_stored_endpoint("1001")

        assert first == second
        assert first is not second

    def test_find_users_for_url(self, directory):
        """Test URL matches return id and endpoint pairs."""
        matches = directory.find_users_for_url("https://casscout.herokuapp.com")

        assert [identity_id for identity_id, _ in matches] == ["1001"]
        assert directory.find_users_for_url("https://nobody.example.org") == []

    def test_find_member_by_name(self, directory, cas, dana):
        """Test names match display name or handle, case-insensitively."""
        assert directory.find_member_by_name("CAS", "guild-1") == cas
        assert directory.find_member_by_name("dana_g", "guild-1") == dana

    def test_find_member_requires_scope(self, directory):
        """Test only members of the scope are found."""
        assert directory.find_member_by_name("Eli", "guild-1") is None
        assert directory.find_member_by_name("Cas", None) is None

    def test_is_mutual_scope(self, directory):
        """Test scope membership checks."""
        assert directory.is_mutual_scope("1003", "guild-2")
        assert not directory.is_mutual_scope("1003", "guild-1")
        assert not directory.is_mutual_scope("9999", "guild-1")

    def test_missing_id(self):
        """Test user entries need an id."""
        with pytest.raises(ValueError):
            YamlUserDirectory.from_dict({"users": [{"display_name": "Nobody"}]})

    def test_unknown_display_option(self):
        """Test unknown display options are rejected."""
        data = {"users": [{"id": "1", "nightscout": {"url": "https://a.example.org", "display": ["sparkles"]}}]}

        with pytest.raises(ValueError):
            YamlUserDirectory.from_dict(data)

    def test_from_yaml(self, tmp_path, cas):
        """Test loading from a YAML file."""
        path = tmp_path / "users.yaml"
        path.write_text(yaml.safe_dump(DIRECTORY_DATA))

        directory = YamlUserDirectory.from_yaml(str(path))

        assert directory.get_identity("1001") == cas

    def test_from_yaml_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            YamlUserDirectory.from_yaml(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        """Test an empty file yields an empty directory."""
        path = tmp_path / "users.yaml"
        path.write_text("")

        assert YamlUserDirectory.from_yaml(str(path)).get_identity("1001") is None


class TestYamlChannelPreferences:
    """Tests for YamlChannelPreferences class."""

    def test_short_channels(self, preferences):
        """Test listed channels prefer the short display."""
        assert preferences.has_short_display_preference("channel-short")
        assert not preferences.has_short_display_preference("channel-1")

    def test_defaults_to_long(self):
        """Test no channels prefer the short display by default."""
        assert not YamlChannelPreferences().has_short_display_preference("channel-short")
