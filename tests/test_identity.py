"""Tests for party identity resolution."""

import logging

import pytest

from shared_ledger.config import Settings
from shared_ledger.exceptions import ConfigurationError
from shared_ledger.identity import PartyDirectory, provision_from_display_names
from shared_ledger.models import Party


class TestPartyDirectory:
    @pytest.fixture
    def directory(self):
        return PartyDirectory({"uid-alex": Party.A, "uid-sam": Party.B})

    def test_resolve_known_users(self, directory):
        assert directory.resolve("uid-alex") is Party.A
        assert directory.resolve("uid-sam") is Party.B

    def test_unknown_user_falls_back(self, directory, caplog):
        with caplog.at_level(logging.WARNING):
            assert directory.resolve("uid-stranger") is Party.B

        assert "uid-stranger" in caplog.text

    def test_missing_user_falls_back(self, directory):
        assert directory.resolve(None) is Party.B

    def test_configurable_fallback(self):
        directory = PartyDirectory({}, fallback=Party.A)
        assert directory.resolve("anyone") is Party.A

    def test_user_id_for(self, directory):
        assert directory.user_id_for(Party.A) == "uid-alex"
        assert directory.user_id_for(Party.B) == "uid-sam"

    def test_user_id_for_unassigned_party(self):
        directory = PartyDirectory({"uid-alex": Party.A})

        with pytest.raises(ConfigurationError, match="PARTY_B_USER_ID"):
            directory.user_id_for(Party.B)

    def test_party_assigned_twice_rejected(self):
        with pytest.raises(ConfigurationError):
            PartyDirectory({"uid-1": Party.A, "uid-2": Party.A})

    def test_from_settings(self, tmp_path):
        settings = Settings(
            database_path=tmp_path / "ledger.db",
            party_a_user_id="uid-alex",
            party_b_user_id="uid-sam",
            fallback_party=Party.A,
        )

        directory = PartyDirectory.from_settings(settings)

        assert directory.resolve("uid-sam") is Party.B
        assert directory.resolve("nobody") is Party.A


class TestProvisionFromDisplayNames:
    def test_marker_match_becomes_party_a(self):
        mapping = provision_from_display_names(
            [("uid-1", "Sam Smith"), ("uid-2", "Alex Jones")], marker="alex"
        )

        assert mapping == {"uid-1": Party.B, "uid-2": Party.A}

    def test_neither_matches(self):
        with pytest.raises(ConfigurationError, match="matched 0"):
            provision_from_display_names(
                [("uid-1", "Sam"), ("uid-2", "Robin")], marker="alex"
            )

    def test_both_match(self):
        with pytest.raises(ConfigurationError, match="matched 2"):
            provision_from_display_names(
                [("uid-1", "Alex A"), ("uid-2", "Alexandra B")], marker="alex"
            )

    def test_requires_two_profiles(self):
        with pytest.raises(ConfigurationError, match="exactly 2 profiles"):
            provision_from_display_names([("uid-1", "Alex")], marker="alex")

    def test_empty_marker(self):
        with pytest.raises(ConfigurationError):
            provision_from_display_names(
                [("uid-1", "Alex"), ("uid-2", "Sam")], marker="  "
            )

    def test_missing_display_name_never_matches(self):
        mapping = provision_from_display_names(
            [("uid-1", None), ("uid-2", "Alex")], marker="alex"
        )
        assert mapping["uid-2"] is Party.A
