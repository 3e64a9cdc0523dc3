"""Mapping external user ids to ledger parties.

Parties are assigned once, when the two accounts are provisioned, and looked
up from an explicit table afterwards. Display names are only consulted by the
one-off provisioning helper.
"""

import logging
from collections.abc import Iterable, Mapping

from .config import Settings
from .exceptions import ConfigurationError
from .models import Party

logger = logging.getLogger(__name__)


class PartyDirectory:
    """Lookup table from external user id to Party."""

    def __init__(self, mapping: Mapping[str, Party], fallback: Party = Party.B):
        """
        Initialize the directory.

        Args:
            mapping: user id -> party; each party may appear at most once
            fallback: Party used for ids missing from the table
        """
        parties = list(mapping.values())
        if len(parties) != len(set(parties)):
            raise ConfigurationError("Each party can be assigned to only one user")

        self.mapping = dict(mapping)
        self.fallback = fallback
        self._user_ids = {party: user_id for user_id, party in self.mapping.items()}

    @classmethod
    def from_settings(cls, settings: Settings) -> "PartyDirectory":
        """Build the directory from the configured user ids."""
        mapping = {}
        if settings.party_a_user_id:
            mapping[settings.party_a_user_id] = Party.A
        if settings.party_b_user_id:
            mapping[settings.party_b_user_id] = Party.B
        return cls(mapping, fallback=settings.fallback_party)

    def resolve(self, user_id: str | None) -> Party:
        """
        Resolve a user id to its party.

        Unknown ids resolve to the fallback party instead of failing.
        """
        party = self.mapping.get(user_id) if user_id else None
        if party is None:
            logger.warning(
                f"User {user_id!r} is not in the party directory, "
                f"using fallback party {self.fallback.value}"
            )
            return self.fallback
        return party

    def user_id_for(self, party: Party) -> str:
        """
        Get the user id assigned to a party.

        Raises:
            ConfigurationError: If the party has no user assigned
        """
        user_id = self._user_ids.get(party)
        if user_id is None:
            raise ConfigurationError(
                f"No user id configured for party {party.value}; "
                f"set PARTY_{party.value.upper()}_USER_ID"
            )
        return user_id


def provision_from_display_names(
    profiles: Iterable[tuple[str, str]], marker: str
) -> dict[str, Party]:
    """
    Assign parties from display names, once, at provisioning time.

    The profile whose display name contains the marker (case-insensitive)
    becomes party A and the other profile party B.

    Args:
        profiles: (user_id, display_name) pairs
        marker: Substring identifying party A

    Returns:
        Mapping of user id to party

    Raises:
        ConfigurationError: Unless there are exactly two profiles and exactly
            one of them matches the marker
    """
    profiles = list(profiles)
    needle = marker.strip().casefold()
    if not needle:
        raise ConfigurationError("Provisioning marker must not be empty")
    if len(profiles) != 2:
        raise ConfigurationError(
            f"Expected exactly 2 profiles to provision, found {len(profiles)}"
        )

    matches = [user_id for user_id, name in profiles if needle in (name or "").casefold()]
    if len(matches) != 1:
        raise ConfigurationError(
            f"Marker {marker!r} must match exactly one display name, "
            f"matched {len(matches)}"
        )

    party_a_id = matches[0]
    return {
        user_id: Party.A if user_id == party_a_id else Party.B
        for user_id, _name in profiles
    }
