"""
Participant Directory

The identity collaborator supplies who is acting. This module turns that
identity into one of the two configured Participants, or rejects it.

CRITICAL: Any third identity is rejected HERE, before it reaches the
normalizer or the ledger. The engine assumes exactly two participants.
"""

from typing import Optional

from duoledger.config import LedgerSettings, get_settings
from duoledger.models.records import Participant, ParticipantPair, normalize_identity


class UnknownParticipantError(Exception):
    """An identity outside the configured pair tried to use the ledger."""

    def __init__(self, identity: Optional[str]):
        self.identity = identity
        super().__init__(
            f"'{identity}' is not one of the two participants of this ledger"
        )


class ParticipantDirectory:
    """
    Allow-list of exactly two participants.

    Built from LedgerSettings by default; tests pass an explicit pair.
    """

    def __init__(self, pair: ParticipantPair):
        self._pair = pair

    @classmethod
    def from_settings(
        cls,
        settings: Optional[LedgerSettings] = None,
    ) -> "ParticipantDirectory":
        settings = settings or get_settings().ledger
        pair = ParticipantPair(
            first=Participant(
                id=settings.participant_a_email,
                display_name=settings.participant_a_name,
                avatar_url=settings.participant_a_avatar,
            ),
            second=Participant(
                id=settings.participant_b_email,
                display_name=settings.participant_b_name,
                avatar_url=settings.participant_b_avatar,
            ),
        )
        return cls(pair)

    @property
    def pair(self) -> ParticipantPair:
        return self._pair

    def is_allowed(self, identity: Optional[str]) -> bool:
        return self._pair.contains(identity)

    def authorize(self, identity: Optional[str]) -> Participant:
        """
        Resolve an identity to a Participant.

        Raises:
            UnknownParticipantError: identity is not one of the pair
        """
        if not self.is_allowed(identity):
            raise UnknownParticipantError(normalize_identity(identity) or identity)
        return self._pair.get(identity)

    def partner_of(self, identity: str) -> Participant:
        """The other participant. Raises UnknownParticipantError for outsiders."""
        self.authorize(identity)
        return self._pair.other(identity)
