"""Tests for the participant directory and the pair model."""

import pytest

from duoledger.identity import ParticipantDirectory, UnknownParticipantError
from duoledger.models import Participant, ParticipantPair

from helpers import ALICE, BOB, MALLORY


class TestParticipantPair:
    """The pair model."""

    def test_ids_are_lowercased(self):
        participant = Participant(id="  Alice@Example.com ")
        assert participant.id == ALICE

    def test_same_person_twice_is_rejected(self):
        with pytest.raises(ValueError):
            ParticipantPair(
                first=Participant(id=ALICE),
                second=Participant(id="ALICE@example.com"),
            )

    def test_other(self, pair):
        assert pair.other(ALICE).id == BOB
        assert pair.other(BOB).id == ALICE

    def test_other_rejects_outsider(self, pair):
        with pytest.raises(KeyError):
            pair.other(MALLORY)

    def test_iteration_order(self, pair):
        assert [p.id for p in pair] == [ALICE, BOB]

    def test_label_falls_back_to_id(self):
        assert Participant(id=ALICE).label == ALICE
        assert Participant(id=ALICE, display_name="Alice").label == "Alice"


class TestParticipantDirectory:
    """Allow-list of two."""

    def test_authorize_member(self, directory):
        assert directory.authorize("BOB@example.com").id == BOB

    @pytest.mark.parametrize("identity", [MALLORY, "", None])
    def test_authorize_outsider(self, directory, identity):
        with pytest.raises(UnknownParticipantError):
            directory.authorize(identity)

    def test_error_names_identity(self, directory):
        with pytest.raises(UnknownParticipantError) as exc_info:
            directory.authorize("Mallory@Example.com")
        assert exc_info.value.identity == MALLORY

    def test_partner_of(self, directory):
        assert directory.partner_of(ALICE).id == BOB

    def test_from_settings(self, settings):
        directory = ParticipantDirectory.from_settings(settings)

        assert directory.pair.ids == (ALICE, BOB)
        assert directory.pair.first.display_name == "Alice"
        assert directory.pair.first.avatar_url.startswith("https://ui-avatars.com/")
        assert directory.is_allowed(BOB)
        assert not directory.is_allowed(MALLORY)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
