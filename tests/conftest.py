"""Shared fixtures: a fixed pair, ledger settings and a pinned clock."""

import pytest

from duoledger.config import LedgerSettings
from duoledger.identity import ParticipantDirectory
from duoledger.ledger import CategoryCatalog, LedgerEngine
from duoledger.models import Participant, ParticipantPair
from duoledger.validation import RecordNormalizer

from helpers import ALICE, BOB, TODAY


@pytest.fixture
def pair() -> ParticipantPair:
    return ParticipantPair(
        first=Participant(id=ALICE, display_name="Alice"),
        second=Participant(id=BOB, display_name="Bob"),
    )


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings(
        participant_a_email=ALICE,
        participant_a_name="Alice",
        participant_b_email=BOB,
        participant_b_name="Bob",
    )


@pytest.fixture
def directory(pair) -> ParticipantDirectory:
    return ParticipantDirectory(pair)


@pytest.fixture
def engine(pair) -> LedgerEngine:
    return LedgerEngine(pair)


@pytest.fixture
def catalog(settings) -> CategoryCatalog:
    return CategoryCatalog.from_settings(settings)


@pytest.fixture
def normalizer(pair, catalog, settings) -> RecordNormalizer:
    return RecordNormalizer(pair, catalog=catalog, settings=settings, today=lambda: TODAY)
