"""Participant identity package."""

from duoledger.identity.directory import ParticipantDirectory, UnknownParticipantError

__all__ = ["ParticipantDirectory", "UnknownParticipantError"]
