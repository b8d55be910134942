"""Guidance package exports."""

from guidance.phrases import PhraseTable
from guidance.policy import AnnouncementCandidate, AnnouncementPolicy, PolicyConfig

__all__ = ["AnnouncementCandidate", "AnnouncementPolicy", "PhraseTable", "PolicyConfig"]
