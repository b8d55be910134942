"""Interaction package utilities."""

from interaction.narration import (
    NarrationConfig,
    NarrationOutcome,
    NarrationPriority,
    NarrationQueue,
    NarrationState,
    QueueEntry,
)
from interaction.narration_hal import FakeNarrationEngine, NarrationEngine

__all__ = [
    "FakeNarrationEngine",
    "NarrationConfig",
    "NarrationEngine",
    "NarrationOutcome",
    "NarrationPriority",
    "NarrationQueue",
    "NarrationState",
    "QueueEntry",
]
