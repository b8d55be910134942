"""Thin narration engine HAL plus a fake backend for tests and offline runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol

CompletionCallback = Callable[[BaseException | None], None]


class NarrationEngine(Protocol):
    """Fire-and-forget speech output."""

    def speak(self, text: str, locale: str, on_complete: CompletionCallback) -> None:
        """Start speaking ``text``; call ``on_complete(error)`` when done."""

    def cancel(self) -> None:
        """Stop the in-flight utterance, if any."""

    def has_voice(self, locale: str) -> bool:
        """Return whether a voice for ``locale`` is installed."""


@dataclass
class FakeNarrationEngine:
    """Fake engine that records utterances and completes them on demand."""

    voices: set[str] = field(default_factory=lambda: {"en", "en-IN"})
    auto_complete: bool = False
    fail_with: BaseException | None = None
    spoken: list[tuple[str, str]] = field(default_factory=list)
    cancel_count: int = 0
    _pending: list[CompletionCallback] = field(default_factory=list, repr=False)

    def speak(self, text: str, locale: str, on_complete: CompletionCallback) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.spoken.append((text, locale))
        if self.auto_complete:
            on_complete(None)
        else:
            self._pending.append(on_complete)

    def cancel(self) -> None:
        self.cancel_count += 1

    def has_voice(self, locale: str) -> bool:
        return locale in self.voices or locale.split("-")[0] in self.voices

    def finish(self, error: BaseException | None = None) -> bool:
        """Complete the oldest outstanding utterance; return False if none."""

        if not self._pending:
            return False
        callback = self._pending.pop(0)
        callback(error)
        return True

    @property
    def last_text(self) -> str | None:
        return self.spoken[-1][0] if self.spoken else None
