"""pyttsx3-backed narration engine with a background speech worker."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
import queue
import threading
from typing import Any

from core.logging import logger
from interaction.narration_hal import CompletionCallback


@dataclass(frozen=True)
class _Utterance:
    text: str
    locale: str
    on_complete: CompletionCallback
    generation: int


class Pyttsx3NarrationEngine:
    """Speak on a dedicated thread; pyttsx3's ``runAndWait`` blocks."""

    def __init__(self, rate: int = 170, driver_name: str | None = None) -> None:
        if importlib.util.find_spec("pyttsx3") is None:
            raise RuntimeError("pyttsx3 is required for Pyttsx3NarrationEngine")

        self._pyttsx3 = importlib.import_module("pyttsx3")
        self._rate = rate
        self._driver_name = driver_name
        self._q: queue.Queue[_Utterance | None] = queue.Queue()
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._generation = 0
        self._voices: list[Any] = []
        self._voices_ready = threading.Event()
        self._engine: Any = None

        self._t = threading.Thread(target=self._worker, name="narration-worker", daemon=True)
        self._t.start()
        self._voices_ready.wait(timeout=5.0)

    def speak(self, text: str, locale: str, on_complete: CompletionCallback) -> None:
        with self._lock:
            generation = self._generation
        self._q.put_nowait(_Utterance(text, locale, on_complete, generation))

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
        dropped = 0
        try:
            while True:
                item = self._q.get_nowait()
                if item is None:
                    self._q.put_nowait(None)
                    break
                dropped += 1
        except queue.Empty:
            pass
        engine = self._engine
        if engine is not None:
            try:
                engine.stop()
            except Exception:
                logger.exception("[TTS] Failed to stop engine")
        if dropped:
            logger.debug("[TTS] Dropped %s queued utterances on cancel", dropped)

    def has_voice(self, locale: str) -> bool:
        return self._select_voice(locale) is not None

    def close(self) -> None:
        self._stop.set()
        self.cancel()
        try:
            self._q.put_nowait(None)
        except queue.Full:
            pass
        self._t.join(timeout=2.0)

    def _worker(self) -> None:
        try:
            if self._driver_name:
                self._engine = self._pyttsx3.init(self._driver_name)
            else:
                self._engine = self._pyttsx3.init()
            self._engine.setProperty("rate", self._rate)
            self._voices = list(self._engine.getProperty("voices") or [])
            logger.info("[TTS] Engine ready with %s voices", len(self._voices))
        except Exception:
            logger.exception("[TTS] Engine initialization failed")
            self._engine = None
        finally:
            self._voices_ready.set()

        while not self._stop.is_set():
            try:
                item = self._q.get(timeout=0.1)
            except queue.Empty:
                continue
            if item is None:
                break
            with self._lock:
                stale = item.generation != self._generation
            if stale:
                continue
            self._say(item)

    def _say(self, item: _Utterance) -> None:
        error: BaseException | None = None
        try:
            if self._engine is None:
                raise RuntimeError("pyttsx3 engine unavailable")
            voice = self._select_voice(item.locale)
            if voice is not None:
                self._engine.setProperty("voice", voice.id)
            self._engine.say(item.text)
            self._engine.runAndWait()
        except Exception as exc:
            logger.exception("[TTS] Speech failed")
            error = exc
        try:
            item.on_complete(error)
        except Exception:
            logger.exception("[TTS] Completion callback failed")

    def _select_voice(self, locale: str) -> Any | None:
        """Pick a voice whose language tags or name match ``locale``.

        An exact region match (``en-in``) wins over a bare language match
        (``en``); Tamil voices are also recognised by name.
        """

        wanted = locale.lower().replace("_", "-")
        language = wanted.split("-")[0]
        language_match = None
        for voice in self._voices:
            tags = [_decode_lang(tag) for tag in (getattr(voice, "languages", None) or [])]
            voice_id = str(getattr(voice, "id", "")).lower()
            name = str(getattr(voice, "name", "")).lower()
            if any(tag == wanted for tag in tags) or wanted in voice_id:
                return voice
            if language_match is None and (
                any(tag.split("-")[0] == language for tag in tags)
                or (language == "ta" and "tamil" in name)
            ):
                language_match = voice
        return language_match


def _decode_lang(tag: Any) -> str:
    if isinstance(tag, bytes):
        # espeak prefixes language tags with a priority byte.
        if tag[:1] < b" ":
            tag = tag[1:]
        tag = tag.decode("utf-8", errors="ignore")
    return str(tag).lower().replace("_", "-")
