"""Diagnostics routines for the narration subsystem."""

from __future__ import annotations

import importlib.util

from config import ConfigController
from core.logging import logger
from diagnostics.models import DiagnosticResult, DiagnosticStatus
from interaction.narration import NarrationConfig
from interaction.narration_hal import NarrationEngine


def probe(
    engine: NarrationEngine | None = None,
    config: NarrationConfig | None = None,
) -> DiagnosticResult:
    """Run a narration probe to validate speech output and voices.

    Args:
        engine: Optional engine (e.g. ``FakeNarrationEngine``) for offline runs.
        config: Optional narration settings; loaded from config when omitted.

    Returns:
        Diagnostic result indicating narration readiness.
    """

    name = "narration"
    owned_engine = None

    try:
        if config is None:
            config = NarrationConfig.from_config(ConfigController.get_instance().get_config())

        if engine is None:
            if importlib.util.find_spec("pyttsx3") is None:
                return DiagnosticResult(
                    name=name,
                    status=DiagnosticStatus.FAIL,
                    details="pyttsx3 is not installed",
                )
            from interaction.tts import Pyttsx3NarrationEngine

            owned_engine = Pyttsx3NarrationEngine()
            engine = owned_engine

        missing = [
            voice_locale
            for voice_locale in sorted(set(config.voice_locales.values()))
            if not engine.has_voice(voice_locale)
        ]
        if not engine.has_voice(config.fallback_locale):
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"No voice for fallback locale {config.fallback_locale}",
            )
        if missing:
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.WARN,
                details=f"Missing voices: {', '.join(missing)} (fallback notice will be spoken)",
            )
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.PASS,
            details=f"Voices available: {', '.join(sorted(set(config.voice_locales.values())))}",
        )
    except Exception as exc:  # noqa: BLE001 - probe should not raise
        logger.exception("[NARRATION DIAG] Probe failed")
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Narration probe failed: {exc}",
        )
    finally:
        if owned_engine is not None:
            owned_engine.close()
