"""Command-line entry point for the VisionAid guidance runtime."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
import sys

from config import ConfigController, section
from core.logging import enable_file_logging, logger, set_level


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Run the camera-to-speech guidance pipeline."
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Run diagnostics probes and exit.",
    )
    parser.add_argument("--locale", type=str, help="Announcement locale (en or ta).")
    parser.add_argument(
        "--muted",
        action="store_true",
        help="Start with announcements muted.",
    )
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file.")
    return parser.parse_args(argv)


def run_diagnostics_cli() -> int:
    from config.diagnostics import probe as config_probe
    from core.diagnostics import probe as core_probe
    from diagnostics.runner import format_results, run_diagnostics
    from hardware.diagnostics import probe as hardware_probe
    from interaction.diagnostics import probe as narration_probe

    results = run_diagnostics(
        [
            config_probe,
            core_probe,
            narration_probe,
            hardware_probe,
        ]
    )
    print(format_results(results))
    return 1 if any(result.failed for result in results) else 0


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    config_controller = ConfigController.get_instance()
    config = config_controller.get_config()
    logging_cfg = section(config, "logging")
    set_level(str(logging_cfg.get("level", "INFO")))
    args = parse_args(argv)
    if args.diagnostics:
        return run_diagnostics_cli()

    log_file = args.log_file or logging_cfg.get("file")
    if log_file:
        enable_file_logging(Path(log_file))
        logger.info("Writing logs to %s", log_file)

    from core.pipeline import GuidancePipeline
    from hardware.camera_source import CameraSettings, Picamera2FrameSource
    from hardware.imx500_detector import Imx500Detector, Imx500DetectorSettings
    from interaction.tts import Pyttsx3NarrationEngine

    narration_cfg = section(config, "narration")
    try:
        logger.info("Starting speech engine...")
        engine = Pyttsx3NarrationEngine(
            rate=int(narration_cfg.get("rate", 170)),
            driver_name=narration_cfg.get("driver") or None,
        )
    except Exception as exc:
        logger.exception("Speech engine startup failed: %s", exc)
        return 1

    try:
        logger.info("Starting camera...")
        source = Picamera2FrameSource(CameraSettings.from_config(config))
        source.start()
    except Exception as exc:
        logger.exception("Camera startup failed: %s", exc)
        engine.close()
        return 1

    detector = Imx500Detector(
        model_stack=source.model_stack,
        camera=source.camera,
        settings=Imx500DetectorSettings.from_config(config),
    )
    pipeline = GuidancePipeline.from_config(config, source, detector, engine)
    if args.locale:
        pipeline.set_locale(args.locale)
    if args.muted:
        pipeline.set_muted(True)

    try:
        asyncio.run(pipeline.run())
    except KeyboardInterrupt:
        logger.info("Program terminated by user")
    except Exception as exc:
        logger.exception("An unexpected error occurred: %s", exc)
    finally:
        pipeline.stop()
        source.stop()
        engine.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
