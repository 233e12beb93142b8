#!/usr/bin/env python3
"""
elk-sync entry point.

Connects to an ELK-BLEDOM controller over BLE and either runs screen sync,
plays a software effect, or serves the HTTP control API:

    python main.py --address AA:BB:CC:DD:EE:FF --sync
    python main.py --address AA:BB:CC:DD:EE:FF --effect rainbow --speed 0.05
    python main.py --address AA:BB:CC:DD:EE:FF --web --port 8000
"""

import argparse
import json
import logging
import os
import signal
import sys
import threading
import time
from typing import Dict, Optional

from elksync.consumer.beat_detector import BeatDetector, BeatDetectorConfig
from elksync.consumer.ble_sink import BleDeviceSink, BleSinkConfig
from elksync.core.led_controller import ControllerSettings, LedController
from elksync.producer.frame_source import FrameSourceConfig, ScreenFrameSource
from elksync.producer.screen_sync import SyncConfig
from elksync.utils.logging_utils import create_app_time_formatter, set_app_start_time

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "config", "config.json")


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Console gets INFO+ (WARNING+ once a log file is set); the log file gets everything at the chosen level."""
    set_app_start_time(time.time())

    level = logging.DEBUG if debug else logging.INFO
    formatter = create_app_time_formatter()

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.INFO if log_file is None else logging.WARNING)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Third-party loggers are chatty at INFO
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("fastapi").setLevel(logging.WARNING)
    logging.getLogger("bleak").setLevel(logging.WARNING)


def load_config_file(config_path: Optional[str] = None) -> Dict:
    """Read the JSON settings file; missing or unreadable files yield {}."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, "r") as f:
                loaded_config = json.load(f)
            # "comments" and null entries fall back to defaults
            config = {k: v for k, v in loaded_config.items() if k != "comments" and v is not None}
            logger.info(f"Loaded configuration from {config_path}")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config file {config_path}: {e}")
    else:
        logger.warning(f"Config file not found: {config_path}")
    return config


def build_beat_detector(config: Dict) -> Optional[BeatDetector]:
    """Beat detector fed by the default (or configured) input device."""
    # Loads PortAudio
    from elksync.consumer.audio_capture import AudioCapture, AudioConfig, HighpassConfig

    audio_config = AudioConfig(
        device_name=config.get("audio_device"),
        highpass=HighpassConfig() if config.get("audio_highpass", True) else None,
    )
    capture = AudioCapture(audio_config)
    return BeatDetector(BeatDetectorConfig(), audio_capture=capture, sample_rate=audio_config.sample_rate)


def build_controller(args: argparse.Namespace, config: Dict) -> LedController:
    sink = BleDeviceSink(BleSinkConfig(address=args.address))

    frame_config = FrameSourceConfig(capture_width=config.get("capture_width", FrameSourceConfig.capture_width))
    sync_config = SyncConfig(
        target_fps=config.get("target_fps", SyncConfig.target_fps),
        black_threshold=config.get("black_threshold", SyncConfig.black_threshold),
        audio_sync=args.audio_sync,
    )

    beat_detector = None
    if args.audio_sync:
        try:
            beat_detector = build_beat_detector(config)
        except OSError as e:
            logger.warning(f"Audio capture unavailable, continuing without beat sync: {e}")

    return LedController(
        sink=sink,
        frame_source_factory=lambda: ScreenFrameSource(frame_config),
        beat_detector=beat_detector,
        sync_config=sync_config,
        settings=ControllerSettings(audio_sync=args.audio_sync, effect_speed=args.speed),
    )


def main():
    """Parse arguments, connect to the controller and run until interrupted."""

    # --config is read first so the file can supply defaults for the other flags
    parser_config = argparse.ArgumentParser(add_help=False)
    parser_config.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to configuration file")
    config_args, _ = parser_config.parse_known_args()

    file_config = load_config_file(config_args.config)

    parser = argparse.ArgumentParser(description="elk-sync: screen and audio sync for ELK-BLEDOM LED strips")
    parser.add_argument("--config", default=config_args.config, help="Path to configuration file")
    parser.add_argument("--address", default=file_config.get("address"), help="BLE address of the LED controller")
    parser.add_argument("--sync", action="store_true", help="Start screen sync")
    parser.add_argument("--effect", default=None, help="Start a software effect by id (e.g. rainbow)")
    parser.add_argument(
        "--speed", type=float, default=file_config.get("effect_speed", 0.1), help="Effect delay multiplier"
    )
    parser.add_argument(
        "--no-audio", dest="audio_sync", action="store_false", help="Disable beat-modulated brightness"
    )
    parser.add_argument("--web", action="store_true", help="Serve the HTTP control API")
    parser.add_argument("--host", default=file_config.get("web_host", "127.0.0.1"), help="Web server host")
    parser.add_argument("--port", type=int, default=file_config.get("web_port", 8000), help="Web server port")
    parser.add_argument("--log-file", default=file_config.get("log_file"), help="Write the full log to this file")
    parser.add_argument("--debug", action="store_true", default=file_config.get("debug", False), help="Debug logging")
    parser.set_defaults(audio_sync=file_config.get("audio_sync", True))

    args = parser.parse_args()
    setup_logging(args.debug, args.log_file)

    if not args.address:
        parser.error("--address is required (or set 'address' in the config file)")

    controller = build_controller(args, file_config)
    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if not controller.sink.connect():
            logger.error(f"Could not connect to {args.address}")
            sys.exit(1)

        if args.effect:
            controller.start_effect(args.effect, speed=args.speed)
        elif args.sync:
            controller.start_sync()

        if args.web:
            from elksync.web.api_server import run_server

            run_server(controller, host=args.host, port=args.port)
        else:
            while not shutdown_event.wait(0.5):
                pass

    except KeyError as e:
        logger.error(f"Unknown effect: {e}")
        sys.exit(1)
    finally:
        controller.shutdown()


if __name__ == "__main__":
    main()
