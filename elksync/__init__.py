"""ELK-BLEDOM screen and audio sync for Bluetooth LE RGB LED controllers."""

__version__ = "1.0.0"
