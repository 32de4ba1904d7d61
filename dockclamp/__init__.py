"""Dock detection and clamp locking controller with simulated pins and a packet link."""

__version__ = "0.1.0"