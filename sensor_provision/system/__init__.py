"""Host fact detection."""

from sensor_provision.system.detector import HostDetector

__all__ = ["HostDetector"]
