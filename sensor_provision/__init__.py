"""sensor-provision: platform resolution and installation of the security sensor."""

__version__ = "0.1.0"

from sensor_provision.config import Config
from sensor_provision.host import HostDescriptor, OSKind, SensorTier, TableGeneration, TargetMode

__all__ = [
    "__version__",
    "Config",
    "HostDescriptor",
    "OSKind",
    "SensorTier",
    "TableGeneration",
    "TargetMode",
]
