"""Android device discovery and platform-tools provisioning."""

__version__ = "0.1.0"
