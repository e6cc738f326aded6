"""Build and unpack firmware packages, their firmware.xml manifests, option parsing and response packets."""

__version__ = "0.1.0"
__all__ = ["arguments", "firmware_info", "naming", "packaging", "packets"]