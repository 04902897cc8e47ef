"""Exception hierarchy shared by soundmatch modules."""
from __future__ import annotations


class SoundMatchError(Exception):
    """Base class for all soundmatch errors."""


class ConfigurationError(SoundMatchError):
    """No usable reference sample is configured."""


class EmptyAudioError(ConfigurationError):
    """Reference audio is empty, silent or shorter than one frame."""


class DecodeError(SoundMatchError):
    """A WAV file could not be parsed."""


class DeviceError(SoundMatchError):
    """Capture hardware is unavailable or misconfigured."""


class SessionActiveError(SoundMatchError):
    """Another matching session already owns the analysis state."""
