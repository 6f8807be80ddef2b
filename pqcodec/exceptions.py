"""
Exceptions Module

Error taxonomy shared by every codec component
"""


class PQCodecError(Exception):
    """Base class for all codec errors"""


class ConfigurationError(PQCodecError, ValueError):
    """Invalid codec configuration or input shape, raised before any training work"""


class PreconditionError(PQCodecError, RuntimeError):
    """Operation called on a codec or table that is not ready for it"""


class CalibrationError(PQCodecError, ValueError):
    """Bayesian calibration cannot be performed or does not match the scoring mode"""


class RegistryError(PQCodecError, KeyError):
    """Unknown, released or duplicate LUT registry handle"""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class ModelFormatError(PQCodecError, ValueError):
    """Persisted model files are missing or inconsistent"""
