"""Error kinds raised by the tiered interest engine."""

from typing import List


class InterestEngineError(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class ConfigurationError(InterestEngineError):
    """Tier boundaries/rates cannot describe a valid schedule."""


class ValidationError(InterestEngineError):
    """Principal, rate or duration inputs are out of range."""
