"""
Exceptions raised by the pricing engine and its collaborators.
"""


class PricingError(Exception):
    """Base class for every pricing failure."""


class InvalidJobAttributes(PricingError, ValueError):
    """Job inputs are outside the range the engine accepts."""


class InvalidTierConfiguration(PricingError):
    """A tier table breaks ordering or carries a commission >= 1."""


class InvalidSystemConfiguration(PricingError):
    """A system rate table carries negative rates or out-of-range percentages."""


class ConfigurationUnavailable(PricingError):
    """No configuration could be loaded and no fallback was allowed."""


class IncrementLimitReached(PricingError):
    """The client already used every allowed price boost for a request."""
