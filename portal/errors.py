"""Exceptions raised by the portal acquisition and normalization layers."""


class PortalError(Exception):
    """Raw payload could not be obtained from the portal."""


class NormalizationError(ValueError):
    """A payload contained no resolvable records at all."""
