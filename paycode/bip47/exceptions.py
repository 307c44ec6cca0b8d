"""Errors raised by the payment-code engine."""


class Bip47Error(Exception):
    """Base class for payment-code errors."""
    pass


class InvalidKeyError(Bip47Error, ValueError):
    """A key is out of range, off the curve, or derivation produced an
    unusable key."""
    pass


class MalformedPaymentCodeError(Bip47Error, ValueError):
    """A payload or text form is not a well-formed payment code."""
    pass


class InvalidIndexError(Bip47Error, ValueError):
    """A derivation index is negative or not a non-hardened index."""
    pass


class InvalidPaymentCodeError(Bip47Error, ValueError):
    """A value that should be a payment code is not one."""
    pass


class NotANotificationError(Bip47Error):
    """A transaction does not carry a decodable notification."""
    pass


class PersistenceError(Bip47Error):
    """Channel state could not be written or read back."""
    pass


class RescanSkipped(Bip47Error):
    """A rescan request was dropped because its start height lies beyond
    the current chain tip. Only ever logged."""

    def __init__(self, height, current_height):
        super().__init__("Rescan from %d skipped: chain height is %d." % (height, current_height))
        self.height = height
        self.current_height = current_height
