"""
Scanner exceptions
"""


class ScannerError(Exception):
    """Base class for errors that prevent a scan from starting"""


class MalformedRangeError(ScannerError, ValueError):
    """An input range is not a valid IPv4 CIDR block"""

    def __init__(self, range_text: str, reason: str = ""):
        self.range_text = range_text
        self.reason = reason
        message = f"Invalid range: {range_text!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class RangeTooLargeError(ScannerError):
    """Expansion would produce more addresses than allowed"""

    def __init__(self, requested: int, limit: int, range_text: str = ""):
        self.requested = requested
        self.limit = limit
        self.range_text = range_text
        source = f" ({range_text})" if range_text else ""
        super().__init__(
            f"Range expansion of {requested} addresses{source} exceeds the limit of {limit}"
        )


class EmptyWorklistError(ScannerError):
    """Range expansion produced no addresses at all"""

    def __init__(self, message: str = "No addresses to scan"):
        super().__init__(message)
