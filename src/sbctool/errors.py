"""Exception types shared across sbctool."""


class SbcToolError(Exception):
    """Base class for sbctool errors."""


class ResolutionError(SbcToolError):
    """Raised when a target address or its credentials cannot be determined."""


class AuthError(SbcToolError):
    """Raised when every SSH authentication method has been exhausted."""


class TransportError(SbcToolError):
    """Raised when a single remote command or stream read fails."""


class ParseError(SbcToolError):
    """Raised when command output does not have the expected shape."""
