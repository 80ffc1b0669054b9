class SteganoError(Exception):
    """Base class for stegano-specific errors."""


# Container/stream
class MalformedContainer(SteganoError):
    pass


class TruncatedStream(SteganoError, EOFError):
    pass


class InvalidOffset(SteganoError):
    pass


# Locator
class TerminalRecordNotFound(SteganoError):
    pass


class SyntheticRecordNotFound(SteganoError):
    pass


# Configuration/payload
class UnsupportedAlgorithm(SteganoError):
    pass


class InvalidKey(SteganoError):
    pass


class PayloadTooLarge(SteganoError):
    pass


class CipherError(SteganoError):
    pass
