"""
amp_uncss exceptions
"""


class AmpUncssError(Exception):
    """Base exception for amp_uncss"""
    pass


class ParseFailure(AmpUncssError):
    """HTML or CSS could not be parsed; fatal to that document only"""
    pass


class OracleFailure(AmpUncssError):
    """A presence query failed; recovered by treating the selector as used"""
    pass


class BrowserFailure(AmpUncssError):
    """Browser launch, navigation or page crash"""
    pass


class ResourceFailure(AmpUncssError):
    """Temporary file could not be written or removed"""
    pass


class ConfigurationError(AmpUncssError):
    """Invalid option value"""
    pass
