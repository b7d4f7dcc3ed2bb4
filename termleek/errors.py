"""Error taxonomy.

Every error here is fatal to the process: nothing in TermLeek retries or
recovers. The entry point and the app controller turn them into a diagnostic
on stderr and exit status 1.
"""


class TermleekError(Exception):
    """Base class for all TermLeek failures."""


class ConfigError(TermleekError):
    """Configuration file is missing, unreadable or unparsable."""


class ValidationError(TermleekError):
    """A file referenced by the configuration does not exist."""


class SpawnError(TermleekError):
    """The shell process could not be started."""


class ScaleError(TermleekError):
    """An image could not be decoded or scaled."""


class ImageNotFoundError(ScaleError):
    pass


class ImageDecodeError(ScaleError):
    pass
