"""
Exceptions raised by the progression engine's persistence and sync adapters
"""


class ProgressEngineError(Exception):
    """Base class for progression engine errors"""


class SnapshotStoreError(ProgressEngineError):
    """The local snapshot store could not be read or written"""


class RemoteSyncError(ProgressEngineError):
    """The remote snapshot service could not be reached or rejected a request"""


class ConfigurationError(ProgressEngineError):
    """Required configuration is missing"""
