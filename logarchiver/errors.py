"""
==========================
Errors Module
==========================

Exception hierarchy shared by both pipelines.

- `ConfigError`: invalid or missing configuration, raised before any stage runs.
- `RunError` and subclasses: fatal, run-level failures that abort the whole run.
- `BucketError` and subclasses: failures confined to one date bucket.
- `RemoteLogError`: failures of a single host/log in the event-log backup.

*Author: Sudharshan TK*\n
*Created: 2025-09-14*
"""


class ArchiverError(Exception):
    """Base error for the project."""


class ConfigError(ArchiverError):
    pass


class RunError(ArchiverError):
    """Fatal error; the run stops immediately."""


class ScanError(RunError):
    pass


class StagingError(RunError):
    pass


class BucketError(ArchiverError):
    """Failure of a single date bucket. Its sources are left untouched."""


class CompressionError(BucketError):
    pass


class InsufficientSpaceError(BucketError):
    pass


class RelocationError(BucketError):
    pass


class VerificationError(BucketError):
    pass


class ArchiveCollisionError(BucketError):
    pass


class RemoteLogError(ArchiverError):
    pass
