import os
import stat
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List

from logarchiver.errors import (
    ArchiveCollisionError, BucketError, InsufficientSpaceError, RelocationError,
    ScanError, StagingError, VerificationError,
)
from logarchiver.helpers.compress import archive_holds, archive_name, build_archive, flattened_names
from logarchiver.helpers.config import COLLISION_RESUME, FileArchiveConfig
from logarchiver.helpers.copy import delete_file, move_file, verify_file
from logarchiver.helpers.general import date_key, free_bytes, to_utc, volume_root
from logarchiver.helpers.win import set_hidden
from logarchiver.logger import RunLogger, utc_now


@dataclass(frozen=True)
class FileRecord:
    path: str
    mtime: datetime.datetime  # last write, UTC
    size: int


@dataclass(frozen=True)
class DateBucket:
    date_key: str
    members: tuple[FileRecord, ...]


class JobState(str, Enum):
    PENDING = "pending"
    STAGED = "staged"
    COMPRESSED = "compressed"
    RELOCATED = "relocated"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass
class ArchiveJob:
    bucket: DateBucket
    staging_path: str
    final_path: str
    state: JobState = JobState.PENDING


@dataclass
class BucketResult:
    date_key: str
    archive_path: str
    state: JobState
    files: int = 0
    error: str = ""
    deleted: int = 0
    delete_failures: List[str] = field(default_factory=list)
    resumed: bool = False

    @property
    def ok(self) -> bool:
        return self.state == JobState.VERIFIED


@dataclass
class ArchiveRunSummary:
    buckets: List[BucketResult] = field(default_factory=list)
    eligible: int = 0

    @property
    def failed_buckets(self) -> List[BucketResult]:
        return [b for b in self.buckets if not b.ok]

    @property
    def archived_buckets(self) -> List[BucketResult]:
        return [b for b in self.buckets if b.ok]

    @property
    def deleted_files(self) -> int:
        return sum(b.deleted for b in self.buckets)


# =========================
# Scan & Bucket
# =========================


def scan_eligible(source: str, keep_days: int, now: datetime.datetime,
                  exclude: Iterable[str] = ()) -> Iterator[FileRecord]:
    """
    Walk `source` recursively and yield regular files whose last write is more than
    `keep_days` days before `now`. Symlinks are never followed or yielded.

    Args:
        source (str): Root folder.
        keep_days (int): Retention threshold in days.
        now (datetime.datetime): Aware "now", usually UTC.
        exclude (Iterable[str], optional): Folders to skip (e.g. a staging area inside the tree).

    Yields:
        FileRecord: Eligible files, folder by folder.

    Raises:
        ScanError: If any folder of the tree cannot be read.
    """
    cutoff = now - datetime.timedelta(days=keep_days)
    excluded = {os.path.normcase(os.path.abspath(str(p))) for p in exclude}

    def _on_error(err: OSError):
        raise ScanError(f"Cannot read {err.filename}: {err.strerror}") from err

    for root, dirs, files in os.walk(str(source), onerror=_on_error):
        dirs[:] = sorted(
            d for d in dirs
            if os.path.normcase(os.path.abspath(os.path.join(root, d))) not in excluded
        )
        for name in sorted(files):
            path = os.path.join(root, name)
            try:
                st = os.lstat(path)
            except FileNotFoundError:
                continue  # removed since listing
            except OSError as e:
                raise ScanError(f"Cannot stat {path}: {e}") from e
            if not stat.S_ISREG(st.st_mode):
                continue
            mtime = to_utc(st.st_mtime)
            if mtime < cutoff:
                yield FileRecord(path=path, mtime=mtime, size=st.st_size)


def bucket_by_date(records: Iterable[FileRecord]) -> List[DateBucket]:
    """
    Group records by the UTC calendar date of their last write time.

    Returns:
        List[DateBucket]: Buckets in ascending date order, members sorted by path.
    """
    groups: dict[str, list[FileRecord]] = {}
    for rec in records:
        groups.setdefault(date_key(rec.mtime), []).append(rec)
    return [
        DateBucket(date_key=key, members=tuple(sorted(groups[key], key=lambda r: r.path)))
        for key in sorted(groups)
    ]


# =========================
# Staging
# =========================


def staging_dir_for(compress_root: str, app_name: str) -> str:
    return os.path.join(str(compress_root), f".{app_name}-staging")


def ensure_staging(compress_root: str, app_name: str, log: RunLogger | None = None) -> str:
    """
    Create (or reuse) the hidden staging folder for an application.
    A folder that cannot be hidden is still used; `log` gets a warning.

    Raises:
        StagingError: If the folder cannot be created.
    """
    path = staging_dir_for(compress_root, app_name)
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StagingError(f"Cannot create staging folder {path}: {e}") from e
    if not set_hidden(path) and log is not None:
        log.warn("Could not set the hidden attribute on %s", path)
    return path


# =========================
# Worker
# =========================


class FileArchiveWorker:
    """
    Archives aged files into one ZIP per last-write date:
      scan -> bucket -> per bucket: stage -> compress -> relocate -> verify -> delete sources.

    A bucket's sources are deleted only after its archive is confirmed at the destination.
    Bucket failures are logged and the run moves on; scan and staging failures abort the run.
    """

    def __init__(self, config: FileArchiveConfig, log: RunLogger, clock=utc_now):
        self.config = config
        self.log = log
        self.clock = clock

    def run(self) -> ArchiveRunSummary:
        cfg = self.config
        now = self.clock()

        compress_root = cfg.compress_drive or volume_root(cfg.source)
        staging = ensure_staging(compress_root, cfg.app_name, self.log)
        self.log.info("Staging folder: %s", staging)

        records = scan_eligible(cfg.source, cfg.keep_days, now,
                                exclude=(staging, cfg.destination))
        buckets = bucket_by_date(records)

        summary = ArchiveRunSummary(eligible=sum(len(b.members) for b in buckets))
        if not buckets:
            self.log.info("No files older than %d days in %s", cfg.keep_days, cfg.source)
            return summary

        self.log.info("Found %d files older than %d days in %d date buckets",
                      summary.eligible, cfg.keep_days, len(buckets))

        for bucket in buckets:
            summary.buckets.append(self.process_bucket(bucket, staging))

        self.log.info("Archived %d of %d buckets, deleted %d files",
                      len(summary.archived_buckets), len(summary.buckets), summary.deleted_files)
        if summary.failed_buckets:
            self.log.warn("%d buckets failed: %s", len(summary.failed_buckets),
                          ", ".join(b.date_key for b in summary.failed_buckets))
        return summary

    def process_bucket(self, bucket: DateBucket, staging: str) -> BucketResult:
        """
        Run the commit protocol for one bucket and report its outcome.
        """
        cfg = self.config
        name = archive_name(cfg.app_name, bucket.date_key)
        job = ArchiveJob(bucket=bucket,
                         staging_path=os.path.join(staging, name),
                         final_path=os.path.join(str(cfg.destination), name))
        result = BucketResult(date_key=bucket.date_key, archive_path=job.final_path,
                              state=job.state, files=len(bucket.members))

        paths = [rec.path for rec in bucket.members]
        entries = list(zip(paths, flattened_names(paths)))

        try:
            if os.path.exists(job.final_path):
                result.resumed = self._handle_collision(job, entries)
            if job.state != JobState.VERIFIED:
                self._commit(job, entries)
        except BucketError as e:
            job.state = JobState.FAILED
            result.state = job.state
            result.error = str(e)
            self.log.error("Bucket %s failed: %s. Source files kept.", bucket.date_key, e)
            self._discard_staged(job)
            return result

        result.state = job.state
        self._delete_sources(bucket, result)
        return result

    def _handle_collision(self, job: ArchiveJob, entries) -> bool:
        if self.config.collision != COLLISION_RESUME:
            self.log.warn("%s already exists and will be overwritten", job.final_path)
            return False

        paths = [src for src, _ in entries]
        if archive_holds(job.final_path, paths):
            self.log.warn("%s already holds all %d files; deleting sources",
                          job.final_path, len(paths))
            job.state = JobState.VERIFIED
            return True

        raise ArchiveCollisionError(
            f"{job.final_path} already exists and does not hold these files")

    def _commit(self, job: ArchiveJob, entries):
        key = job.bucket.date_key

        # STAGED: staging path cleared of leftovers and space for the bucket available
        self._discard_staged(job)
        needed = sum(rec.size for rec in job.bucket.members)
        staging_dir = os.path.dirname(job.staging_path)
        if free_bytes(staging_dir) < needed:
            raise InsufficientSpaceError(
                f"Not enough free space in {staging_dir} for {needed} bytes")
        job.state = JobState.STAGED

        size = build_archive(entries, job.staging_path)
        job.state = JobState.COMPRESSED
        self.log.info("Bucket %s: compressed %d files into %s (%d bytes)",
                      key, len(entries), job.staging_path, size)

        try:
            move_file(job.staging_path, job.final_path)
        except OSError as e:
            raise RelocationError(f"Cannot move {job.staging_path} to {job.final_path}: {e}") from e
        job.state = JobState.RELOCATED

        if not verify_file(job.final_path, expected_size=size):
            raise VerificationError(f"{job.final_path} is missing or incomplete after move")
        job.state = JobState.VERIFIED
        self.log.info("Bucket %s: archive verified at %s", key, job.final_path)

    def _delete_sources(self, bucket: DateBucket, result: BucketResult):
        for rec in bucket.members:
            try:
                delete_file(rec.path)
                result.deleted += 1
            except OSError as e:
                result.delete_failures.append(rec.path)
                self.log.error("Failed to delete %s: %s", rec.path, e)

        self.log.info("Bucket %s: deleted %d of %d source files",
                      bucket.date_key, result.deleted, len(bucket.members))

    def _discard_staged(self, job: ArchiveJob):
        """
        Remove this bucket's archive from staging. The destination is never touched.
        """
        try:
            if os.path.exists(job.staging_path):
                os.remove(job.staging_path)
        except OSError as e:
            self.log.warn("Could not remove staged archive %s: %s", job.staging_path, e)
