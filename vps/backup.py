# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Archive the application state directory; keep archives for a few days.

Runs on the server, as the application user, from cron.
"""
import argparse
import logging
import os
import re
import sys
import tarfile
import time
from datetime import datetime
from datetime import timezone
from pathlib import Path
from pathlib import PurePosixPath
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Sequence

from config import read_config
from vps._logging import init_logging
from vps._settings import make_settings

_TRANSIENT_DIRS = {'node_modules', '.cache'}
_ROTATED_LOG = re.compile(r'\.log\.[0-9]')


class BackupResult(NamedTuple):

    archive: Path
    size: int
    deleted: List[Path]
    kept: List[Path]

    def total_size(self) -> int:
        return sum(path.stat().st_size for path in self.kept)


def human_size(size: int) -> str:
    """Like `du -h` does.

    >>> human_size(512), human_size(1536), human_size(5 * 1024 ** 3)
    ('512B', '1.5K', '5.0G')
    """
    value = float(size)
    for unit in ['B', 'K', 'M', 'G']:
        if value < 1024 or unit == 'G':
            break
        value /= 1024
    if unit == 'B':
        return f'{size}B'
    return f'{value:.1f}{unit}'


def _exclude_transient(info: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
    """Skip what is rebuilt or rotated anyway.

    >>> def kept(name): return _exclude_transient(tarfile.TarInfo(name)) is not None
    >>> kept('.app/app.json'), kept('.app/gateway.sock'), kept('.app/x/node_modules/y')
    (True, False, False)
    >>> kept('.app/logs/gateway.log'), kept('.app/logs/gateway.log.1.gz')
    (True, False)
    """
    path = PurePosixPath(info.name)
    if _TRANSIENT_DIRS.intersection(path.parts):
        return None
    if path.name.endswith('.sock'):
        return None
    if 'logs' in path.parts[:-1] and _ROTATED_LOG.search(path.name):
        return None
    return info


def archive_name(prefix: str, now: datetime) -> str:
    """Names sort by time.

    >>> archive_name('app', datetime(2024, 3, 5, 7, 8, 9))
    'app-backup-2024-03-05_070809.tar.gz'
    """
    return f'{prefix}-backup-{now:%Y-%m-%d_%H%M%S}.tar.gz'


def make_backup(
        source: Path,
        backup_dir: Path,
        prefix: str,
        retention_days: int,
        now: Optional[datetime] = None,
        ) -> BackupResult:
    if not source.is_dir():
        raise FileNotFoundError(f"Directory not found: {source}")
    if now is None:
        now = datetime.now(timezone.utc)
    backup_dir.mkdir(parents=True, exist_ok=True)
    archive = backup_dir / archive_name(prefix, now)
    _logger.info("Back up %s to %s", source, archive)
    with tarfile.open(archive, 'w:gz') as tar:
        tar.add(source, arcname=source.name, filter=_exclude_transient)
    size = archive.stat().st_size
    _logger.info("Backup created: %s (%s)", archive.name, human_size(size))
    deleted = []
    kept = []
    oldest_allowed = time.time() - retention_days * 24 * 3600
    for path in sorted(backup_dir.glob(f'{prefix}-backup-*.tar.gz')):
        if path != archive and path.stat().st_mtime < oldest_allowed:
            _logger.info("Rotate %s", path.name)
            path.unlink()
            deleted.append(path)
        else:
            kept.append(path)
    return BackupResult(archive, size, deleted, kept)


def main(args: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(prog='python -m vps.backup')
    parser.add_argument('--quiet', '-q', action='store_true')
    parsed_args = parser.parse_args(args)
    init_logging(quiet=parsed_args.quiet)
    settings = make_settings(read_config(), os.environ)
    try:
        result = make_backup(
            Path(settings.app_dir()),
            Path(settings.backups()),
            settings.app_name,
            settings.backup_retention_days,
            )
    except FileNotFoundError as e:
        _logger.error("%s", e)
        return 1
    if result.deleted:
        _logger.info(
            "Rotated %d old backup(s) (retention: %d days)",
            len(result.deleted), settings.backup_retention_days)
    _logger.info(
        "Backup complete. %d backup(s) stored, total: %s",
        len(result.kept), human_size(result.total_size()))
    return 0


_logger = logging.getLogger(__name__)

if __name__ == '__main__':
    exit(main(sys.argv[1:]))
