"""
Storage locator.

Decides where the SQLite store lives: under a mounted persistent volume when
one is present (hosting disks are mounted at /data), otherwise next to the
working directory. Resolved once in main and passed down explicitly.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import quote

DEFAULT_VOLUME_DIR = '/data'
DEFAULT_DB_FILE = 'pcshop.db'
DEFAULT_BUSY_TIMEOUT_MS = 10000


@dataclass(frozen=True)
class StorePath:
    """Store file location plus connection parameters"""
    path: str
    busyTimeoutMs: int = DEFAULT_BUSY_TIMEOUT_MS
    sharedCache: bool = True

    def uri(self) -> str:
        """SQLite URI for sqlite3.connect(..., uri=True)"""
        uri = f"file:{quote(self.path)}"
        if self.sharedCache:
            uri += "?cache=shared"
        return uri

    @property
    def busyTimeoutSeconds(self) -> float:
        return self.busyTimeoutMs / 1000.0

    @classmethod
    def fromDsn(cls, dsn: str, **kwargs) -> 'StorePath':
        """
        Parse 'file:/path/to/db?params' into a StorePath.

        The query string is dropped and the path normalised; a bare path
        without the 'file:' prefix is accepted as well.
        """
        path = dsn[len('file:'):] if dsn.startswith('file:') else dsn
        path = path.split('?', 1)[0]
        return cls(path=os.path.normpath(path), **kwargs)


def resolveStorePath(environ: Optional[Mapping[str, str]] = None,
                     volumeDir: str = DEFAULT_VOLUME_DIR,
                     fileName: str = DEFAULT_DB_FILE,
                     busyTimeoutMs: int = DEFAULT_BUSY_TIMEOUT_MS) -> StorePath:
    """
    Pick the store location from the environment.

    Order:
    1. DB_PATH environment variable (explicit operator choice)
    2. <volumeDir>/<fileName> if the volume directory exists
    3. <fileName> relative to the working directory

    Never fails: the relative fallback is always available. Does not create
    anything; the provisioner does that.
    """
    if environ is None:
        environ = os.environ

    override = environ.get('DB_PATH')
    if override:
        return StorePath.fromDsn(override, busyTimeoutMs=busyTimeoutMs)

    if Path(volumeDir).is_dir():
        return StorePath(path=str(Path(volumeDir) / fileName), busyTimeoutMs=busyTimeoutMs)

    return StorePath(path=fileName, busyTimeoutMs=busyTimeoutMs)
