"""
Safe I/O operations with atomic writes and cooperative file locking.
"""

import contextlib
import errno
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

try:  # fcntl is only available on POSIX platforms
    import fcntl  # type: ignore
except ImportError:  # pragma: no cover - Windows fallback
    fcntl = None  # type: ignore


DEFAULT_LOCK_TIMEOUT = 10.0  # seconds
LOCK_SLEEP_INTERVAL = 0.05  # seconds

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def lock_file_path(path: PathLike) -> Path:
    """Return the companion lock file path for the target file."""
    path = Path(path)
    return path.parent / f"{path.name}.lock"


@contextlib.contextmanager
def file_lock(target_path: PathLike, exclusive: bool = True,
              timeout: Optional[float] = DEFAULT_LOCK_TIMEOUT) -> Iterator[None]:
    """Acquire a cooperative file lock around the target path.

    Uses POSIX advisory locking via fcntl when available; otherwise acts as a no-op.
    The lock is polled without blocking until ``timeout`` elapses, then
    TimeoutError is raised. Each acquisition opens its own descriptor, so
    threads of one process contend with each other as separate processes do.
    """
    if fcntl is None:
        yield
        return

    lock_path = lock_file_path(target_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    lock_type = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
    deadline = time.monotonic() + timeout if timeout is not None else None

    with open(lock_path, "a") as lock_file:
        while True:
            try:
                flags = lock_type | fcntl.LOCK_NB if deadline is not None else lock_type
                fcntl.flock(lock_file.fileno(), flags)
                break
            except OSError as exc:  # pragma: no cover - depends on timing
                if exc.errno not in (errno.EACCES, errno.EAGAIN):
                    raise
                if deadline is not None and time.monotonic() >= deadline:
                    raise TimeoutError(f"Timed out waiting for lock on {target_path}") from exc
                time.sleep(LOCK_SLEEP_INTERVAL)

        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def read_text(file_path: PathLike, default: Optional[str] = None) -> Optional[str]:
    """Read a UTF-8 text file, returning ``default`` when it does not exist."""
    path_obj = Path(os.path.expanduser(str(file_path)))
    if not path_obj.exists():
        return default
    with path_obj.open('r', encoding='utf-8', newline='') as handle:
        return handle.read()


def load_json(file_path: PathLike, default: Optional[Dict] = None) -> Dict[str, Any]:
    """
    Read JSON from file.

    Args:
        file_path: Path to JSON file
        default: Value returned when the file does not exist

    Returns:
        Parsed JSON data or default value

    Raises:
        json.JSONDecodeError: the file exists but is not valid JSON
        OSError: the file exists but cannot be read
    """
    if default is None:
        default = {}

    content = read_text(file_path)
    if content is None:
        return default
    if not content.strip():
        return default
    return json.loads(content)


def atomic_write(file_path: PathLike, content: str) -> None:
    """
    Atomically write content to file.

    The content goes to a temporary file in the target directory, is flushed
    to disk, and then replaces the target with ``os.replace``. Readers see
    either the old or the new file, never a partial one. The caller is
    responsible for holding any lock on the target.

    Args:
        file_path: Path to write to
        content: Content to write

    Raises:
        OSError: the write or the replace failed; the target is untouched
    """
    path_obj = Path(os.path.expanduser(str(file_path)))

    # Ensure directory exists
    path_obj.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode='w',
            dir=str(path_obj.parent),
            prefix=f'.{path_obj.name}.tmp_',
            delete=False,
            encoding='utf-8',
            newline=''
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())

        if path_obj.exists():
            os.chmod(str(tmp_path), path_obj.stat().st_mode & 0o777)
        else:
            os.chmod(str(tmp_path), 0o644)

        os.replace(str(tmp_path), str(path_obj))
        tmp_path = None
        logger.debug("Atomic write completed: %s (%d bytes)", path_obj, len(content))
    finally:
        if tmp_path and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass


def atomic_write_json(file_path: PathLike, data: Dict[str, Any], indent: int = 2) -> None:
    """Serialize ``data`` first, then write it atomically.

    Serialization happens before any file is touched, so unserializable data
    leaves the existing file intact.
    """
    content = json.dumps(data, indent=indent, ensure_ascii=False, sort_keys=True) + "\n"
    atomic_write(file_path, content)
