"""Ordered acquisition of the per-file locks a pass needs."""

import contextlib
import logging
from typing import Iterator, Optional, Sequence

from ..core.exceptions import ResourceBusyError
from ..utils.io import DEFAULT_LOCK_TIMEOUT, file_lock


@contextlib.contextmanager
def acquire_locks(
    paths: Sequence[str],
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    logger: Optional[logging.Logger] = None,
) -> Iterator[None]:
    """
    Hold an exclusive lock on every path, taken in the order given.

    Callers must always pass resources in the same global order (state, list,
    journal). Locks are released in reverse order on every exit path.

    Raises:
        ResourceBusyError: a lock was not obtained within ``timeout``; any
            locks already held have been released
    """
    logger = logger or logging.getLogger(__name__)

    held = 0
    try:
        with contextlib.ExitStack() as stack:
            for path in paths:
                try:
                    stack.enter_context(file_lock(path, exclusive=True, timeout=timeout))
                except TimeoutError as exc:
                    logger.debug(f"Lock busy: {path}")
                    raise ResourceBusyError(str(path), timeout) from exc
                held += 1
                logger.debug(f"Lock acquired: {path}")

            yield
    finally:
        if held:
            logger.debug(f"Released {held} lock(s)")
