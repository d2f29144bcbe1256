"""
LocalFileSource - IAnnotationSource doc tu local filesystem.

- observe(): os.stat trong executor, chi nhan regular files
- open_stream(): iter_file_chunks (128KB chunks, read trong executor)
- enumerate(): os.walk co prune thu muc bi exclude, dung o limit
"""

import asyncio
import os
import stat
from typing import AsyncIterator, Callable, List, Optional

from core.linecount.counter import CHUNK_SIZE, get_read_executor, iter_file_chunks
from core.logging_config import log_debug
from services.interfaces.annotation_service import Fingerprint, IAnnotationSource


def _stat_regular_file(key: str) -> Optional[Fingerprint]:
    try:
        st = os.stat(key)
    except (FileNotFoundError, NotADirectoryError):
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    return Fingerprint(size=st.st_size, mtime_ns=st.st_mtime_ns)


def walk_files(
    root: str,
    exclude: Optional[Callable[[str], bool]] = None,
    limit: Optional[int] = None,
) -> List[str]:
    """
    Liet ke files duoi root (blocking, chay trong executor).

    Thu muc bi exclude duoc prune, khong di vao ben trong.
    Ket qua co thu tu on dinh (sorted theo tung thu muc).
    """
    results: List[str] = []

    def _on_error(error: OSError) -> None:
        log_debug(f"[LocalFileSource] Cannot list {error.filename}: {error}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        if exclude is not None:
            dirnames[:] = [
                name for name in dirnames if not exclude(os.path.join(dirpath, name))
            ]
        dirnames.sort()

        for name in sorted(filenames):
            file_path = os.path.join(dirpath, name)
            if exclude is not None and exclude(file_path):
                continue
            results.append(file_path)
            if limit is not None and len(results) >= limit:
                return results

    return results


class LocalFileSource(IAnnotationSource):
    """Data source cho files tren local disk."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self._chunk_size = chunk_size

    async def observe(self, key: str) -> Optional[Fingerprint]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(get_read_executor(), _stat_regular_file, key)

    def open_stream(self, key: str) -> AsyncIterator[bytes]:
        return iter_file_chunks(key, self._chunk_size)

    async def enumerate(
        self,
        root: str,
        exclude: Optional[Callable[[str], bool]] = None,
        limit: Optional[int] = None,
    ) -> List[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            get_read_executor(), walk_files, root, exclude, limit
        )
