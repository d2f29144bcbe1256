"""Shared fakes cho engine tests.

FakeSource la data source trong memory, import qua
`from tests.conftest import FakeSource`.
"""

import asyncio
from typing import Dict, List, Optional, Set

import pytest

from services.interfaces.annotation_service import Fingerprint, IAnnotationSource


class FakeSource(IAnnotationSource):
    """Data source trong memory, có thể chặn stream bằng gate."""

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.mtimes: Dict[str, int] = {}
        self.gate: Optional[asyncio.Event] = None
        self.fail_read: Set[str] = set()
        self.fail_open: Set[str] = set()
        self.observe_count = 0
        self.open_count = 0

    def put(self, key: str, content: bytes, mtime_ns: int = 1) -> None:
        self.files[key] = content
        self.mtimes[key] = mtime_ns

    def remove(self, key: str) -> None:
        self.files.pop(key, None)
        self.mtimes.pop(key, None)

    async def observe(self, key: str) -> Optional[Fingerprint]:
        self.observe_count += 1
        if key not in self.files:
            return None
        return Fingerprint(size=len(self.files[key]), mtime_ns=self.mtimes[key])

    def open_stream(self, key: str):
        self.open_count += 1
        if key in self.fail_open:
            raise PermissionError(f"cannot open {key}")
        # Snapshot luc mo, giong file handle that
        return self._stream(
            key, self.files.get(key, b""), self.gate, key in self.fail_read
        )

    async def _stream(self, key, content, gate, fail):
        if gate is not None:
            await gate.wait()
        if fail:
            raise OSError(f"read failed: {key}")
        yield content

    async def enumerate(self, root, exclude=None, limit=None) -> List[str]:
        prefix = root.rstrip("/") + "/"
        keys = sorted(key for key in self.files if key.startswith(prefix))
        if exclude is not None:
            keys = [key for key in keys if not exclude(key)]
        return keys[:limit] if limit is not None else keys


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()
