"""
Core line counting logic.

Functions:
- count_lines(): Dem dong tu async stream cac chunk bytes, co read timeout
- iter_file_chunks(): Doc file theo chunk 128KB trong executor thread
- count_text_lines(): Cung quy tac dem nhung cho text trong memory
- estimate_line_count(): Uoc luong so dong tu size (file qua lon)
- render_line_annotation(): Build RenderedAnnotation (badge + tooltip)

Quy tac dem (giong Repomix):
- Empty: 0 dong
- Dem so ky tu '\\n'
- Neu noi dung ket thuc khong phai '\\n': cong them 1
"""

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from core.linecount.errors import ReadTimeoutError

# 128 KB chunks: can bang giua so syscall va bo nho
CHUNK_SIZE = 128 * 1024

# Timeout mac dinh cho mot lan doc (network mount, file bi lock)
DEFAULT_READ_TIMEOUT_S = 10.0

# Executor dung chung cho blocking reads, tao lazy
_read_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def get_read_executor() -> ThreadPoolExecutor:
    """Lay (hoac tao) thread pool dung cho file reads."""
    global _read_executor
    with _executor_lock:
        if _read_executor is None:
            _read_executor = ThreadPoolExecutor(
                max_workers=32, thread_name_prefix="linesight-read"
            )
        return _read_executor


def shutdown_read_executor() -> None:
    """Dong thread pool (goi khi deactivate). Reads dang chay van duoc chay xong."""
    global _read_executor
    with _executor_lock:
        if _read_executor is not None:
            _read_executor.shutdown(wait=False)
            _read_executor = None


class LineTally:
    """
    Bo dem dong incremental - feed tung chunk, doc ket qua cuoi cung.

    Chi can nho chunk cuoi co ket thuc bang newline hay khong,
    nen bo nho la O(1) bat ke kich thuoc file.
    """

    def __init__(self) -> None:
        self._newlines = 0
        self._saw_content = False
        self._ends_with_newline = True

    def feed(self, chunk: bytes) -> None:
        if not chunk:
            return
        self._saw_content = True
        self._newlines += chunk.count(b"\n")
        self._ends_with_newline = chunk.endswith(b"\n")

    @property
    def total(self) -> int:
        if self._saw_content and not self._ends_with_newline:
            return self._newlines + 1
        return self._newlines


def count_text_lines(text: str) -> int:
    """
    Dem so dong cua text trong memory.

    "" -> 0, "a" -> 1, "a\\n" -> 1, "a\\nb" -> 2, "a\\nb\\n" -> 2
    """
    if not text:
        return 0
    newline_count = text.count("\n")
    return newline_count if text.endswith("\n") else newline_count + 1


def estimate_line_count(size: int, estimation_factor: int) -> int:
    """Uoc luong so dong cho file qua lon: floor(size / estimation_factor)."""
    return size // max(1, estimation_factor)


async def _close_stream(stream: AsyncIterator[bytes]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


async def count_lines(
    stream: AsyncIterator[bytes],
    timeout_s: float = DEFAULT_READ_TIMEOUT_S,
) -> int:
    """
    Dem so dong tu mot async stream cac chunk bytes.

    Neu stream khong ket thuc (end hoac error) trong timeout_s giay,
    stream bi dong va raise ReadTimeoutError thay vi treo mai mai.

    Args:
        stream: Async iterator tra ve cac chunk bytes (single-pass)
        timeout_s: Thoi gian toi da cho toan bo stream

    Returns:
        So dong

    Raises:
        ReadTimeoutError: Stream bi treo qua timeout_s
        OSError: Loi doc tu data source
    """
    tally = LineTally()

    async def _consume() -> None:
        async for chunk in stream:
            tally.feed(chunk)

    try:
        await asyncio.wait_for(_consume(), timeout=timeout_s)
    except asyncio.TimeoutError as e:
        raise ReadTimeoutError(f"Read timeout after {timeout_s:g}s") from e
    finally:
        await _close_stream(stream)

    return tally.total


def _close_opened(future: "Future") -> None:
    """Done-callback: dong file neu open() hoan thanh sau khi caller da huy."""
    if future.cancelled() or future.exception() is not None:
        return
    future.result().close()


async def iter_file_chunks(
    file_path: Union[str, Path],
    chunk_size: int = CHUNK_SIZE,
    executor: Optional[ThreadPoolExecutor] = None,
) -> AsyncIterator[bytes]:
    """
    Doc file theo chunk trong executor thread, yield ve event loop.

    Khi generator bi dong giua chung (timeout, cancel), file handle
    duoc dong ngay khi read dang chay trong thread tra ve - event loop
    khong bao gio bi block boi mot read dang treo.

    Args:
        file_path: Duong dan file
        chunk_size: Kich thuoc moi chunk (bytes)
        executor: Thread pool tuy chon (mac dinh dung pool chung)
    """
    pool = executor or get_read_executor()

    open_future = pool.submit(open, file_path, "rb")
    try:
        handle = await asyncio.wrap_future(open_future)
    except asyncio.CancelledError:
        open_future.add_done_callback(_close_opened)
        raise

    in_flight: Optional[Future] = None
    try:
        while True:
            in_flight = pool.submit(handle.read, chunk_size)
            chunk = await asyncio.wrap_future(in_flight)
            in_flight = None
            if not chunk:
                return
            yield chunk
    finally:
        if in_flight is not None and not in_flight.done():
            # Read van dang chay trong thread: dong sau khi no tra ve
            in_flight.add_done_callback(lambda _f: handle.close())
        else:
            handle.close()


# ============================================================
# Rendering
# ============================================================


@dataclass(frozen=True)
class RenderedAnnotation:
    """
    Annotation san sang hien thi, build tu line count.

    Attributes:
        value: So dong (hoac so dong uoc luong)
        estimated: True neu value la uoc luong tu file size
        badge: Chuoi ngan hien thi canh ten file (vd: "1K", "~2M")
        tooltip: Mo ta day du (vd: "1234 lines")
    """

    value: int
    estimated: bool
    badge: str
    tooltip: str


def format_line_count(count: int) -> str:
    """Format so dong cho badge: 1234 -> "1K", 2500000 -> "2M"."""
    if count >= 1_000_000:
        return f"{count // 1_000_000}M"
    if count >= 1_000:
        return f"{count // 1_000}K"
    return str(count)


def render_line_annotation(value: int, estimated: bool = False) -> RenderedAnnotation:
    """Build RenderedAnnotation tu line count va co estimated."""
    formatted = format_line_count(value)
    if estimated:
        return RenderedAnnotation(
            value=value,
            estimated=True,
            badge=f"~{formatted}",
            tooltip=f"~{value} lines (estimated)",
        )
    return RenderedAnnotation(
        value=value,
        estimated=False,
        badge=formatted,
        tooltip=f"{value} lines",
    )
