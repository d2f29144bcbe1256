"""
Unit tests cho InitializationScanner.

Test các chức năng:
- Scan theo batch, notify subscribers, full refresh khi xong
- Epoch: cancel_scan / force làm run cũ tự dừng
- Discovery cap
- Status messages khi show_startup_notifications
"""

import asyncio
from typing import List, Optional
from unittest.mock import patch

from config.app_settings import LineSightConfig
from core.utils.batch_updater import ChangeBatch
from services.annotation_engine import AnnotationEngine
from services.initialization_scanner import InitializationScanner
from tests.conftest import FakeSource


def make_scanner(
    source: FakeSource, statuses: Optional[List[str]] = None, **overrides
):
    settings = dict(
        initial_scan_delay_ms=0,
        batch_delay_ms=0,
        batch_size=2,
        debounce_delay_ms=20,
    )
    settings.update(overrides)
    engine = AnnotationEngine(
        source,
        LineSightConfig(**settings),
        is_eligible=lambda key: key.endswith(".py"),
    )
    on_status = statuses.append if statuses is not None else None
    return engine, InitializationScanner(engine, on_status=on_status)


def populate(source: FakeSource, count: int) -> List[str]:
    keys = [f"/repo/file_{i:02d}.py" for i in range(count)]
    for index, key in enumerate(keys):
        source.put(key, b"line\n" * (index + 1))
    return keys


class TestScan:
    """Test luồng scan bình thường"""

    def test_scan_counts_every_eligible_file(self):
        source = FakeSource()
        keys = populate(source, 5)
        source.put("/repo/logo.png", b"\x89PNG")

        async def scenario():
            engine, scanner = make_scanner(source)
            task = scanner.start_scan(["/repo"])
            assert scanner.is_initializing
            await task
            cached = {key: engine.get_cached(key) for key in keys}
            png = engine.get_cached("/repo/logo.png")
            engine.dispose()
            return cached, png, scanner.is_initializing

        cached, png, initializing = asyncio.run(scenario())

        assert [cached[key].value for key in keys] == [1, 2, 3, 4, 5]
        assert png is None
        assert not initializing

    def test_batches_notify_subscribers(self):
        """Test mỗi batch gọi notify_changed, kết thúc bằng full refresh"""
        source = FakeSource()
        keys = populate(source, 5)
        received: List[ChangeBatch] = []

        async def scenario():
            engine, scanner = make_scanner(source)
            engine.subscribe(received.append)
            with patch.object(
                engine, "notify_changed", wraps=engine.notify_changed
            ) as notify:
                await scanner.start_scan(["/repo"])
            engine.batcher.flush()
            engine.dispose()
            return [call.args[0] for call in notify.call_args_list]

        batches = asyncio.run(scenario())

        assert batches == [keys[0:2], keys[2:4], keys[4:5]]
        assert received[-1] == ChangeBatch(full_refresh=True)

    def test_scan_task_cleared_after_completion(self):
        source = FakeSource()
        populate(source, 1)

        async def scenario():
            engine, scanner = make_scanner(source)
            await scanner.start_scan(["/repo"])
            engine.dispose()
            return scanner.scan_task

        assert asyncio.run(scenario()) is None

    def test_empty_roots(self):
        async def scenario():
            engine, scanner = make_scanner(FakeSource())
            return scanner.start_scan([]), scanner.is_initializing

        assert asyncio.run(scenario()) == (None, False)

    def test_discovery_cap(self):
        """Test chỉ xử lý tối đa discovery_limit files mỗi root"""
        source = FakeSource()
        keys = populate(source, 4)

        async def scenario():
            engine, scanner = make_scanner(source, discovery_limit=2)
            await scanner.start_scan(["/repo"])
            cached = [engine.get_cached(key) is not None for key in keys]
            engine.dispose()
            return cached

        assert asyncio.run(scenario()) == [True, True, False, False]

    def test_batcher_delay_raised_while_initializing(self):
        source = FakeSource()
        populate(source, 1)

        async def scenario():
            engine, scanner = make_scanner(source, initial_scan_delay_ms=20)
            task = scanner.start_scan(["/repo"])
            during = engine.batcher.current_delay_ms()
            await task
            after = engine.batcher.current_delay_ms()
            engine.dispose()
            return during, after

        assert asyncio.run(scenario()) == (100, 20)

    def test_status_messages(self):
        source = FakeSource()
        populate(source, 1)
        statuses: List[str] = []

        async def scenario():
            engine, scanner = make_scanner(
                source, statuses, show_startup_notifications=True
            )
            await scanner.start_scan(["/repo"])
            engine.dispose()

        asyncio.run(scenario())

        assert statuses == ["Initializing line counts...", "Ready"]

    def test_no_status_messages_by_default(self):
        source = FakeSource()
        populate(source, 1)
        statuses: List[str] = []

        async def scenario():
            engine, scanner = make_scanner(source, statuses)
            await scanner.start_scan(["/repo"])
            engine.dispose()

        asyncio.run(scenario())

        assert statuses == []


class TestCancellation:
    """Test epoch-based cancellation"""

    def test_cancel_scan_stops_run(self):
        source = FakeSource()
        keys = populate(source, 3)

        async def scenario():
            engine, scanner = make_scanner(source, initial_scan_delay_ms=30)
            task = scanner.start_scan(["/repo"])
            scanner.cancel_scan()
            assert not scanner.is_initializing
            await task
            opened = source.open_count
            engine.dispose()
            return opened, engine.get_cached(keys[0])

        assert asyncio.run(scenario()) == (0, None)

    def test_second_start_returns_running_task(self):
        source = FakeSource()
        populate(source, 1)

        async def scenario():
            engine, scanner = make_scanner(source, initial_scan_delay_ms=10)
            first = scanner.start_scan(["/repo"])
            second = scanner.start_scan(["/repo"])
            await first
            engine.dispose()
            return first is second

        assert asyncio.run(scenario())

    def test_force_restarts_scan(self):
        """Test force=True: run cũ dừng, chỉ run mới đọc files"""
        source = FakeSource()
        populate(source, 3)

        async def scenario():
            engine, scanner = make_scanner(source, initial_scan_delay_ms=10)
            first = scanner.start_scan(["/repo"])
            second = scanner.start_scan(["/repo"], force=True)
            assert first is not second
            await asyncio.gather(first, second)
            engine.dispose()
            return scanner.is_initializing

        initializing = asyncio.run(scenario())

        assert source.open_count == 3
        assert not initializing

    def test_stale_run_stops_between_batches(self):
        """Test cancel giữa chừng: batch đang chạy xong, batch sau không chạy"""
        source = FakeSource()
        populate(source, 6)

        async def scenario():
            engine, scanner = make_scanner(source, batch_delay_ms=30)
            task = scanner.start_scan(["/repo"])
            await asyncio.sleep(0.015)
            scanner.cancel_scan()
            await task
            opened = source.open_count
            engine.dispose()
            return opened

        assert asyncio.run(scenario()) == 2

    def test_dispose_stops_scan(self):
        source = FakeSource()
        populate(source, 2)

        async def scenario():
            engine, scanner = make_scanner(source, initial_scan_delay_ms=20)
            task = scanner.start_scan(["/repo"])
            engine.dispose()
            await task
            return source.open_count

        assert asyncio.run(scenario()) == 0
