"""
Unit tests cho FileWatcher service.

Test các chức năng:
- Start/Stop không gây crash (phải gọi trong event loop)
- Sink nhận events trên event loop thread khi có file change
- Handler tách move thành deleted + created
- Ignore strategies (mặc định và theo config)
"""

import asyncio
import threading
from pathlib import Path
from typing import List

from watchdog.events import DirModifiedEvent, FileCreatedEvent, FileMovedEvent

from config.app_settings import AppSettings, LineSightConfig
from services.file_watcher_pkg.handler import WorkspaceEventHandler
from services.file_watcher_pkg.ignore_strategies import (
    ConfigIgnoreStrategy,
    DefaultIgnoreStrategy,
)
from services.file_watcher_pkg.service import FileWatcher
from services.interfaces.file_watcher_service import FileChangeEvent, IEventSink


class RecordingSink(IEventSink):
    """Sink ghi lại events và thread nhận chúng."""

    def __init__(self) -> None:
        self.events: List[FileChangeEvent] = []
        self.threads: List[int] = []
        self.cleaned_up = False

    def add_event(self, event: FileChangeEvent) -> None:
        self.events.append(event)
        self.threads.append(threading.get_ident())

    def cleanup(self) -> None:
        self.cleaned_up = True


class TestFileWatcher:
    """Test suite cho FileWatcher"""

    def test_init_creates_instance(self):
        """Test khởi tạo FileWatcher không lỗi"""
        watcher = FileWatcher()
        assert watcher._observer is None
        assert watcher.watched_paths is None
        assert not watcher.is_running()

    def test_start_stop_no_crash(self, tmp_path):
        """Test start và stop không gây crash"""

        async def scenario():
            watcher = FileWatcher()
            watcher.start([tmp_path], RecordingSink())
            assert watcher.is_running()
            assert watcher.watched_paths == [tmp_path]

            watcher.stop()
            assert not watcher.is_running()
            assert watcher.watched_paths is None

        asyncio.run(scenario())

    def test_start_invalid_path(self):
        """Test start với path không tồn tại"""

        async def scenario():
            watcher = FileWatcher()
            watcher.start([Path("/nonexistent/path/12345")], RecordingSink())
            return watcher.is_running()

        assert not asyncio.run(scenario())

    def test_multiple_roots_skip_invalid(self, tmp_path):
        """Test nhiều roots: path không hợp lệ bị bỏ qua, còn lại vẫn watch"""
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()

        async def scenario():
            watcher = FileWatcher()
            watcher.start([first, tmp_path / "missing", second], RecordingSink())
            paths = watcher.watched_paths
            watcher.stop()
            return paths

        assert asyncio.run(scenario()) == [first, second]

    def test_sink_receives_created_file(self, tmp_path):
        """Test sink nhận event trên event loop thread khi tạo file mới"""
        sink = RecordingSink()

        async def scenario():
            watcher = FileWatcher()
            watcher.start([tmp_path], sink)
            try:
                (tmp_path / "new_file.txt").write_text("hello")
                await asyncio.sleep(0.5)
            finally:
                watcher.stop()
            return threading.get_ident()

        loop_thread = asyncio.run(scenario())

        names = [Path(event.path).name for event in sink.events]
        assert "new_file.txt" in names, "Sink nên nhận event khi có file mới"
        assert set(sink.threads) == {loop_thread}
        assert not sink.cleaned_up

    def test_double_stop_no_crash(self, tmp_path):
        """Test gọi stop nhiều lần không crash"""

        async def scenario():
            watcher = FileWatcher()
            watcher.start([tmp_path], RecordingSink())
            watcher.stop()
            watcher.stop()
            watcher.stop()
            return watcher.is_running()

        assert not asyncio.run(scenario())

    def test_restart_different_path(self, tmp_path):
        """Test chuyển sang path khác tự động stop path cũ"""
        path1 = tmp_path / "one"
        path2 = tmp_path / "two"
        path1.mkdir()
        path2.mkdir()

        async def scenario():
            watcher = FileWatcher()
            watcher.start([path1], RecordingSink())
            assert watcher.watched_paths == [path1]

            # Start path 2 (phải tự động stop path 1)
            watcher.start([path2], RecordingSink())
            assert watcher.watched_paths == [path2]
            assert watcher.is_running()
            watcher.stop()

        asyncio.run(scenario())


class TestWorkspaceEventHandler:
    """Test handler chuyển watchdog events sang sink"""

    def test_move_becomes_delete_and_create(self):
        sink = RecordingSink()

        async def scenario():
            handler = WorkspaceEventHandler(
                DefaultIgnoreStrategy(), sink, asyncio.get_running_loop()
            )
            handler.on_moved(FileMovedEvent("/repo/old.py", "/repo/new.py"))
            await asyncio.sleep(0)

        asyncio.run(scenario())

        assert sink.events == [
            FileChangeEvent("deleted", "/repo/old.py", False),
            FileChangeEvent("created", "/repo/new.py", False),
        ]

    def test_directory_modified_ignored(self):
        sink = RecordingSink()

        async def scenario():
            handler = WorkspaceEventHandler(
                DefaultIgnoreStrategy(), sink, asyncio.get_running_loop()
            )
            handler.on_modified(DirModifiedEvent("/repo/src"))
            await asyncio.sleep(0)

        asyncio.run(scenario())

        assert sink.events == []

    def test_ignored_path_dropped(self):
        sink = RecordingSink()

        async def scenario():
            handler = WorkspaceEventHandler(
                DefaultIgnoreStrategy(), sink, asyncio.get_running_loop()
            )
            handler.on_created(FileCreatedEvent("/repo/node_modules/x.js"))
            handler.on_created(FileCreatedEvent("/repo/src/x.js"))
            await asyncio.sleep(0)

        asyncio.run(scenario())

        assert [event.path for event in sink.events] == ["/repo/src/x.js"]

    def test_closed_loop_drops_event(self):
        """Test loop đã đóng -> event bị bỏ, không raise trên observer thread"""
        sink = RecordingSink()
        loop = asyncio.new_event_loop()
        loop.close()

        handler = WorkspaceEventHandler(DefaultIgnoreStrategy(), sink, loop)
        handler.on_created(FileCreatedEvent("/repo/a.py"))

        assert sink.events == []


class TestIgnoreStrategies:
    """Test các IIgnoreStrategy implementations"""

    def test_default_strategy(self):
        strategy = DefaultIgnoreStrategy()
        assert strategy.should_ignore("/repo/node_modules/lib/a.js")
        assert strategy.should_ignore("/repo/.git/HEAD")
        assert not strategy.should_ignore("/repo/src/main.py")

    def test_default_strategy_skips_nested_patterns(self):
        assert all("/" not in name for name in DefaultIgnoreStrategy.IGNORED_PATTERNS)

    def test_config_strategy(self):
        strategy = ConfigIgnoreStrategy.from_config(LineSightConfig())
        assert strategy.should_ignore("/repo/dist/bundle.js")
        assert strategy.should_ignore("/repo/public/assets/app.js")
        # Chỉ loại theo folder, không theo extension
        assert not strategy.should_ignore("/repo/logo.png")

    def test_config_strategy_custom_folder(self):
        config = AppSettings(exclude_folders=["generated"]).to_config()
        strategy = ConfigIgnoreStrategy.from_config(config)
        assert strategy.should_ignore("/repo/generated/api.py")
        assert not strategy.should_ignore("/repo/src/api.py")
