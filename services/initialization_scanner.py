"""
Initialization Scanner - Scan ban dau de dem dong cho moi file trong workspace.

Dung epoch tang dan de phat hien run cu: neu co scan moi (vd: sau khi
config thay doi) truoc khi scan hien tai xong, run cu thay epoch khac
o lan kiem tra tiep theo va tu dung.

Files duoc xu ly theo batch, nghi ngan giua cac batch de event loop
van phan hoi trong luc scan workspace lon.
"""

import asyncio
from typing import Callable, Iterable, List, Optional

from core.logging_config import log_debug, log_error, log_info, log_warning
from services.annotation_engine import AnnotationEngine

# Log tien do moi khi vuot qua moc nay
PROGRESS_INTERVAL = 1000


class InitializationScanner:
    """
    Scan cac workspace roots va feed keys vao engine theo batch.

    Usage:
        scanner = InitializationScanner(engine, exclude=file_filter.is_excluded)
        task = scanner.start_scan(["/repo"])
        await task
    """

    def __init__(
        self,
        engine: AnnotationEngine,
        exclude: Optional[Callable[[str], bool]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            engine: AnnotationEngine (dung chung EngineState)
            exclude: Predicate prune path khi enumerate (vd: excluded folders)
            on_status: Callback nhan status message khi show_startup_notifications
        """
        self._engine = engine
        self._state = engine.state
        self._exclude = exclude
        self._on_status = on_status

    @property
    def is_initializing(self) -> bool:
        return self._state.is_initializing

    @property
    def scan_task(self) -> Optional["asyncio.Task[None]"]:
        return self._state.scan_task

    def start_scan(
        self, roots: Iterable[str], force: bool = False
    ) -> Optional["asyncio.Task[None]"]:
        """
        Bat dau scan (phai goi tu ben trong event loop).

        Args:
            roots: Cac thu muc goc
            force: Huy scan dang chay va bat dau lai

        Returns:
            Task cua scan (task dang chay neu khong force), None neu khong co root
        """
        state = self._state
        if force:
            self.cancel_scan()
        elif state.is_initializing and state.scan_task is not None:
            return state.scan_task

        root_list = list(roots)
        if not root_list:
            return None

        epoch = state.next_epoch()
        state.is_initializing = True

        if state.config.show_startup_notifications:
            self._status("Initializing line counts...")

        task = asyncio.ensure_future(self._run(root_list, epoch))
        state.scan_task = task
        return task

    def cancel_scan(self) -> None:
        """Bump epoch de run dang chay dung o lan kiem tra tiep theo."""
        state = self._state
        state.next_epoch()
        state.is_initializing = False
        state.scan_task = None

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._state.scan_epoch and not self._engine.is_disposed

    async def _run(self, roots: List[str], epoch: int) -> None:
        state = self._state
        try:
            await state.timers.wait(state.config.initial_scan_delay_ms)
            if not self._is_current(epoch):
                return

            for root in roots:
                if not self._is_current(epoch):
                    return

                limit = state.config.discovery_limit
                files = await self._engine.source.enumerate(
                    root, exclude=self._exclude, limit=limit
                )
                if len(files) >= limit:
                    log_warning(
                        f"[Scanner] File discovery capped at {limit} in '{root}'. "
                        "Some files will only be counted when requested."
                    )

                candidates = [path for path in files if self._engine.is_eligible(path)]
                log_debug(
                    f"[Scanner] {len(candidates)}/{len(files)} eligible files in {root}"
                )
                await self._process_batches(candidates, epoch)

            if self._is_current(epoch):
                self._engine.request_full_refresh()
                log_info("[Scanner] Initialization complete")
                if state.config.show_startup_notifications:
                    self._status("Ready")
        except Exception as e:
            log_error("[Scanner] Initialization failed", e)
        finally:
            if epoch == state.scan_epoch:
                state.is_initializing = False
                state.scan_task = None

    async def _process_batches(self, files: List[str], epoch: int) -> None:
        state = self._state
        total = len(files)
        processed = 0

        for index in range(0, total, state.config.batch_size):
            if not self._is_current(epoch):
                return

            batch = files[index : index + state.config.batch_size]
            await self._engine.resolve_many(batch)
            self._engine.notify_changed(batch)

            previous = processed
            processed += len(batch)
            if processed // PROGRESS_INTERVAL > previous // PROGRESS_INTERVAL:
                log_info(f"[Scanner] Processing files ({processed}/{total})...")

            await state.timers.wait(state.config.batch_delay_ms)

    def _status(self, message: str) -> None:
        if self._on_status is None:
            return
        try:
            self._on_status(message)
        except Exception as e:
            log_error("[Scanner] Status callback failed", e)
