"""
CacheRegistry - Diem trung tam de invalidate cac caches cua mot engine.

Thay vi goi invalidate tung cache rieng le, EngineState dang ky
metadata / line count / rendered caches vao mot CacheRegistry:
- invalidate_for_path(path): Purge mot key o moi cache
- invalidate_for_workspace(): Xoa toan bo
- get_stats(): Lay thong ke cache cho monitoring

Moi EngineState co registry rieng va chi duoc dung tren event loop thread,
nen khong can lock.
"""

import logging

from services.cache_protocol import ICacheable

logger = logging.getLogger(__name__)


class CacheRegistry:
    """Registry cac caches cua mot engine."""

    def __init__(self) -> None:
        self._caches: dict[str, ICacheable] = {}

    def register(self, name: str, cache: ICacheable) -> None:
        """
        Dang ky mot cache de quan ly.

        Args:
            name: Ten dinh danh cho cache (vd: "metadata")
            cache: Instance implement ICacheable protocol
        """
        self._caches[name] = cache

    def unregister(self, name: str) -> None:
        self._caches.pop(name, None)

    def invalidate_for_path(self, path: str) -> None:
        """
        Invalidate tat ca caches cho mot key.

        Exceptions tu tung cache khong anh huong cac cache khac.
        """
        for name, cache in list(self._caches.items()):
            try:
                cache.invalidate_path(path)
            except Exception as e:
                logger.warning(
                    "Failed to invalidate cache '%s' for path '%s': %s",
                    name,
                    path,
                    e,
                )

    def invalidate_for_workspace(self) -> None:
        """Xoa toan bo tat ca caches."""
        for name, cache in list(self._caches.items()):
            try:
                cache.invalidate_all()
            except Exception as e:
                logger.warning(
                    "Failed to invalidate_all for cache '%s': %s",
                    name,
                    e,
                )

    def get_stats(self) -> dict[str, int]:
        """
        Tra ve thong ke so entries cua tung cache.

        Returns:
            Dict mapping cache_name -> so entries (-1 neu cache bi loi)
        """
        stats: dict[str, int] = {}
        for name, cache in self._caches.items():
            try:
                stats[name] = len(cache)
            except Exception:
                stats[name] = -1
        return stats

    def get_registered_names(self) -> list[str]:
        """Tra ve danh sach ten cac cache da dang ky."""
        return list(self._caches.keys())
