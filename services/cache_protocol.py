"""
ICacheable Protocol - Interface cho cac caches cua engine.

Dinh nghia contract chung de CacheRegistry co the invalidate tat ca caches
mot cach thong nhat qua mot API duy nhat.

Protocol pattern cho phep cac cache implementations khong can ke thua,
chi can implement dung methods (BoundedCache la implementation chinh).
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ICacheable(Protocol):
    """
    Protocol cho cac cache co the duoc quan ly boi CacheRegistry.
    """

    def invalidate_path(self, path: str) -> None:
        """
        Xoa cache entries cua mot key.

        Goi khi file thay doi, bi xoa, hoac resolve that bai.

        Args:
            path: Key (duong dan file) can xoa
        """
        ...

    def invalidate_all(self) -> None:
        """Xoa toan bo cache (refresh, deactivate)."""
        ...

    def __len__(self) -> int:
        """So entries hien co, dung cho monitoring va debugging."""
        ...
