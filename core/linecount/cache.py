"""
BoundedCache - LRU cache kich thuoc co dinh.

OrderedDict cache:
- Dau OrderedDict la entry lau nhat khong duoc dung (LRU)
- Cuoi OrderedDict la entry vua duoc dung (MRU)
- get() va set() promote entry len MRU; peek()/has() thi khong
- Eviction: khi set key moi luc size == capacity, xoa dung 1 entry LRU

Dung 3 lan trong EngineState: metadata (fingerprint), line count,
rendered annotation.

KHONG co lock: tat ca mutation chi chay tren event loop thread
(xem services/engine_state.py).
"""

import math
from collections import OrderedDict
from typing import Generic, Iterator, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")

# Capacity mac dinh cho moi cache trong engine
DEFAULT_CAPACITY = 10_000


class BoundedCache(Generic[K, V]):
    """
    LRU cache voi capacity co dinh.

    Moi operation la O(1) (OrderedDict.move_to_end / popitem).
    Key khong ton tai tra ve None, khong bao gio raise.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Args:
            capacity: So entries toi da. Gia tri < 1 (hoac khong hop le) clamp ve 1.
        """
        try:
            self._capacity = max(1, math.floor(capacity))
        except (TypeError, ValueError, OverflowError):
            self._capacity = 1
        self._store: OrderedDict[K, V] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        """So entries hien co."""
        return len(self._store)

    def get(self, key: K) -> Optional[V]:
        """
        Lay value va promote entry len most-recently-used.

        Returns:
            Value neu co, None neu khong
        """
        if key not in self._store:
            return None
        self._store.move_to_end(key)
        return self._store[key]

    def peek(self, key: K) -> Optional[V]:
        """Lay value KHONG promote (khong anh huong thu tu eviction)."""
        return self._store.get(key)

    def has(self, key: K) -> bool:
        """Kiem tra key co trong cache khong, khong promote."""
        return key in self._store

    def set(self, key: K, value: V) -> None:
        """
        Insert hoac overwrite, luon promote len MRU.

        Overwrite key da co khong bao gio gay eviction.
        """
        if key in self._store:
            self._store.move_to_end(key)
        elif len(self._store) >= self._capacity:
            self._store.popitem(last=False)
        self._store[key] = value

    def delete(self, key: K) -> bool:
        """
        Xoa entry (khong dieu kien).

        Returns:
            True neu co entry bi xoa
        """
        if key not in self._store:
            return False
        del self._store[key]
        return True

    def clear(self) -> None:
        """Xoa toan bo cache."""
        self._store.clear()

    def keys(self) -> list[K]:
        """Snapshot cac keys theo thu tu LRU -> MRU."""
        return list(self._store.keys())

    # === Cacheable interface (invalidate theo path / toan bo) ===

    def invalidate_path(self, path: K) -> None:
        self.delete(path)

    def invalidate_all(self) -> None:
        self.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._store.keys()))
