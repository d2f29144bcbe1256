"""
Interfaces cho Annotation Engine.

Dinh nghia contracts cho:
- Fingerprint: Metadata re (size + mtime) dung de phat hien stale cache
- IAnnotationSource: Data source ma engine tieu thu (observe/stream/enumerate)
- EligibilityPredicate: Callable quyet dinh key nao duoc dem dong
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional


@dataclass(frozen=True)
class Fingerprint:
    """
    Metadata cua mot key tai thoi diem observe.

    Hai fingerprints bang nhau khi va chi khi ca size lan mtime_ns bang nhau.

    Attributes:
        size: Kich thuoc noi dung (bytes, >= 0)
        mtime_ns: Thoi diem sua doi cuoi (nanoseconds)
    """

    size: int
    mtime_ns: int


EligibilityPredicate = Callable[[str], bool]


class IAnnotationSource(ABC):
    """
    Interface cho data source cua engine.

    Moi implementation phai dam bao:
    - observe() khong raise cho key khong ton tai (tra ve None)
    - open_stream() tra ve async iterator single-pass, co aclose()
    - enumerate() ton trong limit va bo qua path bi exclude
    """

    @abstractmethod
    async def observe(self, key: str) -> Optional[Fingerprint]:
        """
        Lay fingerprint hien tai cua key.

        Args:
            key: Duong dan file

        Returns:
            Fingerprint, hoac None neu key khong ton tai / khong phai file thuong
        """
        ...

    @abstractmethod
    def open_stream(self, key: str) -> AsyncIterator[bytes]:
        """
        Mo stream doc noi dung cua key theo chunk.

        Args:
            key: Duong dan file

        Returns:
            Async iterator cac chunk bytes
        """
        ...

    @abstractmethod
    async def enumerate(
        self,
        root: str,
        exclude: Optional[Callable[[str], bool]] = None,
        limit: Optional[int] = None,
    ) -> List[str]:
        """
        Liet ke cac keys duoi root.

        Args:
            root: Thu muc goc
            exclude: Predicate tra ve True cho path can bo qua
            limit: So keys toi da

        Returns:
            Danh sach keys (toi da limit phan tu)
        """
        ...
