"""
Error classes cho line counting pipeline.

Tat ca deu duoc AnnotationEngine bat va recover tai cho
(purge cache, tra ve "khong co annotation"), khong bao gio
lan ra ngoai caller.
"""


class LineCountError(Exception):
    """Base error cho line counting."""

    pass


class ReadTimeoutError(LineCountError, TimeoutError):
    """Stream khong ket thuc trong thoi gian cho phep (vd: network mount bi treo)."""

    pass


class QueueFullError(LineCountError):
    """ConcurrencyLimiter da day ca running slots lan hang doi."""

    pass
