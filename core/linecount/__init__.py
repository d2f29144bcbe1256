"""
Package core.linecount - Line counting pipeline.

Modules:
- cache: BoundedCache LRU (metadata, line counts, rendered annotations)
- counter: Streaming line counter voi read timeout, estimation, rendering
- errors: Cac loi duoc engine tu recover (timeout, queue full, ...)
"""
