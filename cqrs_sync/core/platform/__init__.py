"""
Platform Seam

Timer and error-sink primitives injected into the sync components.
"""

from .base import Platform
from .asyncio_platform import AsyncioPlatform
from .manual import ManualPlatform

__all__ = ["Platform", "AsyncioPlatform", "ManualPlatform"]
