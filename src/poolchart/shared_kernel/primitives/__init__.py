"""
Shared Kernel primitives.

This package re-exports the chart primitives so that other modules can import
them from one place:

    from poolchart.shared_kernel.primitives import Bar, Resolution
"""

from .bar import Bar
from .resolution import SUPPORTED_RESOLUTIONS, Resolution, bucket_seconds_of

__all__ = [
    "Bar",
    "Resolution",
    "SUPPORTED_RESOLUTIONS",
    "bucket_seconds_of",
]
