from .live_connection import LiveConnection

__all__ = ["LiveConnection"]
