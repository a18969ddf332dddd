from .ws_live_bar_stream import (
    LiveStreamHooks,
    WsLiveBarStream,
    build_live_stream_url,
    parse_live_bar_message,
)

__all__ = [
    "LiveStreamHooks",
    "WsLiveBarStream",
    "build_live_stream_url",
    "parse_live_bar_message",
]
