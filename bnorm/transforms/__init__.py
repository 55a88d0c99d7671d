from .statistics import ChannelStats, channel_statistics, reduction_count
from .normalize import BNCache, batch_norm_forward, batch_norm_backward

__all__ = [
    "ChannelStats",
    "channel_statistics",
    "reduction_count",
    "BNCache",
    "batch_norm_forward",
    "batch_norm_backward",
]
