from .hub import BroadcastHub

__all__ = ["BroadcastHub"]
