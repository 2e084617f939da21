from .chat import ChatNotifier

__all__ = ["ChatNotifier"]
