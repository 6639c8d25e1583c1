from .config import SDK_CONFIG

__all__ = ["SDK_CONFIG"]
