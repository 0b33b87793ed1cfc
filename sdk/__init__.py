from .config import CaptureConfig, load_config
from .registry import Registry

__all__ = ["CaptureConfig", "load_config", "Registry"]
