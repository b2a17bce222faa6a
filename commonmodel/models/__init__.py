from .common_model import CommonModel

__all__ = ["CommonModel"]
