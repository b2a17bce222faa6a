from .common_library import set_password

__all__ = ["set_password"]
