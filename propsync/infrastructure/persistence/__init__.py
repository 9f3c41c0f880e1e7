from .media import MediaStore

__all__ = ["MediaStore"]
