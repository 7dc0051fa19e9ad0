from .upload_validator import UploadValidator

__all__ = ["UploadValidator"]
