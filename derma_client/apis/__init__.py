from .login_api import LoginApi
from .upload_api import UploadApi, UploadError

__all__ = ["LoginApi", "UploadApi", "UploadError"]
