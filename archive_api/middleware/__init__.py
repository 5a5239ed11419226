from .logging import RequestLoggingMiddleware
from .upload_limit import UploadSizeLimitMiddleware

__all__ = ["RequestLoggingMiddleware", "UploadSizeLimitMiddleware"]
