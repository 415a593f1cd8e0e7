"""clamgate middleware package.

Registration order in create_app() (last added runs first):
  UploadSizeLimitMiddleware → RequestIdMiddleware → OpenCORSMiddleware
"""

from clamgate.middleware.cors import CORS_HEADERS, OpenCORSMiddleware
from clamgate.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from clamgate.middleware.upload_limit import UploadSizeLimitMiddleware

__all__ = [
    "CORS_HEADERS",
    "OpenCORSMiddleware",
    "REQUEST_ID_HEADER",
    "RequestIdMiddleware",
    "UploadSizeLimitMiddleware",
]
