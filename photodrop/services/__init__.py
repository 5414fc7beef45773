"""Services for photodrop."""
from .api_client import JSONAPIClient, parse_response
from .encoders import Base64JSONEncoder, MultipartEncoder, get_encoder
from .preview import PreviewService

__all__ = [
    "JSONAPIClient",
    "parse_response",
    "MultipartEncoder",
    "Base64JSONEncoder",
    "get_encoder",
    "PreviewService",
]
