from .bls import BLS_API_URL, fetch_series
from .common import FetchError
from .openai_client import OpenAIClient

__all__ = [
    "BLS_API_URL",
    "FetchError",
    "OpenAIClient",
    "fetch_series",
]
