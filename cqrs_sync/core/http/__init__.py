"""
HTTP Transport

Callback-shaped client interface and its httpx implementation.
"""

from .base import HttpClient, ResponseCallback
from .httpx_client import HttpxHttpClient

__all__ = ["HttpClient", "ResponseCallback", "HttpxHttpClient"]
