# backend/ocs_ai/core/__init__.py
"""
Core package for the OCS AI answer proxy.
Exposes the config loader, request/response models and the answerer.
"""

from .config import AppConfig, AIConfig, ServerConfig, load_config
from .errors import QuizProxyError
from .openai_qa import QuizAnswerer
from .schemas import (
    QueryRequest,
    QueryResponse,
    ErrorResponse,
)

__all__ = [
    "AppConfig",
    "AIConfig",
    "ServerConfig",
    "load_config",
    "QuizProxyError",
    "QuizAnswerer",
    "QueryRequest",
    "QueryResponse",
    "ErrorResponse",
]
