"""
Core module - Configuration, error taxonomy, and observability
"""

from .config import Config
from .exceptions import (
    ViralScriptError,
    MissingCredential,
    TransportError,
    MalformedResponse,
    InvalidIntent,
    ImageGenerationRefused,
    PersonaNotFound,
    OperationCancelled,
)

__all__ = [
    'Config',
    'ViralScriptError',
    'MissingCredential',
    'TransportError',
    'MalformedResponse',
    'InvalidIntent',
    'ImageGenerationRefused',
    'PersonaNotFound',
    'OperationCancelled',
]
