"""
Typed failures raised by the orchestration core.

Every failure carries enough detail for the caller to tell the user the right
corrective action: reconfigure (MissingCredential), wait and retry
(TransportError), rephrase (ImageGenerationRefused) or simply try again
(MalformedResponse).

Usage:
    from viralscript.core.exceptions import TransportError, MalformedResponse

    try:
        script = await service.generate_script(config)
    except MalformedResponse as e:
        show("The AI response was incomplete. Please try again.")
    except TransportError as e:
        show(f"Service unavailable ({e.status})")
"""

from typing import Any, Dict, Optional

# TransportError status used for per-attempt timeouts
REQUEST_TIMEOUT_STATUS = 408


class ViralScriptError(Exception):
    """Base class for all core failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        # Set by the orchestration runner when the error leaves an operation
        self.operation: Optional[str] = None
        super().__init__(message)


class MissingCredential(ViralScriptError):
    """No Gemini API key configured. Raised before any network call."""

    def __init__(self, message: str = "GEMINI_API_KEY not configured"):
        super().__init__(message)


class TransportError(ViralScriptError):
    """
    Network or service failure from the model provider.

    ``status`` and ``message`` are preserved verbatim from the provider so the
    retry classifier can inspect them.
    """

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(message, {"status": status})

    def __str__(self) -> str:
        return f"[{self.status}] {self.message}"


class MalformedResponse(ViralScriptError):
    """Model output could not be coerced into JSON of the expected shape."""

    PREVIEW_CHARS = 200

    def __init__(self, raw_text: str, reason: str = "The AI response was incomplete or invalid JSON"):
        self.raw_length = len(raw_text or "")
        self.preview = (raw_text or "")[:self.PREVIEW_CHARS]
        super().__init__(
            reason,
            {"raw_length": self.raw_length, "preview": self.preview},
        )


class InvalidIntent(ViralScriptError):
    """Caller misuse detected before reaching the network layer."""


class ImageGenerationRefused(ViralScriptError):
    """The image model answered with text instead of image data."""

    def __init__(self, text: str = ""):
        self.text = text
        message = "No image generated. The model may have refused the request."
        if text:
            message = f"No image generated. The model may have refused the request: {text}"
        super().__init__(
            message,
            {"model_text": text[:500]},
        )


class PersonaNotFound(ViralScriptError):
    """Requested persona id is not in the registry."""

    def __init__(self, persona_id: str):
        self.persona_id = persona_id
        super().__init__(f"Persona not found: {persona_id}", {"persona_id": persona_id})


class OperationCancelled(ViralScriptError):
    """The caller cancelled the operation between retry attempts."""

    def __init__(self, attempts_made: int = 0):
        self.attempts_made = attempts_made
        super().__init__(
            f"Operation cancelled after {attempts_made} attempt(s)",
            {"attempts_made": attempts_made},
        )
