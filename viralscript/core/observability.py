"""
Logfire observability configuration for ViralScript.

Provides tracing and monitoring for:
- Orchestration operations (one span per operation call)
- Gemini gateway invocations and retry attempts
- Pydantic validation of model responses

Usage:
    # At app startup
    from viralscript.core.observability import setup_logfire
    setup_logfire()

    # In services, use the logger or span context
    import logfire

    with logfire.span("generate_script", writing_mode=config.writing_mode):
        # ... operation code
        logfire.info("Generated {count} segments", count=len(segments))

Environment Variables:
    LOGFIRE_TOKEN: Your Logfire write token (required for production)
    LOGFIRE_PROJECT_NAME: Project name in Logfire dashboard
    LOGFIRE_ENVIRONMENT: Environment name (development, staging, production)
"""

import os
import logging
from typing import Optional

import logfire

logger = logging.getLogger(__name__)

_logfire_configured = False


def setup_logfire(
    project_name: Optional[str] = None,
    environment: Optional[str] = None,
    service_name: str = "viralscript"
) -> bool:
    """
    Configure Logfire for observability.

    Args:
        project_name: Logfire project name (or LOGFIRE_PROJECT_NAME env var)
        environment: Environment name (or LOGFIRE_ENVIRONMENT env var)
        service_name: Service name for tracing

    Returns:
        True if Logfire was configured, False if skipped (no token)
    """
    global _logfire_configured

    if _logfire_configured:
        logger.debug("Logfire already configured")
        return True

    token = os.environ.get("LOGFIRE_TOKEN")
    if not token:
        logger.info("LOGFIRE_TOKEN not set, skipping Logfire configuration")
        return False

    project = project_name or os.environ.get("LOGFIRE_PROJECT_NAME", "viralscript")
    env = environment or os.environ.get("LOGFIRE_ENVIRONMENT", "development")

    try:
        logfire.configure(
            token=token,
            project_name=project,
            service_name=service_name,
            environment=env,
            send_to_logfire=True,
        )

        # Instrument Pydantic for validation tracing
        logfire.instrument_pydantic()

        _logfire_configured = True
        logger.info(f"Logfire configured: project={project}, environment={env}")
        return True

    except Exception as e:
        logger.error(f"Failed to configure Logfire: {e}")
        return False


def is_configured() -> bool:
    """Whether setup_logfire() has completed successfully in this process."""
    return _logfire_configured
