"""
Configuration management for ViralScript
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""

    # Gemini
    GEMINI_API_KEY: str = os.getenv('GEMINI_API_KEY', '') or os.getenv('GOOGLE_GEMINI_API_KEY', '')

    # Generation sampling
    SCRIPT_TEMPERATURE: float = float(os.getenv('SCRIPT_TEMPERATURE', '0.8'))
    TITLE_TEMPERATURE: float = float(os.getenv('TITLE_TEMPERATURE', '0.9'))
    CANVAS_TEMPERATURE: float = float(os.getenv('CANVAS_TEMPERATURE', '0.7'))
    ANALYSIS_TEMPERATURE: float = float(os.getenv('ANALYSIS_TEMPERATURE', '0.7'))
    CANVAS_THINKING_BUDGET: int = int(os.getenv('CANVAS_THINKING_BUDGET', '2048'))

    # Resilience
    RETRY_MAX_ATTEMPTS: int = int(os.getenv('RETRY_MAX_ATTEMPTS', '3'))
    RETRY_BASE_DELAY_SECONDS: float = float(os.getenv('RETRY_BASE_DELAY_SECONDS', '2.0'))
    RETRY_MAX_DELAY_SECONDS: float = float(os.getenv('RETRY_MAX_DELAY_SECONDS', '8.0'))
    REQUEST_TIMEOUT_SECONDS: float = float(os.getenv('REQUEST_TIMEOUT_SECONDS', '60'))

    # Prompt size ceilings (characters)
    TOPIC_CHAR_LIMIT: int = int(os.getenv('TOPIC_CHAR_LIMIT', '500000'))
    AUTO_SELECTION_CHAR_LIMIT: int = int(os.getenv('AUTO_SELECTION_CHAR_LIMIT', '30000'))

    # Quota
    FREE_DAILY_LIMIT: int = int(os.getenv('FREE_DAILY_LIMIT', '3'))

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'GEMINI_API_KEY': cls.GEMINI_API_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    # ========================================================================
    # Model Configuration
    # ========================================================================

    DEFAULT_MODEL = "gemini-3-flash-preview"
    IMAGE_MODEL = "gemini-2.5-flash-image"

    @classmethod
    def get_model(cls, key: str) -> str:
        """
        Get the configured Gemini model for a specific component.

        Resolution Order:
        1. Environment Variable: {KEY}_MODEL (e.g. SCRIPT_MODEL)
        2. Default mapping in this method
        3. Config.DEFAULT_MODEL

        Args:
            key: component name (e.g., 'script', 'canvas', 'image')
                 keys are case-insensitive.

        Returns:
            Model string identifier (e.g., 'gemini-3-flash-preview')
        """
        key_upper = key.upper()

        # 1. Check Environment Variable
        env_model = os.getenv(f"{key_upper}_MODEL")
        if env_model:
            return env_model

        # 2. Check Default Mappings
        mappings = {
            "SCRIPT": cls.DEFAULT_MODEL,      # Script packages and extensions
            "ANALYSIS": cls.DEFAULT_MODEL,    # Analysis, simulation, director plans
            "CANVAS": cls.DEFAULT_MODEL,      # Flat-text rewrites
            "TOPICS": cls.DEFAULT_MODEL,      # Search-grounded topic angles
            "IMAGE": cls.IMAGE_MODEL,         # Visual previews and thumbnails
        }

        if key_upper in mappings:
            return mappings[key_upper]

        # 3. Fallback to Global Default
        return cls.DEFAULT_MODEL
