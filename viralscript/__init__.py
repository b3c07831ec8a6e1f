"""
ViralScript - Creator Persona Script Studio

Generates, analyzes and refines short-form video scripts in the voice of
pre-defined creator personas, backed by Gemini structured generation.
"""

__version__ = "0.1.0"
__author__ = "ViralScript Team"
