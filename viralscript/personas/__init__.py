"""
Creator persona catalog and registry.
"""

from .registry import PersonaRegistry, load_default_registry, persona_id_from_name

__all__ = ['PersonaRegistry', 'load_default_registry', 'persona_id_from_name']
