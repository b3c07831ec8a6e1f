"""
Persona Registry - immutable catalog of creator personas.

The registry is built once at startup and passed into every service that
needs persona data. Tests construct smaller registries from fixture profiles.

Usage:
    from viralscript.personas import load_default_registry

    registry = load_default_registry()
    persona = registry.get_persona("dhruvrathee")
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import yaml

from ..core.exceptions import PersonaNotFound
from ..services.models import PersonaProfile, ThumbnailStyle

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "catalog.yaml"

DEFAULT_THUMBNAIL_KEY = "default"


def persona_id_from_name(name: str) -> str:
    """Derive a persona id: lowercased, whitespace and '@' removed."""
    return "".join(name.split()).lower().replace("@", "")


class PersonaRegistry:
    """
    Read-only persona catalog.

    Order is significant only for default selection: the first persona is
    the system default.
    """

    def __init__(
        self,
        personas: Sequence[PersonaProfile],
        thumbnail_styles: Optional[Dict[str, ThumbnailStyle]] = None,
    ):
        """
        Args:
            personas: Ordered persona profiles (first is the default)
            thumbnail_styles: Thumbnail directives keyed by persona id fragment

        Raises:
            ValueError: If the catalog is empty or ids collide
        """
        if not personas:
            raise ValueError("Persona registry requires at least one persona")

        self._personas: Tuple[PersonaProfile, ...] = tuple(personas)
        self._by_id: Dict[str, PersonaProfile] = {}
        for persona in self._personas:
            if persona.id in self._by_id:
                raise ValueError(f"Duplicate persona id in catalog: {persona.id}")
            self._by_id[persona.id] = persona

        self._thumbnail_styles: Dict[str, ThumbnailStyle] = dict(thumbnail_styles or {})

    # =========================================================================
    # Lookup
    # =========================================================================

    def list_personas(self) -> List[PersonaProfile]:
        """All personas in catalog order."""
        return list(self._personas)

    def get_persona(self, persona_id: str) -> PersonaProfile:
        """
        Get a persona by id.

        Raises:
            PersonaNotFound: If no persona has this id
        """
        persona = self._by_id.get(persona_id)
        if persona is None:
            raise PersonaNotFound(persona_id)
        return persona

    def find_persona(self, persona_id: Optional[str]) -> Optional[PersonaProfile]:
        """Get a persona by id, or None if absent."""
        if not persona_id:
            return None
        return self._by_id.get(persona_id)

    @property
    def default(self) -> PersonaProfile:
        return self._personas[0]

    def __len__(self) -> int:
        return len(self._personas)

    def __contains__(self, persona_id: object) -> bool:
        return persona_id in self._by_id

    def get_thumbnail_style(self, persona_id: str) -> Optional[ThumbnailStyle]:
        """
        Thumbnail directive for a persona.

        Keys match when they are a substring of the persona id
        ("hormozi" matches "alexhormozi"). Falls back to the "default" entry.
        """
        for key, style in self._thumbnail_styles.items():
            if key != DEFAULT_THUMBNAIL_KEY and key in persona_id:
                return style
        return self._thumbnail_styles.get(DEFAULT_THUMBNAIL_KEY)

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "PersonaRegistry":
        """
        Load a registry from a YAML catalog file.

        Args:
            path: Path to a catalog with `personas` and `thumbnail_styles` sections

        Returns:
            PersonaRegistry instance

        Raises:
            FileNotFoundError: If the catalog file doesn't exist
            ValueError: If the catalog is empty or invalid
        """
        catalog_path = Path(path)
        if not catalog_path.exists():
            raise FileNotFoundError(f"Persona catalog not found at {catalog_path}")

        with open(catalog_path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}

        personas = []
        for entry in raw.get('personas', []):
            data = dict(entry)
            data.setdefault('id', persona_id_from_name(data['name']))
            personas.append(PersonaProfile.model_validate(data))

        styles = {
            key: ThumbnailStyle.model_validate(value)
            for key, value in (raw.get('thumbnail_styles') or {}).items()
        }

        logger.info(f"Loaded {len(personas)} personas from {catalog_path.name}")
        return cls(personas, styles)


def load_default_registry() -> PersonaRegistry:
    """Build a registry from the bundled catalog."""
    return PersonaRegistry.from_yaml(DEFAULT_CATALOG_PATH)
