"""
Tests for PersonaRegistry - bundled catalog and fixture registries.
"""

import pytest

from viralscript.core.exceptions import PersonaNotFound
from viralscript.personas import PersonaRegistry, load_default_registry, persona_id_from_name
from viralscript.services.models import PersonaBio, PersonaProfile, ThumbnailStyle

EXPECTED_ORDER = [
    "dhruvrathee",
    "nitishrajput",
    "thynkwhy",
    "mrbeast",
    "navalravikant",
    "raftar",
    "alexhormozi",
    "jordanpeterson",
    "veritasium",
    "imangadzhi",
    "sharanhegde",
]


def _make_persona(persona_id: str, name: str = "Test Creator") -> PersonaProfile:
    return PersonaProfile(id=persona_id, name=name, bio=PersonaBio(archetype="The Tester"))


@pytest.fixture(scope="module")
def registry():
    return load_default_registry()


class TestBundledCatalog:
    """The shipped catalog.yaml."""

    def test_loads_all_personas_in_order(self, registry):
        assert [p.id for p in registry.list_personas()] == EXPECTED_ORDER

    def test_first_persona_is_default(self, registry):
        assert registry.default.id == "dhruvrathee"

    def test_every_persona_has_full_bio(self, registry):
        for persona in registry.list_personas():
            assert persona.bio.archetype
            assert persona.bio.philosophy.core_beliefs
            assert persona.bio.voice.tone
            assert persona.bio.structure.hook_style
            assert persona.hex.startswith("#")

    def test_ids_match_names(self, registry):
        for persona in registry.list_personas():
            assert persona.id == persona_id_from_name(persona.name)


class TestLookup:
    def test_get_persona(self, registry):
        assert registry.get_persona("veritasium").name == "Veritasium"

    def test_get_unknown_persona_raises(self, registry):
        with pytest.raises(PersonaNotFound) as exc_info:
            registry.get_persona("nobody")
        assert exc_info.value.persona_id == "nobody"

    def test_find_persona_returns_none(self, registry):
        assert registry.find_persona("nobody") is None
        assert registry.find_persona("") is None

    def test_contains(self, registry):
        assert "mrbeast" in registry
        assert "nobody" not in registry


class TestThumbnailStyles:
    def test_substring_match(self, registry):
        hormozi = registry.get_thumbnail_style("alexhormozi")
        assert hormozi is not None
        assert hormozi != registry.get_thumbnail_style("veritasium")

    def test_falls_back_to_default(self, registry):
        style = registry.get_thumbnail_style("veritasium")
        assert style is not None
        assert style == registry.get_thumbnail_style("jordanpeterson")


class TestFixtureRegistry:
    """Registries built from test fixtures."""

    def test_small_registry(self):
        reg = PersonaRegistry([_make_persona("alpha"), _make_persona("beta")])
        assert len(reg) == 2
        assert reg.default.id == "alpha"
        assert reg.get_thumbnail_style("alpha") is None

    def test_empty_registry_rejected(self):
        with pytest.raises(ValueError, match="at least one"):
            PersonaRegistry([])

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            PersonaRegistry([_make_persona("alpha"), _make_persona("alpha")])

    def test_default_thumbnail_key(self):
        default = ThumbnailStyle(visual_dna="plain")
        reg = PersonaRegistry([_make_persona("alpha")], {"default": default})
        assert reg.get_thumbnail_style("alpha") == default

    def test_profiles_are_immutable(self):
        persona = _make_persona("alpha")
        with pytest.raises(Exception):
            persona.name = "Changed"


class TestPersonaIdFromName:
    def test_strips_spaces_and_lowercases(self):
        assert persona_id_from_name("Dhruv Rathee") == "dhruvrathee"

    def test_strips_at_sign(self):
        assert persona_id_from_name("@Raftar") == "raftar"
