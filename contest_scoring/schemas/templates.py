"""Ready-made rubrics for common contest types.

Contests without an explicit config fall back to ``MIXOLOGY_CONFIG``.
"""
from __future__ import annotations

from contest_scoring.schemas.contest_config import AttributeConfig, ContestConfig

MIXOLOGY_CONFIG = ContestConfig(
    topic="Mixology",
    entry_label="Drink",
    entry_label_plural="Drinks",
    attributes=[
        AttributeConfig(id="aroma", label="Aroma", description="How appealing is the scent?"),
        AttributeConfig(id="balance", label="Balance", description="How well do the flavors work together?"),
        AttributeConfig(id="presentation", label="Presentation", description="Visual appeal and garnish"),
        AttributeConfig(id="creativity", label="Creativity", description="Originality and innovation"),
        AttributeConfig(id="overall", label="Overall", description="Overall impression"),
    ],
)

CHILI_CONFIG = ContestConfig(
    topic="Chili",
    entry_label="Chili",
    entry_label_plural="Chilies",
    attributes=[
        AttributeConfig(id="heat", label="Heat", description="Spiciness level and heat balance"),
        AttributeConfig(id="flavor", label="Flavor", description="Depth and complexity of taste"),
        AttributeConfig(id="texture", label="Texture", description="Consistency and mouthfeel"),
        AttributeConfig(id="appearance", label="Appearance", description="Visual presentation"),
        AttributeConfig(id="overall", label="Overall", description="Overall impression"),
    ],
)

COSPLAY_CONFIG = ContestConfig(
    topic="Cosplay",
    entry_label="Cosplay",
    entry_label_plural="Cosplays",
    attributes=[
        AttributeConfig(id="accuracy", label="Accuracy", description="Faithfulness to source material"),
        AttributeConfig(id="craftsmanship", label="Craftsmanship", description="Quality of construction and materials"),
        AttributeConfig(id="presentation", label="Presentation", description="Stage presence and posing"),
        AttributeConfig(id="creativity", label="Creativity", description="Original interpretation or design choices"),
    ],
)

DANCE_CONFIG = ContestConfig(
    topic="Dance",
    entry_label="Performance",
    entry_label_plural="Performances",
    attributes=[
        AttributeConfig(id="technique", label="Technique", description="Technical skill and execution"),
        AttributeConfig(id="musicality", label="Musicality", description="Rhythm and musical interpretation"),
        AttributeConfig(id="expression", label="Expression", description="Emotional delivery and storytelling"),
        AttributeConfig(id="difficulty", label="Difficulty", description="Complexity of choreography"),
        AttributeConfig(id="overall", label="Overall", description="Overall impression"),
    ],
)

BAKING_CONFIG = ContestConfig(
    topic="Baking",
    entry_label="Bake",
    entry_label_plural="Bakes",
    attributes=[
        AttributeConfig(id="taste", label="Taste", description="Flavor and deliciousness"),
        AttributeConfig(id="texture", label="Texture", description="Consistency and mouthfeel"),
        AttributeConfig(id="appearance", label="Appearance", description="Visual presentation and decoration"),
        AttributeConfig(id="creativity", label="Creativity", description="Originality and innovation"),
        AttributeConfig(id="technique", label="Technique", description="Baking skill demonstrated"),
    ],
)

BBQ_CONFIG = ContestConfig(
    topic="BBQ",
    attributes=[
        AttributeConfig(id="taste", label="Taste", description="Overall flavor profile"),
        AttributeConfig(id="tenderness", label="Tenderness", description="Texture and bite"),
        AttributeConfig(id="appearance", label="Appearance", description="Visual presentation"),
        AttributeConfig(id="smoke", label="Smoke", description="Smoke ring and smokiness"),
    ],
)

DEFAULT_TEMPLATES: dict[str, ContestConfig] = {
    "mixology": MIXOLOGY_CONFIG,
    "chili": CHILI_CONFIG,
    "cosplay": COSPLAY_CONFIG,
    "dance": DANCE_CONFIG,
    "baking": BAKING_CONFIG,
    "bbq": BBQ_CONFIG,
}


def get_template(key: str) -> ContestConfig | None:
    template = DEFAULT_TEMPLATES.get(key.strip().lower())
    return template.model_copy(deep=True) if template is not None else None


def template_keys() -> list[str]:
    return list(DEFAULT_TEMPLATES)


def default_config(key: str = "mixology") -> ContestConfig:
    """Deep copy of the fallback rubric; unknown keys fall back to Mixology."""
    return get_template(key) or MIXOLOGY_CONFIG.model_copy(deep=True)
