from .contest_config import ATTRIBUTE_ID_PATTERN, AttributeConfig, ContestConfig
from .templates import (
    DEFAULT_TEMPLATES, MIXOLOGY_CONFIG, default_config, get_template, template_keys,
)

__all__ = [
    "ATTRIBUTE_ID_PATTERN", "AttributeConfig", "ContestConfig",
    "DEFAULT_TEMPLATES", "MIXOLOGY_CONFIG", "default_config", "get_template", "template_keys",
]
