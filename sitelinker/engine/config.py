"""Configuration helpers for the internal linking engine."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from .types import RELATION_KINDS

ANCHOR_SOURCES = ("title", "synonyms", "both")


class ConfigurationError(ValueError):
    """Raised when a linking configuration cannot be used."""


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the engine configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def policy(self, section: str, key: str, default: Any = None) -> Any:
        values = self.raw.get(section) or {}
        return values.get(key, default)

    def priority(self, tier: str) -> int:
        priorities = self.raw.get("priorities", {})
        return int(priorities.get(tier, 0))

    @property
    def case_sensitive(self) -> bool:
        return bool(self.policy("anchor_policy", "case_sensitive", False))


DEFAULTS: Dict[str, Any] = {
    "enabled": True,
    "max_links_per_page": 5,
    # One link per N words; ``None`` disables the word-derived cap.
    "links_per_words": 100,
    "min_words_before_linking": 50,
    "dedupe_anchors": True,
    "allow_self_link": False,
    "skip_linked_targets": True,
    "link_class": None,
    "relation_policy": {
        "exclude_hierarchy": True,
        "include_relations": [],
        "exclude_relations": ["parent", "ancestor"],
    },
    "anchor_policy": {
        "source": "both",
        "max_anchors_per_target": 5,
        "case_sensitive": False,
    },
    "target_policy": {
        "prefer_nested": True,
        "disallow_targets": [],
    },
    "placement_policy": {
        "one_link_per_paragraph": False,
        "skip_first_paragraph": False,
        "min_paragraph_words": 10,
        "container_tags": ["p"],
        "extra_excluded_tags": [],
    },
    "priorities": {
        "related": 100,
        "sibling": 50,
        "default": 10,
        "nested_bonus": 20,
    },
}

_NON_NEGATIVE_INTS = (
    ("max_links_per_page",),
    ("min_words_before_linking",),
    ("anchor_policy", "max_anchors_per_target"),
    ("placement_policy", "min_paragraph_words"),
)


def load_config(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> EngineConfig:
    """Load configuration from YAML and overrides, merging with defaults."""

    data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        if not isinstance(user, dict):
            raise ConfigurationError(f"{path}: expected a mapping at the top level")
        merge_into(data, user)

    if overrides:
        merge_into(data, copy.deepcopy(dict(overrides)))

    config = EngineConfig(data)
    validate_config(config)
    return config


def merge_into(base: Dict[str, Any], override: Mapping[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value


def validate_config(config: EngineConfig) -> None:
    """Raise :class:`ConfigurationError` for settings the engine cannot honour."""

    for key_path in _NON_NEGATIVE_INTS:
        value: Any = config.raw
        for key in key_path:
            value = value.get(key) if isinstance(value, dict) else None
        name = ".".join(key_path)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        if value < 0:
            raise ConfigurationError(f"{name} must not be negative, got {value}")

    divisor = config.get("links_per_words")
    if divisor is not None:
        if isinstance(divisor, bool) or not isinstance(divisor, int) or divisor <= 0:
            raise ConfigurationError(f"links_per_words must be a positive integer or null, got {divisor!r}")

    for list_name in ("include_relations", "exclude_relations"):
        relations = config.policy("relation_policy", list_name, []) or []
        unknown = sorted(set(relations) - set(RELATION_KINDS))
        if unknown:
            raise ConfigurationError(f"relation_policy.{list_name} has unknown relation kinds: {', '.join(unknown)}")

    source = config.policy("anchor_policy", "source", "both")
    if source not in ANCHOR_SOURCES:
        raise ConfigurationError(f"anchor_policy.source must be one of {ANCHOR_SOURCES}, got {source!r}")
