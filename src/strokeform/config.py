"""
Configuration management for strokeform.

Loads YAML configuration with sensible defaults for every engine stage.
The config object is passed explicitly into each call; the engine holds no
global settings of its own.
"""

import math
import os
from dataclasses import dataclass, field

import yaml


@dataclass
class RecognitionConfig:
    """Configuration for fingerprinting and classification."""
    closure_threshold: float = 50.0
    closure_relative: float = 0.2  # fraction of the larger bbox dimension
    corner_window: int = 8
    corner_step: int = 4
    corner_merge_distance: int = 20
    corner_angle_threshold: float = math.pi / 3
    min_corner_points: int = 15
    overshoot_threshold: float = 50.0


@dataclass
class RefinementConfig:
    """Configuration for stroke refinement applied on stroke completion."""
    enabled: bool = True
    smooth: int = 2  # Chaikin iterations, 0 disables
    simplify: float = 2.0  # Douglas-Peucker tolerance, 0 disables
    normalize: bool = False
    normalize_size: float = 200.0
    circle_points: int = 60


@dataclass
class SpatialConfig:
    """Configuration for spatial graph building and clustering."""
    touching_threshold: float = 50.0
    composition_proximity: float = 35.0


@dataclass
class MatchingConfig:
    """Configuration for composition and primitive matching."""
    threshold: float = 0.8
    primitive_threshold: float = 0.8
    max_combinations: int = 1000
    max_search_steps: int = 20000
    stop_on_first: bool = True
    fuzzy_scores: list = field(default_factory=lambda: [1.0, 0.7, 0.4])


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False
    verbose: bool = False


@dataclass
class LibraryConfig:
    """Configuration for the seeded library."""
    seed_arrow: bool = True


@dataclass
class EngineConfig:
    """Complete engine configuration."""
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    refinement: RefinementConfig = field(default_factory=RefinementConfig)
    spatial: SpatialConfig = field(default_factory=SpatialConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    library: LibraryConfig = field(default_factory=LibraryConfig)


SECTIONS = ("recognition", "refinement", "spatial", "matching", "tracing", "library")


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = EngineConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass, ignoring unknown keys."""
    for section in SECTIONS:
        if section not in yaml_data:
            continue
        target = getattr(config, section)
        for key, value in (yaml_data[section] or {}).items():
            if hasattr(target, key):
                setattr(target, key, value)

    return config


def config_to_dict(config):
    """Flatten a config into plain nested dicts for YAML output."""
    data = {}
    for section in SECTIONS:
        target = getattr(config, section)
        data[section] = dict(vars(target))
    return data


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = config_to_dict(EngineConfig())

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
