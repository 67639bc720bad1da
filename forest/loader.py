"""
YAML scenario loader with schema validation.

Loads species palettes and scenario files from YAML, validates them against
JSON schemas, and checks the resulting ForestConfig for degenerate settings
so that bad configuration fails at setup rather than mid-run.
"""

import yaml
import json
from pathlib import Path
from typing import Dict, List, Optional
import jsonschema

from .data_types import ForestConfig, SpeciesDef
from .constants import (
    VARIANTS,
    VARIANT_COEXIST,
    VARIANT_SOCIALDX,
    SOCIALDX_MIN_SPECIES,
    IMMIGRATION_INTERVAL_DEFAULT,
    RESOURCE_TOTAL,
    RESOURCE_SPLIT_DEFAULT,
    POACHING_COEF_DEFAULT,
    DEFAULT_TREES_PER_ROW,
    DEFAULT_CANVAS_SIZE,
    BATCH_SIZE,
    MAX_STEPS,
)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails"""
    pass


class RejectionLimitError(ConfigError):
    """Raised when rejection sampling exhausts its draw cap (pressure factors too small)"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    if not file_path.exists():
        raise ConfigError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error in {file_path}: {e}")


def validate_against_schema(data: dict, schema_path: Path, data_path: Path):
    """Validate data dict against JSON schema"""
    if not schema_path.exists():
        # Schema validation optional (schemas ship with the repo, not the wheel)
        return

    try:
        with open(schema_path, 'r') as f:
            schema = json.load(f)
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Validation error in {data_path}: {e.message}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON schema {schema_path}: {e}")


def load_palettes(file_path: Path, schema_dir: Optional[Path] = None) -> Dict[str, List[SpeciesDef]]:
    """Load named species palettes from YAML

    Returns dict palette_name -> ordered list of SpeciesDef
    """
    file_path = Path(file_path)
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "palettes.schema.json"
        validate_against_schema(data, schema_path, file_path)

    if not isinstance(data, dict) or not data.get('palettes'):
        raise ConfigError(f"No palettes defined in {file_path}")

    palettes = {}
    for palette_name, entries in data['palettes'].items():
        palettes[palette_name] = [SpeciesDef(**entry) for entry in entries]

    return palettes


def load_scenario(
    file_path: Path,
    palettes: Optional[Dict[str, List[SpeciesDef]]] = None,
    schema_dir: Optional[Path] = None
) -> ForestConfig:
    """Load scenario configuration from YAML

    Species come either inline (``species:`` list) or by name from
    ``palettes`` (``palette:`` key). The result is validated before return.
    """
    file_path = Path(file_path)
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "scenario.schema.json"
        validate_against_schema(data, schema_path, file_path)

    if not isinstance(data, dict):
        raise ConfigError(f"Scenario {file_path} is empty or not a mapping")
    if 'variant' not in data:
        raise ConfigError(f"Scenario {file_path} has no variant")

    if 'species' in data:
        species = [SpeciesDef(**entry) for entry in data['species']]
    elif 'palette' in data:
        if palettes is None or data['palette'] not in palettes:
            raise ConfigError(f"Unknown palette '{data['palette']}' in {file_path}")
        species = list(palettes[data['palette']])
    else:
        raise ConfigError(f"Scenario {file_path} defines neither species nor palette")

    params = data.get('parameters', {}) or {}

    config = ForestConfig(
        variant=data['variant'],
        species=species,
        trees_per_row=data.get('trees_per_row', DEFAULT_TREES_PER_ROW),
        canvas_size=data.get('canvas_size', DEFAULT_CANVAS_SIZE),
        batch_size=data.get('batch_size', BATCH_SIZE),
        max_steps=data.get('max_steps', MAX_STEPS),
        seed=data.get('seed'),
        immigration_interval=params.get('immigration_interval', IMMIGRATION_INTERVAL_DEFAULT),
        resource_total=params.get('resource_total', RESOURCE_TOTAL),
        resource_split=params.get('resource_split', RESOURCE_SPLIT_DEFAULT),
        poaching_coef=params.get('poaching_coef', POACHING_COEF_DEFAULT),
        timeline_interval=data.get('timeline_interval'),
        name=data.get('name'),
        description=data.get('description')
    )

    try:
        validate_config(config)
    except ConfigError as e:
        raise ConfigError(f"Invalid scenario {file_path}: {e}")

    return config


def load_all_scenarios(data_root: Path, schema_dir: Optional[Path] = None) -> Dict[str, ForestConfig]:
    """Load all scenarios from data directory

    Returns dict scenario_id (file stem) -> ForestConfig
    """
    data_root = Path(data_root)
    palettes = load_palettes(data_root / "palettes" / "trees.yaml", schema_dir)

    scenario_dir = data_root / "scenarios"
    if not scenario_dir.exists():
        raise ConfigError(f"Scenario directory not found: {scenario_dir}")

    scenarios = {}
    for yaml_file in sorted(scenario_dir.glob("*.yaml")):
        scenarios[yaml_file.stem] = load_scenario(yaml_file, palettes, schema_dir)

    if not scenarios:
        raise ConfigError(f"No scenario files found in {scenario_dir}")

    return scenarios


def validate_config(config: ForestConfig):
    """
    Reject degenerate configurations at setup time.

    Raises:
        ConfigError: Describes the first problem found
    """
    if config.variant not in VARIANTS:
        raise ConfigError(f"Unknown variant '{config.variant}' (expected one of {VARIANTS})")

    if not config.species:
        raise ConfigError("At least one species is required")

    names = config.species_names
    if len(set(names)) != len(names):
        raise ConfigError(f"Species names must be distinct: {names}")

    if config.trees_per_row < 1:
        raise ConfigError(f"trees_per_row must be >= 1, got {config.trees_per_row}")
    if config.batch_size < 1:
        raise ConfigError(f"batch_size must be >= 1, got {config.batch_size}")
    if config.max_steps < 1:
        raise ConfigError(f"max_steps must be >= 1, got {config.max_steps}")
    if config.immigration_interval < 1:
        raise ConfigError(f"immigration_interval must be >= 1, got {config.immigration_interval}")
    if config.timeline_interval is not None and config.timeline_interval < 1:
        raise ConfigError(f"timeline_interval must be >= 1 or null, got {config.timeline_interval}")

    if config.variant == VARIANT_COEXIST:
        if len(config.species) != 2:
            raise ConfigError(f"Competition needs exactly 2 species, got {len(config.species)}")
        if config.resource_total <= 0:
            raise ConfigError(f"resource_total must be positive, got {config.resource_total}")
        if not 0.0 < config.poaching_coef <= 1.0:
            raise ConfigError(f"poaching_coef must lie in (0, 1], got {config.poaching_coef}")
        validate_resource_split(
            config.resource_split, config.resource_total,
            config.poaching_coef, config.trees_per_row ** 2
        )

    if config.variant == VARIANT_SOCIALDX and len(config.species) < SOCIALDX_MIN_SPECIES:
        print(f"[WARN] {len(config.species)} species < {SOCIALDX_MIN_SPECIES}: "
              f"exclusion can fail and leave vacant cells")


def validate_resource_split(split: int, total: int, poaching_coef: float, n_trees: int):
    """
    Check a resource split against the forest it will feed.

    Both species need a positive share, otherwise a pressure factor is zero.
    A factor cap / (n_own + poaching_coef * n_other) peaks when the species
    is down to zero trees, at cap / (poaching_coef * n_trees); that peak
    must not exceed 1 or acceptance stops depending on the resources.

    Raises:
        ConfigError: Split out of range or a pressure factor can exceed 1
    """
    if not 0 < split < total:
        raise ConfigError(f"resource_split must lie strictly between 0 and {total}, got {split}")
    if poaching_coef <= 0:
        raise ConfigError(f"poaching_coef must be positive, got {poaching_coef}")

    peak = max(split, total - split) / (poaching_coef * n_trees)
    if peak > 1.0:
        raise ConfigError(
            f"resource_split {split}/{total} gives a pressure factor up to {peak:.3g} "
            f"on {n_trees} trees with poaching_coef {poaching_coef}; "
            f"use a smaller resource_total or a larger forest"
        )
