from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.fields import CANONICAL_KEYS
from ..models.header_config import BmecatFormat, HeaderConfig, PricingConfig
from ..models.row_data import FeatureMapping
from ..services.oracle import DEFAULT_MODEL, DEFAULT_TEMPERATURE
from ..services.spec_store import DEFAULT_STORE_PATH

"""Config loader.

Responsibilities:
- Load YAML config/catalog.yml
- Validate it against config_schema.json (shipped next to this module)
- Apply defaults (format 1.2, output out/catalog.xml, pricing, oracle model)
- Reject mapping keys that are not canonical BMEcat fields
"""

__all__ = [
    "ConfigError",
    "SourcesConfig",
    "MappingConfig",
    "OracleConfig",
    "AppConfig",
    "load_config",
    "DEFAULT_CONFIG_PATH",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/catalog.yml")
DEFAULT_OUTPUT_PATH = Path("out/catalog.xml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class SourcesConfig:
    products: Path
    structure: Path | None = None
    xml_template: Path | None = None
    pdf_specification: Path | None = None
    structure_description: Path | None = None
    specification: str | None = None  # name of a stored specification


@dataclass(frozen=True)
class MappingConfig:
    fields: dict[str, str]
    features: tuple[FeatureMapping, ...] = ()


@dataclass(frozen=True)
class OracleConfig:
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE


@dataclass(frozen=True)
class AppConfig:
    header: HeaderConfig
    sources: SourcesConfig
    mapping: MappingConfig
    output: Path = DEFAULT_OUTPUT_PATH
    pricing: PricingConfig = field(default_factory=PricingConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    spec_store: Path = DEFAULT_STORE_PATH


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails schema validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        suffix = f" (at {location})" if location else ""
        raise ConfigError(f"config validation failed: {e.message}{suffix}") from e


def _optional_path(value: str | None) -> Path | None:
    return Path(value) if value else None


def _header(raw: dict[str, Any], fmt: BmecatFormat) -> HeaderConfig:
    values = dict(raw)
    values["marques"] = tuple(values.get("marques") or ())
    return HeaderConfig(format=fmt, **values)


def _mapping(raw: dict[str, Any]) -> MappingConfig:
    fields = dict(raw.get("fields") or {})
    unknown = sorted(k for k in fields if k not in CANONICAL_KEYS)
    if unknown:
        raise ConfigError(
            f"config validation failed: unknown mapping field(s) {', '.join(unknown)}; "
            f"expected one of {', '.join(CANONICAL_KEYS)}"
        )
    features = tuple(
        FeatureMapping(fname=f["fname"], fvalue=f["fvalue"], funit=f.get("funit", ""))
        for f in raw.get("features") or []
    )
    return MappingConfig(fields=fields, features=features)


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    fmt = BmecatFormat.parse(data.get("format", "1.2"))
    src = data["sources"]
    sources = SourcesConfig(
        products=Path(src["products"]),
        structure=_optional_path(src.get("structure")),
        xml_template=_optional_path(src.get("xml_template")),
        pdf_specification=_optional_path(src.get("pdf_specification")),
        structure_description=_optional_path(src.get("structure_description")),
        specification=src.get("specification") or None,
    )

    pricing_raw = data.get("pricing", {})
    defaults = PricingConfig()
    pricing = PricingConfig(
        tax_rate=pricing_raw.get("tax_rate", defaults.tax_rate),
        decimal_comma=pricing_raw.get("decimal_comma", defaults.decimal_comma),
        default_price_type=pricing_raw.get("default_price_type", defaults.default_price_type),
    )

    oracle_raw = data.get("oracle", {})
    oracle = OracleConfig(
        model=oracle_raw.get("model", DEFAULT_MODEL),
        temperature=float(oracle_raw.get("temperature", DEFAULT_TEMPERATURE)),
    )

    return AppConfig(
        header=_header(data["header"], fmt),
        sources=sources,
        mapping=_mapping(data["mapping"]),
        output=Path(data.get("output", DEFAULT_OUTPUT_PATH)),
        pricing=pricing,
        oracle=oracle,
        spec_store=Path(data.get("spec_store", DEFAULT_STORE_PATH)),
    )
