from __future__ import annotations

import argparse
import asyncio
import base64
import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, load_config
from ..csv.reader import CsvData, find_invalid_xml_characters, read_table_file, structure_rows_from_table
from ..errors import GenerationError, InputError, InvalidCharacterError, MappingError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import get_logger, log_summary, setup_logging
from ..models.catalog_group import StructureRow
from ..models.fields import CANONICAL_KEYS, missing_required_fields
from ..services.assembler import DocumentAssembler, GenerationRequest
from ..services.mapper import transform_rows
from ..services.oracle import GeminiBackend, SpecificationSources, TemplatingOracle
from ..services.spec_store import JsonFileSpecificationStore
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and the YAML config
- Read the product table (and the optional structure table)
- Check source data for characters XML 1.0 forbids and the required mapping
- Resolve specification sources (explicit PDF path wins over a stored one)
- Generate the catalog, write it, flush diagnostics, print SUMMARY

Maintenance commands (--list-specs / --save-spec / --delete-spec) work on
the specification store only. --inspect-data and --suggest-mapping help
build the mapping section of the config.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_GENERATION_FAILED = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; values override the process environment."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except Exception as e:  # pragma: no cover
        get_logger().warning(f"failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="bmecat-builder", description="CSV -> BMEcat XML catalog generator")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path of the YAML config")
    p.add_argument("--output", type=Path, help="Override the output path of the config")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print table headers & first rows then exit")
    p.add_argument("--suggest-mapping", action="store_true", help="Ask the model for a mapping section then exit")
    p.add_argument("--list-specs", action="store_true", help="List stored specifications then exit")
    p.add_argument("--save-spec", nargs=2, metavar=("NAME", "PDF"), help="Store a PDF specification under NAME")
    p.add_argument("--delete-spec", type=int, metavar="ID", help="Delete a stored specification")
    return p.parse_args(argv)


def _api_key() -> str | None:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


def _build_oracle(cfg: AppConfig) -> TemplatingOracle:
    """Construct the model-backed oracle; needs GEMINI_API_KEY (or GOOGLE_API_KEY)."""
    key = _api_key()
    if not key:
        raise ConfigError("GEMINI_API_KEY (or GOOGLE_API_KEY) is required for templated generation")
    backend = GeminiBackend(api_key=key, model=cfg.oracle.model)
    return TemplatingOracle(backend, temperature=cfg.oracle.temperature)


def _read_text(path: Path | None) -> str | None:
    if path is None:
        return None
    if not path.exists():
        raise InputError(f"file not found: {path}")
    try:
        return path.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InputError(f"{path.name}: file is not UTF-8 encoded ({e.reason})") from e


def _read_pdf(cfg: AppConfig) -> bytes | None:
    if cfg.sources.pdf_specification is not None:
        path = cfg.sources.pdf_specification
        if not path.exists():
            raise InputError(f"file not found: {path}")
        return path.read_bytes()
    name = cfg.sources.specification
    if not name:
        return None
    stored = JsonFileSpecificationStore(cfg.spec_store).find(name)
    if stored is None:
        raise InputError(f"stored specification not found: {name}")
    try:
        return stored.decode()
    except ValueError as e:
        raise InputError(str(e)) from e


def _spec_command(args: argparse.Namespace, cfg: AppConfig) -> int:
    logger = get_logger()
    store = JsonFileSpecificationStore(cfg.spec_store)
    if args.save_spec:
        name, pdf = args.save_spec
        path = Path(pdf)
        if not path.exists():
            logger.error(f"file not found: {path}")
            return EXIT_FATAL
        spec = store.save(name, base64.b64encode(path.read_bytes()).decode("ascii"))
        print(f"saved id={spec.id} name={spec.name}")
        return EXIT_SUCCESS
    if args.delete_spec is not None:
        if not store.delete(args.delete_spec):
            logger.error(f"stored specification not found: id={args.delete_spec}")
            return EXIT_FATAL
        print(f"deleted id={args.delete_spec}")
        return EXIT_SUCCESS
    specs = store.list()
    if not specs:
        print("no stored specifications")
    for spec in specs:
        print(f"{spec.id}\t{spec.name}")
    return EXIT_SUCCESS


def _inspect_data(cfg: AppConfig) -> int:
    for label, path in (("products", cfg.sources.products), ("structure", cfg.sources.structure)):
        if path is None:
            continue
        print(f"FILE: {path} ({label})")
        try:
            table = read_table_file(path)
        except InputError as e:
            print(f"  read_error: {e}")
            continue
        print(f"  columns={table.headers}")
        print(f"  rows={len(table.rows)} dropped_lines={len(table.skipped_lines)}")
        for row in table.rows[:3]:
            print(f"    {row}")
    return EXIT_SUCCESS


def _check_source_table(table: CsvData, error_log: ErrorLogBuffer) -> None:
    logger = get_logger()
    for skipped in table.skipped_lines:
        message = f"line {skipped.line_number} has {skipped.field_count} fields, expected {len(table.headers)}; dropped"
        logger.warning(f"{table.source}: {message}")
        error_log.add(source=table.source, row=skipped.line_number, error_type="CSV_ROW_DROPPED", message=message)
    found = find_invalid_xml_characters(table.rows, table.headers)
    if found is not None:
        row, column = found
        error = InvalidCharacterError(table.source, row, column)
        error_log.add(source=table.source, row=row, error_type="INVALID_XML_CHARACTER", message=str(error))
        raise error


def _suggest_mapping(cfg: AppConfig, table: CsvData) -> int:
    sources = SpecificationSources(
        structure_description=_read_text(cfg.sources.structure_description),
        pdf_document=_read_pdf(cfg),
        xml_sample=_read_text(cfg.sources.xml_template),
    )
    oracle = _build_oracle(cfg)
    suggestion = asyncio.run(oracle.suggest_mapping(table.headers, sources))
    suggested = suggestion.field_mapping()
    block = {
        "mapping": {
            "fields": {k: v for k, v in suggested.items() if k in CANONICAL_KEYS},
            "features": [
                {k: v for k, v in (("fname", f.fname), ("fvalue", f.fvalue), ("funit", f.funit)) if v}
                for f in suggestion.feature_mappings
            ],
        }
    }
    print(yaml.safe_dump(block, allow_unicode=True, sort_keys=False), end="")
    unmapped = [f.key for f in suggestion.identified_fields if f.mapped_column is None]
    if unmapped:
        print(f"# fields without a matching column: {', '.join(unmapped)}")
    extra = sorted(k for k in suggested if k not in CANONICAL_KEYS)
    if extra:
        print(f"# fields outside the canonical set (not generated): {', '.join(extra)}")
    return EXIT_SUCCESS


def _structure_rows(cfg: AppConfig, error_log: ErrorLogBuffer) -> list[StructureRow]:
    if cfg.sources.structure is None:
        return []
    table = read_table_file(cfg.sources.structure)
    _check_source_table(table, error_log)
    return structure_rows_from_table(table)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest args)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        for h in logger.handlers:
            h.setLevel("DEBUG")
        logger.setLevel("DEBUG")
        logger.debug("debug mode enabled")

    if args.list_specs or args.save_spec or args.delete_spec is not None:
        return _spec_command(args, cfg)

    if args.inspect_data:
        return _inspect_data(cfg)

    error_log = ErrorLogBuffer()
    try:
        return _generate(args, cfg, error_log)
    finally:
        written = error_log.flush()
        if written is not None:
            logger.info(f"diagnostics written to {written}")


def _generate(args: argparse.Namespace, cfg: AppConfig, error_log: ErrorLogBuffer) -> int:
    logger = get_logger()
    try:
        products = read_table_file(cfg.sources.products)
        _check_source_table(products, error_log)
        logger.info(f"Read {len(products.rows)} rows from {cfg.sources.products}")

        if args.suggest_mapping:
            return _suggest_mapping(cfg, products)

        missing = missing_required_fields(cfg.mapping.fields)
        if missing:
            raise MappingError(missing)

        rows = transform_rows(products.rows, cfg.mapping.fields, cfg.mapping.features)
        request = GenerationRequest(
            header=cfg.header,
            rows=rows,
            structure_rows=_structure_rows(cfg, error_log),
            xml_sample=_read_text(cfg.sources.xml_template),
            pdf_specification=_read_pdf(cfg),
            structure_description=_read_text(cfg.sources.structure_description),
        )
        oracle = _build_oracle(cfg) if request.uses_template else None
    except (InputError, ConfigError) as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except GenerationError as e:
        error_log.add(source="mapping", row=-1, error_type="GENERATION_FAILED", message=str(e))
        logger.error(f"generation: {e}")
        return EXIT_GENERATION_FAILED

    assembler = DocumentAssembler(oracle, pricing=cfg.pricing, error_log=error_log)
    try:
        result = asyncio.run(assembler.generate(request))
    except GenerationError as e:
        error_log.add(source="generation", row=-1, error_type="GENERATION_FAILED", message=str(e))
        logger.error(f"generation: {e}")
        return EXIT_GENERATION_FAILED

    output = args.output or cfg.output
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.xml, encoding="utf-8")
    logger.info(f"catalog written to {output}")

    summary_line = render_summary_line(result, cfg.header.format)
    # log_summary adds the "SUMMARY " prefix itself
    log_summary(summary_line[len("SUMMARY "):])
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
