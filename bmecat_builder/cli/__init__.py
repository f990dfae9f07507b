"""Command line interface (python -m bmecat_builder.cli)."""
