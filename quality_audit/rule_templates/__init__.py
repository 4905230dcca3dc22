"""Rule templates shipped with quality-audit, one TOML file per template."""
