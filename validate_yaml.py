#!/usr/bin/env python3
"""Validate data store and maintenance defaults YAML files against the schema."""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

import yaml
from jsonschema import validate, ValidationError

from garage.config import get_settings
from garage.defaults import DEFAULTS_FILE, load_schema

KINDS = ("store", "defaults")


def validate_file(filepath: Path, schema: dict) -> List[str]:
    """Validate a single YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        validate(instance=data, schema=schema)
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def main(argv: Optional[List[str]] = None) -> int:
    """Validate the given files, or the configured data file and the built-in defaults."""
    parser = argparse.ArgumentParser(description="Validate YAML files against the schema")
    parser.add_argument("files", type=Path, nargs="*", help="Files to validate")
    parser.add_argument(
        "--kind",
        choices=KINDS,
        default="store",
        help="Schema to validate the given files against (default: store)",
    )
    args = parser.parse_args(argv)

    if args.files:
        targets = [(path, args.kind) for path in args.files]
    else:
        targets = [(get_settings().data_file, "store"), (DEFAULTS_FILE, "defaults")]

    all_valid = True
    for filepath, kind in targets:
        errors = validate_file(filepath, load_schema(kind))
        if errors:
            print(f"FAIL: {filepath.name} ({kind})")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name} ({kind})")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
