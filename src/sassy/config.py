"""Parser options, optionally loaded from a YAML file.

Example options file:

    variable_conflict: error
    detect_import_cycles: true
    encoding: utf-8
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import IoError, ParseError


class ParserOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # what happens when an imported file rebinds a variable the importer already has
    variable_conflict: Literal["overwrite", "keep", "error"] = "overwrite"
    detect_import_cycles: bool = True
    encoding: str = "utf-8"


def load_options(path: str | Path | None) -> ParserOptions:
    """Read options from a YAML mapping. `None` gives the defaults."""
    if path is None:
        return ParserOptions()

    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise IoError(f"Could not load options: '{path}'", e.strerror or str(e)) from e
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid options file: '{path}'", str(e)) from e

    try:
        return ParserOptions.model_validate(data or {})
    except ValidationError as e:
        raise ParseError(f"Invalid options file: '{path}'", str(e)) from e
