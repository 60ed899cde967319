"""File I/O utilities: atomic writes, YAML config, output naming."""

from __future__ import annotations

import json
import re
import tempfile
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

_yaml = YAML(typ="safe")


def write_atomic(path: Path | str, data: Any) -> None:
    """Write text or JSON-serializable data atomically (temp file, then rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        suffix=path.suffix,
        delete=False,
    ) as tmp:
        if isinstance(data, str):
            tmp.write(data)
        else:
            json.dump(data, tmp, indent=2, default=str)
        tmp_path = Path(tmp.name)

    tmp_path.replace(path)


def read_yaml(path: Path | str) -> dict:
    """Read a YAML file and return as dict."""
    with open(path) as f:
        return dict(_yaml.load(f) or {})


def write_json(path: Path | str, data: Any) -> None:
    """Write data to a JSON file atomically."""
    write_atomic(path, data)


def synced_name(path: Path | str, rename_string: str) -> Path:
    """Insert ``rename_string`` before the extension.

    ``comparison.flac`` becomes ``comparison.synced.flac``. A name with no
    extension gets the string appended.
    """
    path = Path(path)
    name = re.sub(r"(\.[^.]+)$", lambda m: f"{rename_string}{m.group(1)}", path.name)
    if name == path.name:
        name = f"{path.name}{rename_string}"
    return path.with_name(name)
