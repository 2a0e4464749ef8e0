"""
JSON persistence for libraries and stroke files.

Libraries are stored as an object of key to LibraryItem; stroke files hold
a list of strokes and optionally the type accepted for each one. Everything
read back is validated through the pydantic models.
"""

import json
import os
from typing import Dict

from pydantic import TypeAdapter

from strokeform.library import Library, builtin_items
from strokeform.models import LibraryItem, StrokeSet
from strokeform.tracer import get_tracer

_LIBRARY_ADAPTER = TypeAdapter(Dict[str, LibraryItem])


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_json(data, path, indent=2):
    """
    Save a dictionary or Pydantic model to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def load_json(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_library(library, path):
    """Write every library item, built-ins included, to a JSON file."""
    data = _LIBRARY_ADAPTER.dump_python(library.to_dict(), mode="json")
    save_json(data, path)


def load_library(path, config=None):
    """
    Load a library from JSON.

    Built-in items are always present; saved entries with the same key
    replace them. A missing path gives the built-ins alone.

    Raises:
        pydantic.ValidationError: if the file does not hold library items
    """
    tracer = get_tracer()
    seed_arrow = config.library.seed_arrow if config is not None else True
    items = builtin_items(seed_arrow=seed_arrow)

    if path and os.path.exists(path):
        loaded = _LIBRARY_ADAPTER.validate_python(load_json(path))
        items.update(loaded)
        tracer.event(f"Loaded {len(loaded)} library items from {path}")
    else:
        tracer.event(f"No library file at {path}, using built-ins")

    return Library(items)


def load_strokes(path):
    """
    Load strokes from JSON.

    Accepts either a bare list of strokes or an object with "strokes" and
    optional per-stroke "types".

    Returns:
        StrokeSet
    """
    data = load_json(path)
    if isinstance(data, list):
        data = {"strokes": data}
    return StrokeSet.model_validate(data)
