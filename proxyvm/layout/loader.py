"""
proxyvm.layout.loader — read layout lineages from YAML.

Document shape (versions listed oldest first)::

    layouts:
      - name: CounterV1
        fields:
          - {name: value, type: uint256}
          - {name: owner, type: address}
          - {name: __gap, type: gap, size: 48}
      - name: CounterV2
        fields:
          - {name: value, type: uint256}
          - {name: owner, type: address}
          - {name: new_var, type: uint256}
          - {name: __gap, type: gap, size: 47}

A bare top-level list of layouts is accepted too. Unknown keys are ignored.
"""

from __future__ import annotations

from typing import Any, List

import yaml  # PyYAML

from ..errors import LayoutError
from .fields import StorageLayout


def layouts_from_obj(doc: Any) -> List[StorageLayout]:
    if isinstance(doc, dict):
        doc = doc.get("layouts")
    if not isinstance(doc, list) or not doc:
        raise LayoutError("expected a non-empty 'layouts' list")
    return [StorageLayout.from_dict(item) for item in doc]


def load_layouts(path: str) -> List[StorageLayout]:
    try:
        with open(path, "rb") as f:
            doc = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise LayoutError(f"layout file not found: {path}") from e
    except OSError as e:
        raise LayoutError(f"cannot read {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise LayoutError(f"invalid YAML in {path}: {e}") from e
    return layouts_from_obj(doc)


def dump_layouts(layouts: List[StorageLayout]) -> str:
    return yaml.safe_dump({"layouts": [lay.to_dict() for lay in layouts]}, sort_keys=False)


__all__ = ["load_layouts", "layouts_from_obj", "dump_layouts"]
