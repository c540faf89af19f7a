"""
Rich content text extraction.

Grid editor values are JSON blocks whose editable text lives under "value"
keys at arbitrary depth, usually as HTML fragments. Indexing needs the plain
text only.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator

logger = logging.getLogger("sync.transform")

_TAG_PATTERN = re.compile(r"<.*?>", re.DOTALL)
_WHITESPACE = re.compile(r"(?:\s|\\n)+")


def _iter_values(node: Any, under_value: bool = False) -> Iterator[Any]:
    if isinstance(node, dict):
        for key, child in node.items():
            yield from _iter_values(child, under_value=(key == "value"))
    elif isinstance(node, list):
        for child in node:
            yield from _iter_values(child, under_value=under_value)
    elif under_value and node is not None:
        yield node


def extract_grid_text(raw: Any) -> str:
    """
    Return the plain text of a grid JSON value, or "" if it cannot be read.
    """
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if not isinstance(data, (dict, list)):
            return ""

        text = " ".join(str(v) for v in _iter_values(data))
        text = _TAG_PATTERN.sub(" ", text)
        return _WHITESPACE.sub(" ", text).strip()
    except (TypeError, ValueError, RecursionError) as exc:
        logger.debug("Grid JSON could not be parsed: %s", exc)
        return ""
