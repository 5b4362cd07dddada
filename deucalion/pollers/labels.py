"""Label-set construction helpers.

Label order is fixed per gauge family: identity labels, then fixed
dimensions, then the caller-declared expose tags in declaration order.
Tag lookup is case-insensitive and a missing tag yields "" (the label is
never omitted, since every series of a family must carry the same names).
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def label_name(tag_key: str) -> str:
    """Prometheus-safe label name for a tag key (``Cost-Center`` -> ``cost_center``)."""
    name = _INVALID_LABEL_CHARS.sub("_", tag_key.strip()).lower()
    if not name or name[0].isdigit():
        name = f"tag_{name}"
    if name.startswith("__"):
        # double underscore prefix is reserved for Prometheus internal use
        name = "tag" + name
    return name


def expose_label_names(expose_tags: Sequence[str], reserved: Iterable[str] = ()) -> list[str]:
    """Label names for *expose_tags*, rejecting collisions with each other or *reserved*."""
    taken = set(reserved)
    names: list[str] = []
    for tag in expose_tags:
        name = label_name(tag)
        if name in taken:
            raise ValueError(f"expose tag {tag!r} maps to label {name!r} which is already in use")
        taken.add(name)
        names.append(name)
    return names


def tags_to_dict(tags: Iterable[Mapping[str, Any]] | None) -> dict[str, str]:
    """EC2 ``[{'Key': k, 'Value': v}]`` -> ``{k.lower(): v}`` (first key wins)."""
    out: dict[str, str] = {}
    for tag in tags or []:
        key = tag.get("Key")
        if not key:
            continue
        out.setdefault(str(key).lower(), str(tag.get("Value") or ""))
    return out


def tag_labels(tags: Iterable[Mapping[str, Any]] | None, expose_tags: Sequence[str],
               names: Sequence[str] | None = None) -> dict[str, str]:
    """Ordered {label name: tag value} for every expose tag, "" when absent."""
    lookup = tags_to_dict(tags)
    label_names = names if names is not None else [label_name(t) for t in expose_tags]
    return {name: lookup.get(tag.lower(), "") for tag, name in zip(expose_tags, label_names)}


__all__ = ["label_name", "expose_label_names", "tags_to_dict", "tag_labels"]
