"""
Parser for plugin.json manifests.

Two layouts exist in the wild: the legacy one with an explicit ``items``
array of ``{path, kind}`` objects, and the shorthand one listing ``agents``
and ``skills`` as paths relative to the plugin directory. Both are reduced
here to a single list of repository-relative ``PluginItem`` objects.
"""

import json
from typing import Any, Dict, List

from ..models import ManifestSchema, PluginItem, PluginKind, PluginManifest
from ..infrastructure.error_handler import ManifestValidationError


ALLOWED_KINDS = [kind.value for kind in PluginKind]

SHORTHAND_KINDS = {
    "agents": PluginKind.AGENT,
    "skills": PluginKind.SKILL,
}


def _invalid(message: str, field: str) -> ManifestValidationError:
    return ManifestValidationError(f"Invalid plugin.json format: {message}", field=field)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_safe_id(value: Any) -> bool:
    """Ids name a local folder: a single path segment, not hidden or relative."""

    if not isinstance(value, str) or not value.strip():
        return False
    return not any(sep in value for sep in ("/", "\\")) and not value.startswith(".")


def _expand_shorthand_path(entry: str, containing_dir: str) -> str:
    """Turn ``./skills/foo/`` into ``{containing_dir}/skills/foo``."""

    relative = entry.strip()
    while relative.startswith("./"):
        relative = relative[2:]
    relative = relative.rstrip("/")
    if relative in ("", "."):
        return containing_dir.rstrip("/")

    base = containing_dir.rstrip("/")
    return f"{base}/{relative}" if base else relative


def _parse_legacy_items(raw_items: Any) -> List[PluginItem]:
    if not isinstance(raw_items, list):
        raise _invalid('missing or invalid "items" array', "items")

    items = []
    for index, item in enumerate(raw_items):
        if not isinstance(item, dict):
            raise _invalid(f"item at index {index} is not an object", "items")

        if _is_blank(item.get("path")):
            raise _invalid(
                f'item at index {index} is missing or has an invalid "path" field', "path"
            )

        kind = item.get("kind")
        if _is_blank(kind):
            raise _invalid(
                f'item at index {index} is missing or has an invalid "kind" field', "kind"
            )

        if kind not in ALLOWED_KINDS:
            raise _invalid(
                f'item at index {index} has unsupported "kind" value "{kind}". '
                f'Allowed kinds are: {", ".join(ALLOWED_KINDS)}',
                "kind",
            )

        items.append(PluginItem(path=item["path"].strip(), kind=PluginKind(kind)))
    return items


def _parse_shorthand_items(data: Dict[str, Any], containing_dir: str) -> List[PluginItem]:
    items = []
    for key, kind in SHORTHAND_KINDS.items():
        if key not in data:
            continue

        entries = data[key]
        if not isinstance(entries, list):
            raise _invalid(f'"{key}" must be an array of paths', key)

        for index, entry in enumerate(entries):
            if _is_blank(entry):
                raise _invalid(f'"{key}" entry at index {index} is not a valid path', key)
            items.append(PluginItem(path=_expand_shorthand_path(entry, containing_dir), kind=kind))
    return items


def parse_manifest(raw: str, containing_dir: str) -> PluginManifest:
    """
    Parse and validate a plugin.json document.

    Args:
        raw: The manifest text
        containing_dir: Repository path of the plugin directory

    Returns:
        PluginManifest with a canonical item list

    Raises:
        ManifestValidationError: naming the offending field
    """

    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise _invalid("not valid JSON", "json") from None

    if not isinstance(data, dict):
        raise _invalid("metadata is missing or not an object", "metadata")

    if _is_blank(data.get("name")):
        raise _invalid('missing or invalid "name" field', "name")

    if _is_blank(data.get("description")):
        raise _invalid('missing or invalid "description" field', "description")

    if "items" in data:
        schema = ManifestSchema.LEGACY
        items = _parse_legacy_items(data["items"])
    elif any(key in data for key in SHORTHAND_KINDS):
        schema = ManifestSchema.SHORTHAND
        items = _parse_shorthand_items(data, containing_dir)
    else:
        raise _invalid('missing or invalid "items" array', "items")

    manifest_id = data.get("id")
    if not _is_safe_id(manifest_id):
        manifest_id = containing_dir.rstrip("/").split("/")[-1]

    tags = data.get("tags")
    author = data.get("author")
    display = data.get("display")

    return PluginManifest(
        id=manifest_id,
        name=data["name"],
        description=data["description"],
        items=items,
        schema=schema,
        version=data.get("version") if isinstance(data.get("version"), str) else None,
        author=author if isinstance(author, dict) else None,
        repository=data.get("repository") if isinstance(data.get("repository"), str) else None,
        license=data.get("license") if isinstance(data.get("license"), str) else None,
        featured=data.get("featured") if isinstance(data.get("featured"), bool) else None,
        tags=[tag for tag in tags if isinstance(tag, str)] if isinstance(tags, list) else [],
        display=display if isinstance(display, dict) else None,
    )


__all__ = ["parse_manifest", "ALLOWED_KINDS"]
