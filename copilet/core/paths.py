"""
Resolution of the remote folder that backs a content category.
"""

from typing import Optional

from ..models import ContentCategory, RepoSource, ROOT_MAPPING


def resolve_content_path(repo: RepoSource, category: ContentCategory) -> Optional[str]:
    """
    Resolve the contents API path to query for a category.

    Returns None when the category is excluded for this repository, an empty
    string when the repository root is the source, and otherwise the custom
    folder or the category name.
    """

    if repo.folder_mappings and category in repo.folder_mappings:
        mapping = repo.folder_mappings[category]
        if mapping is None:
            return None
        if mapping == ROOT_MAPPING:
            return ""
        if isinstance(mapping, str) and mapping.strip():
            return mapping.strip()

    return category.value


__all__ = ["resolve_content_path"]
