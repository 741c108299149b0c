import pytest

from copilet.core.paths import resolve_content_path
from copilet.models import ContentCategory, RepoSource


def make_repo(mappings=None):
    return RepoSource(owner="octo", repo="content", folder_mappings=mappings)


def test_default_path_is_category_name():
    assert resolve_content_path(make_repo(), ContentCategory.PROMPTS) == "prompts"


def test_unmapped_category_falls_back_to_default():
    repo = make_repo({ContentCategory.AGENTS: "custom/agents"})
    assert resolve_content_path(repo, ContentCategory.SKILLS) == "skills"


def test_null_mapping_excludes_category():
    repo = make_repo({ContentCategory.PLUGINS: None})
    assert resolve_content_path(repo, ContentCategory.PLUGINS) is None


def test_root_mapping_resolves_to_empty_path():
    repo = make_repo({ContentCategory.INSTRUCTIONS: "root"})
    assert resolve_content_path(repo, ContentCategory.INSTRUCTIONS) == ""


def test_custom_folder_is_trimmed():
    repo = make_repo({ContentCategory.AGENTS: "  docs/agents  "})
    assert resolve_content_path(repo, ContentCategory.AGENTS) == "docs/agents"


def test_blank_mapping_falls_back_to_default():
    repo = make_repo({ContentCategory.PROMPTS: "   "})
    assert resolve_content_path(repo, ContentCategory.PROMPTS) == "prompts"


ABSENT = object()
MAPPING_VALUES = [ABSENT, None, "root", "", "   ", "custom", "  a/b  ", "ROOT", "./root"]


def expected_path(category, mapping):
    if mapping is ABSENT:
        return category.value
    if mapping is None:
        return None
    if mapping == "root":
        return ""
    return mapping.strip() or category.value


@pytest.mark.parametrize("category", list(ContentCategory))
@pytest.mark.parametrize("mapping", MAPPING_VALUES)
def test_resolution_over_every_category_and_mapping(category, mapping):
    mappings = {} if mapping is ABSENT else {category: mapping}
    repo = make_repo(mappings)

    resolved = resolve_content_path(repo, category)

    assert resolved == expected_path(category, mapping)
    assert (resolved is None) == (mapping is None)
    assert repo.folder_mappings == mappings
    # Mappings of one category never leak into another
    for other in ContentCategory:
        if other is not category:
            assert resolve_content_path(repo, other) == other.value
