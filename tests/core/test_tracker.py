import json

from copilet.core.tracker import DownloadTracker, content_hash, item_id
from copilet.models import ContentCategory, ContentEntry, RepoSource


REPO = RepoSource(owner="github", repo="awesome-copilot")


def make_entry(sha="abc", path="prompts/a.prompt.md"):
    return ContentEntry(name=path.split("/")[-1], path=path, type="file", sha=sha, repo=REPO)


def test_item_id_includes_repo_category_and_path():
    assert item_id(make_entry(), ContentCategory.PROMPTS) == (
        "github.com/github/awesome-copilot|prompts|prompts/a.prompt.md"
    )


def test_record_stores_sha_and_content_hash():
    tracker = DownloadTracker()
    record = tracker.record_download(make_entry(), ContentCategory.PROMPTS, "hello")
    assert record.sha == "abc"
    assert record.content_hash == content_hash("hello")
    assert tracker.is_downloaded(record.item_id)


def test_has_update_when_remote_sha_moves():
    tracker = DownloadTracker()
    tracker.record_download(make_entry(sha="abc"), ContentCategory.PROMPTS)

    assert tracker.has_update(make_entry(sha="abc"), ContentCategory.PROMPTS) is False
    assert tracker.has_update(make_entry(sha="def"), ContentCategory.PROMPTS) is True


def test_no_update_without_record_or_sha():
    tracker = DownloadTracker()
    assert tracker.has_update(make_entry(), ContentCategory.PROMPTS) is False

    tracker.record_download(make_entry(sha=None), ContentCategory.PROMPTS)
    assert tracker.has_update(make_entry(sha="def"), ContentCategory.PROMPTS) is False


def test_find_items_with_updates():
    tracker = DownloadTracker()
    tracker.record_download(make_entry(sha="1", path="prompts/a.md"), ContentCategory.PROMPTS)
    tracker.record_download(make_entry(sha="2", path="prompts/b.md"), ContentCategory.PROMPTS)

    remote = [
        make_entry(sha="1", path="prompts/a.md"),
        make_entry(sha="3", path="prompts/b.md"),
        make_entry(sha="9", path="prompts/c.md"),
    ]
    changed = tracker.find_items_with_updates(remote, ContentCategory.PROMPTS)
    assert [e.path for e in changed] == ["prompts/b.md"]


def test_records_persist_to_json(tmp_path):
    path = tmp_path / "downloads.json"
    tracker = DownloadTracker(path)
    tracker.record_download(make_entry(), ContentCategory.PROMPTS, "body")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert len(data["downloads"]) == 1

    reloaded = DownloadTracker(path)
    assert reloaded.has_update(make_entry(sha="new"), ContentCategory.PROMPTS) is True


def test_forget(tmp_path):
    tracker = DownloadTracker(tmp_path / "downloads.json")
    record = tracker.record_download(make_entry(), ContentCategory.PROMPTS)
    tracker.forget(record.item_id)
    assert not tracker.is_downloaded(record.item_id)
