"""DeletionSynchronizer: push deletions and reconciliation probes."""
import pytest

from filegate.models.content_record import ContentRecord
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore
from filegate.services.deletion.synchronizer import DeletionSynchronizer

CHAT = -1001


@pytest.fixture
def registry(db_session, clock):
    return ContentRegistry(db_session, clock=clock)


@pytest.fixture
def source_posts(db_session, clock):
    return SourcePostStore(db_session, clock=clock)


def _seed(registry, source_posts, key, post_id):
    source_posts.mark_seen(post_id, CHAT)
    registry.create(
        ContentRecord(
            key=key,
            source_post_id=post_id,
            kind="document",
            payload_ref={"file_id": f"F{post_id}"},
            download_count=0,
            active=True,
        )
    )


def test_on_source_deleted_deactivates(registry, source_posts):
    _seed(registry, source_posts, "100000001", 1)
    _seed(registry, source_posts, "100000002", 2)
    sync = DeletionSynchronizer(registry, source_posts)

    assert sync.on_source_deleted([1]) == 1
    assert registry.find_active_by_key("100000001") is None
    assert registry.find_active_by_key("100000002") is not None
    assert [p.source_post_id for p in source_posts.list_live()] == [2]


def test_on_source_deleted_idempotent(registry, source_posts):
    _seed(registry, source_posts, "100000001", 1)
    sync = DeletionSynchronizer(registry, source_posts)
    assert sync.on_source_deleted([1]) == 1
    assert sync.on_source_deleted([1]) == 0


def test_unknown_post_is_fine(registry, source_posts):
    assert DeletionSynchronizer(registry, source_posts).on_source_deleted([404]) == 0


def test_reconcile_deactivates_missing_posts(registry, source_posts, make_probe):
    for i in (1, 2, 3):
        _seed(registry, source_posts, f"10000000{i}", i)
    probe = make_probe(missing={2})
    result = DeletionSynchronizer(registry, source_posts, probe).reconcile()

    assert result == {"checked": 3, "deleted": 1, "errors": 0, "deactivated": 1}
    assert registry.find_active_by_key("100000002") is None
    assert registry.find_active_by_key("100000001") is not None
    assert sorted(p.source_post_id for p in source_posts.list_live()) == [1, 3]
    assert (CHAT, 2) in probe.calls


def test_reconcile_probe_error_skips_post(registry, source_posts, make_probe):
    _seed(registry, source_posts, "100000001", 1)
    probe = make_probe(missing={1}, errors={1})
    result = DeletionSynchronizer(registry, source_posts, probe).reconcile()

    assert result["errors"] == 1
    assert result["deleted"] == 0
    assert registry.find_active_by_key("100000001") is not None


def test_reconcile_respects_limit_and_rotates(registry, source_posts, make_probe, clock):
    for i in (1, 2, 3):
        _seed(registry, source_posts, f"10000000{i}", i)
    probe = make_probe()
    sync = DeletionSynchronizer(registry, source_posts, probe)

    sync.reconcile(limit=2)
    clock.advance(10)
    sync.reconcile(limit=2)

    probed = [message_id for _, message_id in probe.calls]
    assert probed[:2] == [1, 2]
    # never-checked post goes first in the next run
    assert probed[2] == 3


def test_reconcile_without_probe(registry, source_posts):
    result = DeletionSynchronizer(registry, source_posts).reconcile()
    assert result["checked"] == 0
