"""
Tests for bulk-then-fallback persistence.
"""

from conftest import FakeStore
from mailmigration.application.committer import EmailCommitter
from mailmigration.domain.entities.email_record import NormalizedEmailRecord


def records(*subjects: str) -> list[NormalizedEmailRecord]:
    return [
        NormalizedEmailRecord(subject=s, from_email="a@example.com", to_email="b@example.com", body="x")
        for s in subjects
    ]


class TestEmailCommitter:
    def test_bulk_success_imports_everything(self, store):
        outcome = EmailCommitter(store).commit(records("a", "b", "c"))

        assert (outcome.imported, outcome.failed) == (3, 0)
        assert store.bulk_calls == [3]
        assert store.single_calls == 0

    def test_bulk_failure_falls_back_to_each_record(self):
        """One bad record must not sacrifice its siblings."""
        store = FakeStore(reject=lambda row: row["subject"] == "bad")
        batch = records("a", "bad", "c", "d")

        outcome = EmailCommitter(store).commit(batch)

        assert store.single_calls == len(batch)
        assert outcome.imported + outcome.failed == len(batch)
        assert (outcome.imported, outcome.failed) == (3, 1)
        assert [r["subject"] for r in store.rows] == ["a", "c", "d"]

    def test_total_bulk_outage_counts_all_failed(self):
        store = FakeStore(reject=lambda row: True)

        outcome = EmailCommitter(store).commit(records("a", "b"))

        assert (outcome.imported, outcome.failed) == (0, 2)

    def test_no_store_imports_nothing_and_fails_nothing(self):
        committer = EmailCommitter(None)

        outcome = committer.commit(records("a", "b"))

        assert not committer.enabled
        assert (outcome.imported, outcome.failed) == (0, 0)

    def test_empty_batch_skips_store(self, store):
        outcome = EmailCommitter(store).commit([])

        assert (outcome.imported, outcome.failed) == (0, 0)
        assert store.bulk_calls == []
