"""Tests for the ordered multi-store pipeline and its failure policy."""

import logging

import pytest

from ncloud.exceptions import DatabaseError, StoreSyncError
from ncloud.services.pipeline import (
    FAILURE_POLICY,
    FailurePolicy,
    MutationPipeline,
    Store,
)


def _boom():
    raise RuntimeError("boom")


def _db_down():
    raise DatabaseError("nope")


class TestPolicyTable:

    def test_metadata_aborts_secondaries_log(self):
        assert FAILURE_POLICY[Store.METADATA] is FailurePolicy.ABORT
        assert FAILURE_POLICY[Store.SEARCH] is FailurePolicy.LOG
        assert FAILURE_POLICY[Store.DISK] is FailurePolicy.LOG


class TestMutationPipeline:

    def test_runs_in_order_and_collects_results(self):
        order = []
        pipeline = MutationPipeline("op")
        pipeline.add("meta", Store.METADATA, lambda: order.append("meta") or 3)
        pipeline.add("search", Store.SEARCH, lambda: order.append("search"))
        pipeline.add("disk", Store.DISK, lambda: order.append("disk"))
        report = pipeline.run()

        assert order == ["meta", "search", "disk"]
        assert report.results["meta"] == 3
        assert report.completed == ["meta", "search", "disk"]
        assert not report.degraded

    def test_metadata_failure_stops_everything(self):
        ran = []
        pipeline = MutationPipeline("op")
        pipeline.add("meta", Store.METADATA, _db_down)
        pipeline.add("search", Store.SEARCH, lambda: ran.append("search"))
        with pytest.raises(DatabaseError):
            pipeline.run()
        assert ran == []

    def test_search_failure_is_logged_and_disk_still_runs(self, caplog):
        ran = []
        pipeline = MutationPipeline("op")
        pipeline.add("meta", Store.METADATA, lambda: None)
        pipeline.add("search", Store.SEARCH, _boom)
        pipeline.add("disk", Store.DISK, lambda: ran.append("disk"))

        with caplog.at_level(logging.ERROR, logger="ncloud.services.pipeline"):
            report = pipeline.run()

        assert ran == ["disk"]
        assert report.degraded
        assert report.failed_steps == ["search"]
        assert isinstance(report.failures[0], StoreSyncError)
        assert report.failures[0].details["original_error"] == "boom"
        assert any("search" in r.getMessage() for r in caplog.records)

    def test_disk_failure_is_reported(self):
        pipeline = MutationPipeline("op")
        pipeline.add("disk", Store.DISK, _boom)
        report = pipeline.run()
        assert report.failed_steps == ["disk"]
        assert report.completed == []

    def test_steps_cannot_go_backwards(self):
        pipeline = MutationPipeline("op")
        pipeline.add("disk", Store.DISK, lambda: None)
        with pytest.raises(ValueError):
            pipeline.add("meta", Store.METADATA, lambda: None)

    def test_custom_policy(self):
        policy = {Store.METADATA: FailurePolicy.ABORT, Store.SEARCH: FailurePolicy.ABORT,
                  Store.DISK: FailurePolicy.LOG}
        pipeline = MutationPipeline("op", policy=policy)
        pipeline.add("search", Store.SEARCH, _boom)
        with pytest.raises(RuntimeError):
            pipeline.run()
