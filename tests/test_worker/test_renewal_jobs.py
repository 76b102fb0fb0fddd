"""
Tests for the RQ renewal job wrappers.
"""

from types import SimpleNamespace

import pytest

from buscai.worker import jobs


class FakeQueue:
    def __init__(self):
        self.calls = []

    def enqueue(self, func, **kwargs):
        self.calls.append((func, kwargs))
        return SimpleNamespace(id="job-1")


class TestRenewalJobs:
    def test_enqueue_uses_configured_timeout(self, monkeypatch):
        queue = FakeQueue()
        monkeypatch.setattr(jobs, "get_queue", lambda: queue)
        assert jobs.enqueue_subscription_renewal() == "job-1"
        func, kwargs = queue.calls[0]
        assert func is jobs.renew_subscriptions_job
        assert kwargs["job_timeout"] == 600

    def test_job_returns_summary(self, monkeypatch):
        async def fake_cycle():
            return {"processed": 2, "renewed": 1, "failed": 1, "skipped": 0, "cancelled": 0}

        monkeypatch.setattr(jobs, "_renew_subscriptions_async", fake_cycle)
        assert jobs.renew_subscriptions_job()["renewed"] == 1

    def test_job_failure_propagates(self, monkeypatch):
        async def failing_cycle():
            raise RuntimeError("db down")

        monkeypatch.setattr(jobs, "_renew_subscriptions_async", failing_cycle)
        with pytest.raises(RuntimeError):
            jobs.renew_subscriptions_job()
