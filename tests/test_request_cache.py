import threading
import time
from types import SimpleNamespace

from verifier.config import DEFAULT_STASH_KEY
from verifier.registry.profile_registry import ProfileRegistry
from verifier.runtime.request_cache import RequestScopedCache
from verifier.verification.manager import VerificationManager


def _request():
    return SimpleNamespace(stash={})


def _builder(calls):
    def build():
        calls.append(1)
        return VerificationManager.build(ProfileRegistry("C", {"a": {"x": {"type": int}}}))

    return build


def test_builds_once_per_request_and_component():
    cache = RequestScopedCache()
    req = _request()
    calls = []

    m1 = cache.get_or_create(req, "C", _builder(calls))
    m2 = cache.get_or_create(req, "C", _builder(calls))
    assert m1 is m2
    assert len(calls) == 1
    assert req.stash[DEFAULT_STASH_KEY] == {"C": m1}


def test_requests_never_share_managers():
    cache = RequestScopedCache()
    r1, r2 = _request(), _request()
    calls = []

    m1 = cache.get_or_create(r1, "C", _builder(calls))
    assert cache.peek(r2, "C") is None
    m2 = cache.get_or_create(r2, "C", _builder(calls))
    assert m1 is not m2
    assert len(calls) == 2


def test_components_are_keyed_separately():
    cache = RequestScopedCache()
    req = _request()
    calls = []

    a = cache.get_or_create(req, "A", _builder(calls))
    b = cache.get_or_create(req, "B", _builder(calls))
    assert a is not b
    assert cache.peek(req, "A") is a


def test_custom_stash_key_and_discard():
    cache = RequestScopedCache("a secret garden")
    req = _request()
    m = cache.get_or_create(req, "C", _builder([]))
    assert req.stash["a secret garden"]["C"] is m

    cache.discard(req, "C")
    assert cache.peek(req, "C") is None


def test_peek_before_anything_built():
    assert RequestScopedCache().peek(_request(), "C") is None


def test_shared_context_builds_once_across_threads():
    cache = RequestScopedCache()
    req = _request()
    calls = []
    build = _builder(calls)

    def slow_build():
        # widen the window between the lookup and the insert
        time.sleep(0.05)
        return build()

    barrier = threading.Barrier(8)
    seen = []

    def worker():
        barrier.wait()
        seen.append(cache.get_or_create(req, "C", slow_build))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(seen) == 8
    assert all(m is seen[0] for m in seen)
