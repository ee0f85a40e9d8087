import threading
import time

import pytest

from conftest import REMOTE_URL, FakeFetcher, dep, deps, pom, remote_url
from pomresolver.core.exceptions import (
    ConfigurationError,
    CyclicReferenceError,
    FetchError,
    OperationCancelledError,
)
from pomresolver.processing.maven_model import Coordinate, DiagnosticKind
from pomresolver.services.artifact_registry import ArtifactRegistry
from pomresolver.services.repository import MavenRepository

CORE = Coordinate("org.acme", "core", "1.0")


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_remote_descriptor_is_downloaded_into_cache(remote_registry, remote_repository, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0", body=deps(dep("d", "a", "1")))

    version = remote_registry.resolve(CORE)

    cache_file = remote_repository.cache_file(CORE, "pom")
    assert fetcher.opened == [f"{REMOTE_URL}/org/acme/core/1.0/core-1.0.pom"]
    assert fetcher.fetch_count == 1
    assert cache_file.exists()
    assert version.descriptor_path == cache_file
    assert [d.coordinate.path for d in version.get_dependencies()] == ["d:a:1"]
    assert list(cache_file.parent.glob("*.part")) == []


def test_cached_descriptor_is_not_fetched_again(settings, remote_repository, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")
    ArtifactRegistry(settings, repositories=[remote_repository], fetcher=fetcher).resolve(CORE)

    second = FakeFetcher(settings)
    version = ArtifactRegistry(settings, repositories=[remote_repository], fetcher=second).resolve(CORE)

    assert second.opened == []
    assert version.version == "1.0"


def test_resolve_is_memoized(remote_registry, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")

    first = remote_registry.resolve(CORE)
    second = remote_registry.resolve(Coordinate("org.acme", "core", "1.0"))

    assert first is second
    assert remote_registry.get(CORE) is first
    assert CORE in remote_registry
    assert len(remote_registry) == 1
    assert fetcher.fetch_count == 1


def test_shared_parent_is_constructed_once(remote_registry, fetcher):
    fetcher.documents.update({
        remote_url("org.acme", "parent", "1"): pom("org.acme", "parent", "1"),
        remote_url("org.acme", "a", "1"): pom("org.acme", "a", "1", parent="org.acme:parent:1"),
        remote_url("org.acme", "b", "1"): pom("org.acme", "b", "1", parent="org.acme:parent:1"),
    })

    a = remote_registry.resolve(Coordinate("org.acme", "a", "1"))
    b = remote_registry.resolve(Coordinate("org.acme", "b", "1"))

    assert a.parent is b.parent
    assert fetcher.opened.count(remote_url("org.acme", "parent", "1")) == 1


def test_concurrent_requests_share_one_construction(remote_registry, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")
    fetcher.gate = threading.Event()
    results = []
    errors = []

    def worker():
        try:
            results.append(remote_registry.resolve(CORE))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()

    assert _wait_until(lambda: len(fetcher.opened) == 1 and len(remote_registry._waiting) == 3)
    fetcher.gate.set()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert len(results) == 4
    assert all(result is results[0] for result in results)
    assert fetcher.fetch_count == 1


def _resolve_in_thread(registry, context, outcome, key):
    def worker():
        try:
            outcome[key] = registry.resolve(CORE, context)
        except Exception as e:
            outcome[key] = e

    thread = threading.Thread(target=worker)
    thread.start()
    return thread


def test_waiter_retries_when_builder_is_cancelled(remote_registry, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")
    fetcher.gate = threading.Event()
    builder_context = remote_registry.new_context()
    waiter_context = remote_registry.new_context()
    outcome = {}

    builder = _resolve_in_thread(remote_registry, builder_context, outcome, "builder")
    assert _wait_until(lambda: len(fetcher.opened) == 1)
    waiter = _resolve_in_thread(remote_registry, waiter_context, outcome, "waiter")
    assert _wait_until(lambda: len(remote_registry._waiting) == 1)

    builder_context.cancel()
    fetcher.gate.set()
    builder.join(timeout=10)
    waiter.join(timeout=10)

    assert isinstance(outcome["builder"], OperationCancelledError)
    assert outcome["waiter"] is remote_registry.get(CORE)
    assert outcome["waiter"].version == "1.0"
    assert not waiter_context.is_cancelled
    assert fetcher.fetch_count == 2


def test_waiter_sharing_cancelled_context_fails(remote_registry, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")
    fetcher.gate = threading.Event()
    event = threading.Event()
    outcome = {}

    builder = _resolve_in_thread(remote_registry, remote_registry.new_context(cancel_event=event), outcome, "builder")
    assert _wait_until(lambda: len(fetcher.opened) == 1)
    waiter = _resolve_in_thread(remote_registry, remote_registry.new_context(cancel_event=event), outcome, "waiter")
    assert _wait_until(lambda: len(remote_registry._waiting) == 1)

    event.set()
    fetcher.gate.set()
    builder.join(timeout=10)
    waiter.join(timeout=10)

    assert isinstance(outcome["builder"], OperationCancelledError)
    assert isinstance(outcome["waiter"], OperationCancelledError)
    assert CORE not in remote_registry
    assert fetcher.fetch_count == 1


def test_local_repository_never_fetches(local_registry, fetcher):
    version = local_registry.resolve(CORE, local_registry.new_context(allow_remote_fetch=True))

    assert fetcher.opened == []
    assert [d.kind for d in version.diagnostics] == [DiagnosticKind.MISSING_DESCRIPTOR]


def test_fetch_disabled_yields_empty_metadata(remote_registry, remote_repository, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")

    version = remote_registry.resolve(CORE, remote_registry.new_context(allow_remote_fetch=False))

    assert fetcher.opened == []
    assert version.name is None
    assert version.get_dependencies() == []
    assert version.diagnostics[0].kind == DiagnosticKind.MISSING_DESCRIPTOR
    assert not remote_repository.cache_file(CORE, "pom").exists()


def test_fetch_error_propagates_from_resolve(remote_registry, remote_repository):
    with pytest.raises(FetchError) as exc_info:
        remote_registry.resolve(CORE)

    assert exc_info.value.url == remote_url("org.acme", "core", "1.0")
    assert CORE not in remote_registry
    assert not remote_repository.cache_file(CORE, "pom").exists()
    assert remote_registry.find_version(CORE) is None


def test_cancelled_context_stops_resolution(remote_registry, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")
    context = remote_registry.new_context()
    context.cancel()

    with pytest.raises(OperationCancelledError):
        remote_registry.resolve(CORE, context)

    assert fetcher.opened == []
    assert CORE not in remote_registry


def test_cancellation_during_download_leaves_no_partial_file(remote_registry, remote_repository, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0", body="<name>big</name>")
    context = remote_registry.new_context()

    def cancel_midway(offset):
        if offset >= 8:
            context.cancel()

    fetcher.on_chunk = cancel_midway

    with pytest.raises(OperationCancelledError):
        remote_registry.resolve(CORE, context)

    cache_file = remote_repository.cache_file(CORE, "pom")
    assert not cache_file.exists()
    assert list(cache_file.parent.iterdir()) == []

    # a fresh context can resolve it afterwards
    fetcher.on_chunk = None
    assert remote_registry.resolve(CORE).version == "1.0"


def test_cancellation_through_shared_event(remote_registry, fetcher):
    event = threading.Event()
    context = remote_registry.new_context(cancel_event=event)
    event.set()

    assert context.is_cancelled
    with pytest.raises(OperationCancelledError):
        remote_registry.resolve(CORE, context)


def test_cycle_propagates_through_find_version(local_registry, local_repo):
    local_repo.add("org.acme:a:1", pom("org.acme", "a", "1", parent="org.acme:a:1"))

    with pytest.raises(CyclicReferenceError) as exc_info:
        local_registry.find_version(Coordinate("org.acme", "a", "1"))

    assert exc_info.value.cycle == ["org.acme:a:1", "org.acme:a:1"]


def test_repository_selection_prefers_repository_holding_descriptor(settings, local_repo, remote_repository, fetcher):
    local_repo.add("org.acme:core:1.0", pom("org.acme", "core", "1.0", body="<name>local</name>"))
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0", body="<name>remote</name>")
    registry = ArtifactRegistry(settings, repositories=[remote_repository, local_repo.repository], fetcher=fetcher)

    local = registry.resolve(CORE)
    remote = registry.resolve(Coordinate("org.acme", "other", "1"), registry.new_context(allow_remote_fetch=False))

    assert local.name == "local"
    assert local.repository is local_repo.repository
    assert remote.repository is remote_repository
    assert fetcher.opened == []


def test_no_repositories_is_a_configuration_error(settings, fetcher):
    registry = ArtifactRegistry(settings, repositories=[], fetcher=fetcher)

    with pytest.raises(ConfigurationError):
        registry.resolve(CORE)


def test_repositories_default_from_settings(settings, fetcher):
    registry = ArtifactRegistry(settings, fetcher=fetcher)

    assert [r.url for r in registry.repositories] == [REMOTE_URL]
    assert registry.repositories[0].cache_dir == settings.cache_dir / "repo.example.org_maven2"
    assert registry.platform_version == "1.8.0_292"


def test_clear_drops_instances(remote_registry, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")
    first = remote_registry.resolve(CORE)

    remote_registry.clear()

    assert len(remote_registry) == 0
    assert remote_registry.resolve(CORE) is not first


def test_progress_callback_receives_sub_tasks(remote_registry, fetcher):
    fetcher.documents[remote_url("org.acme", "core", "1.0")] = pom("org.acme", "core", "1.0")
    messages = []
    context = remote_registry.new_context(progress=lambda message, done: messages.append(message))

    remote_registry.resolve(CORE, context)

    assert messages[0].startswith("Download POM ")
    assert messages[1] == "Load POM org.acme:core:1.0"
    assert context.work_done == 1


def test_repository_file_naming(tmp_path):
    repository = MavenRepository.from_url("https://repo.example.org/maven2/", tmp_path)

    assert repository.id == "repo.example.org_maven2"
    assert not repository.is_local
    assert repository.file_url(CORE, "jar") == "https://repo.example.org/maven2/org/acme/core/1.0/core-1.0.jar"
    assert repository.cache_file(CORE, "pom") == tmp_path / "repo.example.org_maven2" / "org.acme" / "core-1.0.pom"
    assert MavenRepository.from_url(tmp_path.as_uri()).is_local
