"""
Tests for the dependency graph walker, run against an in-memory repository.
"""

import json

import pytest

from conftest import REPO_URL, FakeRepository, coord
from mvnfetch.core.walker import DependencyGraphWalker
from mvnfetch.exceptions import HTTPStatusError, TransportError
from mvnfetch.models.config import FetchConfig
from mvnfetch.models.coordinate import local_path
from mvnfetch.utils.structured_logger import StructuredLogger, WalkEventLogger


def make_walker(config, repo, recorder=None):
    events = WalkEventLogger(listeners=[recorder] if recorder else None)
    return DependencyGraphWalker(config, repo, events)


class EventRecorder:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event, context):
        self.events.append((event, dict(context)))

    def named(self, event):
        return [context for name, context in self.events if name == event]


class TestGraphShapes:
    async def test_single_coordinate(self, config, fake_repo, repository_root):
        fake_repo.add("junit:junit:4.13.2")
        stats = await make_walker(config, fake_repo).walk_all(
            [coord("junit:junit:4.13.2")], repository_root
        )

        c = coord("junit:junit:4.13.2")
        assert local_path(repository_root, c, "jar").read_bytes() == b"PK\x03\x04jar"
        assert local_path(repository_root, c, "pom").is_file()
        assert stats.coordinates_visited == 1
        assert stats.files_downloaded == 2

    async def test_diamond_fetches_shared_dependency_once(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:a:1", ["g:b:1", "g:c:1"])
        fake_repo.add("g:b:1", ["g:d:1"])
        fake_repo.add("g:c:1", ["g:d:1"])
        fake_repo.add("g:d:1")

        walker = make_walker(config, fake_repo)
        stats = await walker.walk_all([coord("g:a:1")], repository_root)

        assert fake_repo.count("g:d:1", "jar") == 1
        assert fake_repo.count("g:d:1", "pom") == 1
        assert walker.tracker.snapshot() == {"g:a:1", "g:b:1", "g:c:1", "g:d:1"}
        assert stats.duplicates_skipped == 1
        assert stats.dependencies_discovered == 4

    async def test_cycle_terminates(self, config, fake_repo, repository_root):
        fake_repo.add("g:a:1", ["g:b:1"])
        fake_repo.add("g:b:1", ["g:a:1"])

        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g:a:1")], repository_root
        )

        assert stats.coordinates_visited == 2
        assert len(fake_repo.calls) == 4

    async def test_duplicate_roots_visit_once(self, config, fake_repo, repository_root):
        fake_repo.add("g:a:1")
        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g:a:1"), coord("g:a:1")], repository_root
        )
        assert stats.coordinates_visited == 1
        assert len(fake_repo.calls) == 2

    async def test_incomplete_root_is_aborted(self, config, fake_repo, repository_root):
        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g::1")], repository_root
        )
        assert stats.branches_aborted == 1
        assert fake_repo.calls == []


class TestIdempotence:
    async def test_second_walk_fetches_nothing(self, config, repository_root):
        first = FakeRepository()
        for key, deps in [("g:a:1", ["g:b:1"]), ("g:b:1", ["g:c:1"]), ("g:c:1", [])]:
            first.add(key, deps)
        await make_walker(config, first).walk_all([coord("g:a:1")], repository_root)

        second = FakeRepository()
        stats = await make_walker(config, second).walk_all(
            [coord("g:a:1")], repository_root
        )

        assert second.calls == []
        assert stats.coordinates_visited == 3
        assert stats.files_skipped_exists == 6

    async def test_empty_file_on_disk_is_fetched_again(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:a:1")
        jar = local_path(repository_root, coord("g:a:1"), "jar")
        jar.parent.mkdir(parents=True)
        jar.write_bytes(b"")

        await make_walker(config, fake_repo).walk_all([coord("g:a:1")], repository_root)

        assert fake_repo.count("g:a:1", "jar") == 1
        assert jar.read_bytes() == b"PK\x03\x04jar"


class TestConcurrency:
    @pytest.mark.parametrize("workers", [1, 3])
    async def test_fetches_in_flight_never_exceed_workers(
        self, workers, repository_root
    ):
        repo = FakeRepository(delay=0.01)
        siblings = [f"g:leaf{i}:1" for i in range(10)]
        repo.add("g:root:1", siblings)
        for key in siblings:
            repo.add(key)

        config = FetchConfig(repository_url=REPO_URL, max_workers=workers)
        walker = make_walker(config, repo)
        stats = await walker.walk_all([coord("g:root:1")], repository_root)

        assert stats.coordinates_visited == 11
        assert repo.max_in_flight <= workers
        assert stats.peak_in_flight <= workers


class TestFailures:
    async def test_missing_artifact_still_expands_descriptor(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:parent:1", ["g:child:1"], jar=None)
        fake_repo.add("g:child:1")

        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g:parent:1")], repository_root
        )

        assert stats.files_not_found == 1
        assert stats.coordinates_visited == 2
        assert not local_path(repository_root, coord("g:parent:1"), "jar").exists()

    async def test_missing_descriptor_aborts_only_its_branch(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:root:1", ["g:broken:1", "g:fine:1"])
        fake_repo.add("g:broken:1", ["g:never:1"])
        fake_repo.set("g:broken:1", "pom", None)
        fake_repo.add("g:fine:1", ["g:deep:1"])
        fake_repo.add("g:deep:1")
        fake_repo.add("g:never:1")

        recorder = EventRecorder()
        walker = make_walker(config, fake_repo, recorder)
        stats = await walker.walk_all([coord("g:root:1")], repository_root)

        assert "g:deep:1" in walker.tracker
        assert "g:never:1" not in walker.tracker
        assert stats.branches_aborted == 1
        assert recorder.named("branch_aborted")[0]["coordinate"] == "g:broken:1"

    async def test_empty_descriptor_is_removed(self, config, fake_repo, repository_root):
        fake_repo.add("g:a:1", descriptor=b"")
        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g:a:1")], repository_root
        )
        assert stats.branches_aborted == 1
        assert not local_path(repository_root, coord("g:a:1"), "pom").exists()

    async def test_malformed_descriptor_aborts_branch(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:root:1", ["g:bad:1", "g:ok:1"])
        fake_repo.add("g:bad:1", descriptor=b"<project><oops></project>")
        fake_repo.add("g:ok:1")

        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g:root:1")], repository_root
        )

        assert stats.branches_aborted == 1
        assert stats.coordinates_visited == 3

    async def test_unresolved_dependency_is_dropped(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:root:1", ["g:ghost:${unknown}", "g:real:1"])
        fake_repo.add("g:real:1")

        walker = make_walker(config, fake_repo)
        await walker.walk_all([coord("g:root:1")], repository_root)

        assert walker.tracker.snapshot() == {"g:root:1", "g:real:1"}

    async def test_transport_and_status_errors_are_recorded(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:a:1")
        url = f"{REPO_URL}/g/a/1/a-1.jar"
        fake_repo.set("g:a:1", "jar", TransportError("Transport failure: refused", url))
        fake_repo.add("g:b:1")
        fake_repo.set("g:b:1", "jar", HTTPStatusError("HTTP 503", url, 503))

        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g:a:1"), coord("g:b:1")], repository_root
        )

        assert stats.files_failed == 2
        assert len(stats.failures) == 2
        assert stats.coordinates_visited == 2

    async def test_unexpected_error_stays_local(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:a:1")
        fake_repo.set("g:a:1", "jar", RuntimeError("boom"))
        fake_repo.add("g:b:1")

        stats = await make_walker(config, fake_repo).walk_all(
            [coord("g:a:1"), coord("g:b:1")], repository_root
        )

        assert stats.branches_aborted == 1
        assert local_path(repository_root, coord("g:b:1"), "jar").is_file()

    async def test_unexpected_error_text_is_escaped_in_log(
        self, config, fake_repo, repository_root, caplog
    ):
        fake_repo.add("g:a:1")
        fake_repo.set("g:a:1", "jar", RuntimeError("bad [/bold] markup"))

        with caplog.at_level("ERROR", logger="mvnfetch.core.walker"):
            await make_walker(config, fake_repo).walk_all(
                [coord("g:a:1")], repository_root
            )

        assert r"bad \[/bold] markup" in caplog.text


class TestDepthLimit:
    async def test_expansion_stops_at_max_depth(self, fake_repo, repository_root):
        fake_repo.add("g:a:1", ["g:b:1"])
        fake_repo.add("g:b:1", ["g:c:1"])
        fake_repo.add("g:c:1", ["g:d:1"])
        fake_repo.add("g:d:1")

        config = FetchConfig(repository_url=REPO_URL, max_depth=1)
        walker = make_walker(config, fake_repo)
        stats = await walker.walk_all([coord("g:a:1")], repository_root)

        assert walker.tracker.snapshot() == {"g:a:1", "g:b:1"}
        assert stats.branches_aborted == 1


class TestEvents:
    async def test_walk_is_bracketed_by_start_and_completion(
        self, config, fake_repo, repository_root
    ):
        fake_repo.add("g:a:1", ["g:b:1"])
        fake_repo.add("g:b:1")
        recorder = EventRecorder()

        await make_walker(config, fake_repo, recorder).walk_all(
            [coord("g:a:1")], repository_root
        )

        names = [name for name, _ in recorder.events]
        assert names[0] == "walk_started"
        assert names[-1] == "walk_completed"
        assert recorder.named("walk_completed")[0]["visited"] == 2
        assert recorder.named("dependency_discovered") == [
            {"parent": "g:a:1", "coordinate": "g:b:1"}
        ]


class TestRepositoryConfinement:
    @pytest.mark.parametrize(
        "hostile",
        ["g:evil:../../../../escaped", "g:..:1", "..:evil:1", "g:evil:1\\..\\..\\x"],
    )
    async def test_dependency_cannot_escape_repository_root(
        self, config, fake_repo, tmp_path, hostile
    ):
        repository_root = tmp_path / "a" / "b" / "repository"
        fake_repo.add("g:root:1", [hostile])
        fake_repo.add("g:evil:1")

        recorder = EventRecorder()
        stats = await make_walker(config, fake_repo, recorder).walk_all(
            [coord("g:root:1")], repository_root
        )

        outside = [
            p
            for p in tmp_path.rglob("*")
            if p.is_file() and repository_root not in p.parents
        ]
        assert outside == []
        assert stats.branches_aborted == 1
        assert recorder.named("branch_aborted")[0]["coordinate"] == hostile
        assert len(fake_repo.calls) == 2


class TestEventLog:
    async def test_events_are_appended_as_json_lines(
        self, config, fake_repo, repository_root, tmp_path
    ):
        fake_repo.add("g:a:1")
        log_path = tmp_path / "logs" / "events.jsonl"

        with StructuredLogger("mvnfetch.events", log_path=log_path) as structured:
            structured.set_session_context(manifest="pom.xml")
            walker = DependencyGraphWalker(config, fake_repo, WalkEventLogger(structured))
            await walker.walk_all([coord("g:a:1")], repository_root)

        entries = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert entries[0]["event"] == "walk_started"
        assert entries[-1]["event"] == "walk_completed"
        assert all(e["manifest"] == "pom.xml" for e in entries)
        completed = [e for e in entries if e["event"] == "fetch_completed"]
        assert {e["kind"] for e in completed} == {"jar", "pom"}
        assert structured._json_file.closed
