"""
Shared fixtures: POM builders and an in-memory repository that stands in for
the HTTP fetcher.
"""

import asyncio
from pathlib import Path

import pytest

from mvnfetch.exceptions import NotFoundError
from mvnfetch.models.config import FetchConfig
from mvnfetch.models.coordinate import Coordinate, remote_url

REPO_URL = "http://repo.test/maven2"


def pom(coordinate: str, dependencies=(), properties=None) -> bytes:
    """Builds a namespaced POM for ``group:artifact:version``."""
    group, artifact, version = coordinate.split(":")
    props = "".join(
        f"<{name}>{value}</{name}>" for name, value in (properties or {}).items()
    )
    deps = ""
    for dep in dependencies:
        d_group, d_artifact, d_version = dep.split(":")
        deps += (
            "<dependency>"
            f"<groupId>{d_group}</groupId>"
            f"<artifactId>{d_artifact}</artifactId>"
            f"<version>{d_version}</version>"
            "</dependency>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">'
        "<modelVersion>4.0.0</modelVersion>"
        f"<groupId>{group}</groupId>"
        f"<artifactId>{artifact}</artifactId>"
        f"<version>{version}</version>"
        f"<properties>{props}</properties>"
        f"<dependencies>{deps}</dependencies>"
        "</project>"
    ).encode()


def coord(key: str) -> Coordinate:
    return Coordinate(*key.split(":"))


class FakeRepository:
    """
    Serves registered files by URL. Records every fetch and the highest number
    of fetches that were in progress at the same time.
    """

    def __init__(self, base_url: str = REPO_URL, delay: float = 0.0):
        self.base_url = base_url
        self.delay = delay
        self.files: dict[str, object] = {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, key: str, dependencies=(), jar: bytes = b"PK\x03\x04jar", **kw):
        c = coord(key)
        self.files[remote_url(self.base_url, c, "pom")] = kw.get(
            "descriptor", pom(key, dependencies, kw.get("properties"))
        )
        if jar is not None:
            self.files[remote_url(self.base_url, c, "jar")] = jar

    def set(self, key: str, extension: str, body) -> None:
        """Replaces one file. ``body`` may be an exception instance to raise."""
        self.files[remote_url(self.base_url, coord(key), extension)] = body

    def count(self, key: str, extension: str) -> int:
        url = remote_url(self.base_url, coord(key), extension)
        return self.calls.count(url)

    async def fetch(self, url: str, destination: Path) -> int:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            body = self.files.get(url)
            if body is None:
                raise NotFoundError(f"Not found: {url}", url, 404)
            if isinstance(body, BaseException):
                raise body
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(body)
            return len(body)
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_repo():
    return FakeRepository()


@pytest.fixture
def config():
    return FetchConfig(repository_url=REPO_URL, max_workers=4)


@pytest.fixture
def repository_root(tmp_path):
    return tmp_path / "repository"
