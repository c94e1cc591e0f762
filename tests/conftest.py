from __future__ import annotations

import io

import pytest

from postbuild.icons import IconResolver
from postbuild.local import BuildStore, LocalHost, LocalProject, StreamListener
from postbuild.manager import BuildManager
from postbuild.model import Result


@pytest.fixture
def host() -> LocalHost:
    return LocalHost(icons=IconResolver(resource_path="/static"))


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def listener(log_stream) -> StreamListener:
    return StreamListener(log_stream)


@pytest.fixture
def store() -> BuildStore:
    return BuildStore("sqlite://")


@pytest.fixture
def project(tmp_path, store) -> LocalProject:
    return LocalProject("demo", root=tmp_path / "jobs", store=store)


@pytest.fixture
def make_manager(host, listener):
    def _make(build, failure_result: Result = Result.FAILURE) -> BuildManager:
        return BuildManager(build, listener, failure_result, host=host)
    return _make


def error_lines(stream: io.StringIO) -> list[str]:
    return [line for line in stream.getvalue().splitlines() if line.startswith("ERROR: ")]
