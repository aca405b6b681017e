"""
Shared fixtures for core module tests.

This module provides an in-memory workspace, built indexes over it, and the
capabilities of the apps the tests format for.
"""

import asyncio

import pytest

from adapters.filesystem import MockFileSystemProvider
from constants import APP_CAPABILITIES
from core.file_index import WorkspaceFileIndex
from models import AppAdapterCapabilities, SupportedApp

WORKSPACE_ROOT = "/workspace"

WORKSPACE_FILES = [
    "/workspace/Pindrop/Services/AppCoordinator.swift",
    "/workspace/Pindrop/Services/AudioRecorder.swift",
    "/workspace/Pindrop/Services/TranscriptionService.swift",
    "/workspace/Pindrop/UI/Settings/SettingsWindow.swift",
    "/workspace/Pindrop/UI/Main/MainWindow.swift",
    "/workspace/Pindrop/Utils/Logger.swift",
    "/workspace/Pindrop/Models/TranscriptionRecord.swift",
    "/workspace/PindropTests/AudioRecorderTests.swift",
    "/workspace/README.md",
]


def build_index(
    file_system: MockFileSystemProvider, roots: list[str]
) -> WorkspaceFileIndex:
    """Build an index synchronously; only for use outside a running event loop."""
    index = WorkspaceFileIndex(file_system)
    asyncio.run(index.build_index(roots))
    return index


@pytest.fixture
def mock_fs():
    """The sample workspace used across rewrite and extraction tests."""
    return MockFileSystemProvider(
        directories={WORKSPACE_ROOT},
        files_by_root={WORKSPACE_ROOT: list(WORKSPACE_FILES)},
    )


@pytest.fixture
def workspace_index(mock_fs):
    """A built index over the sample workspace."""
    return build_index(mock_fs, [WORKSPACE_ROOT])


@pytest.fixture
def index_factory():
    """
    Build an index from a flat list of absolute paths under a single root.

    Usage: index_factory(["/repo/Foo/Bar.swift", "/repo/Baz/Bar.swift"])
    """

    def _factory(files: list[str], root: str = "/repo") -> WorkspaceFileIndex:
        file_system = MockFileSystemProvider(
            directories={root},
            files_by_root={root: files},
        )
        return build_index(file_system, [root])

    return _factory


@pytest.fixture
def cursor_capabilities() -> AppAdapterCapabilities:
    return APP_CAPABILITIES[SupportedApp.CURSOR]


@pytest.fixture
def vscode_capabilities() -> AppAdapterCapabilities:
    return APP_CAPABILITIES[SupportedApp.VSCODE]


@pytest.fixture
def zed_capabilities() -> AppAdapterCapabilities:
    return APP_CAPABILITIES[SupportedApp.ZED]


@pytest.fixture
def codex_capabilities() -> AppAdapterCapabilities:
    return APP_CAPABILITIES[SupportedApp.CODEX]


@pytest.fixture
def unsupported_capabilities() -> AppAdapterCapabilities:
    return AppAdapterCapabilities.unsupported()
