"""
Global constants and configuration data for the mention rewriting pipeline.

This module holds the fixed limits of the workspace indexer, the markers used to
locate a project root, the regular expressions used to extract mentions from
transcribed text, and the table of known application mention syntaxes. Patterns
are kept here as data so their edge cases can be tested in isolation.
"""

import re

from models import AppAdapterCapabilities, SupportedApp

# --- Workspace indexing -----------------------------------------------------

# Hard ceiling per workspace root. Hitting it logs a warning and keeps the partial list.
MAX_FILES_PER_ROOT = 12_000

# Index building races against this deadline; the loser is cancelled.
INDEX_BUILD_TIMEOUT_SECONDS = 2.0

GIT_EXECUTABLE = "git"

GIT_LS_FILES_ARGS = ("ls-files", "-z", "--cached", "--others", "--exclude-standard")

# How often a running `git ls-files` is checked for cancellation.
GIT_POLL_INTERVAL_SECONDS = 0.05

# A `rev-parse` that hangs past this reads as "not a repository".
GIT_REPO_CHECK_TIMEOUT_SECONDS = INDEX_BUILD_TIMEOUT_SECONDS

# Directory suffixes treated as opaque packages by the filesystem walk.
BUNDLE_SUFFIXES = frozenset(
    {
        ".app",
        ".bundle",
        ".framework",
        ".xcodeproj",
        ".xcworkspace",
        ".xcassets",
        ".playground",
        ".plugin",
        ".kext",
        ".photoslibrary",
    }
)

# --- Workspace root normalization --------------------------------------------

MAX_ROOT_CLIMB = 8

# Checked in order at each ancestor; the first hit wins.
PROJECT_MARKERS = (
    ".git",
    "Package.swift",
    "package.json",
    "Cargo.toml",
    "go.mod",
    "pyproject.toml",
    "Makefile",
    ".project",
    "build.gradle",
    "pom.xml",
)

# Xcode bundles are named after the project ("Pindrop.xcodeproj"), so these
# match any entry with the suffix. Checked after the exact-name markers.
PROJECT_MARKER_SUFFIXES = (".xcodeproj", ".xcworkspace")

FILE_URL_SCHEME = "file://"

# --- Resolution ---------------------------------------------------------------

RECENCY_WINDOW_SECONDS = 3600.0

# --- Formatting / rewriting ---------------------------------------------------

# Characters swallowed into the replacement span so "@foo.swift" is not re-prefixed.
KNOWN_MENTION_PREFIXES = frozenset({"@", "#", "/"})

CANONICAL_PLACEHOLDER_TEMPLATE = "[[:{path}:]]"

MAX_EXTRACTION_WINDOW = 3

# --- Workspace summaries ------------------------------------------------------

MAX_TREE_ENTRIES = 200

MAX_FILE_TAG_CANDIDATES = 8

WORKSPACE_CONFIDENCE_INDEXED = 0.9
WORKSPACE_CONFIDENCE_UNINDEXED = 0.2
ACTIVE_DOCUMENT_CONFIDENCE_IN_WORKSPACE = 1.0
ACTIVE_DOCUMENT_CONFIDENCE_OUTSIDE_WORKSPACE = 0.45

# --- Patterns -----------------------------------------------------------------

# "AppCoordinator.swift", "gen/fixtures.go", "foo.test.ts"
LITERAL_FILENAME_PATTERN = re.compile(
    r"(?<![/\w.])[a-zA-Z_][\w-]*(?:/[a-zA-Z_][\w-]*)*(?:\.[a-zA-Z]\w*)+(?![/\w])"
)

# The " dot " boundary of a spoken filename ("app coordinator dot swift").
SPOKEN_DOT_PATTERN = re.compile(r"\s+dot\s+", re.IGNORECASE)

# The extension word right after a spoken " dot ".
SPOKEN_EXTENSION_PATTERN = re.compile(r"\w+")

WORD_PATTERN = re.compile(r"\b\w+\b")

CANONICAL_PLACEHOLDER_PATTERN = re.compile(r"\[\[:(.+?):\]\]")

# Mention normalization: a leftover "dot swift" at the very end.
TRAILING_DOT_WORD_PATTERN = re.compile(r"\bdot\s+(\w+)$")

# "AppCoordinator" -> App, Coordinator; "HTTPServer" -> HTTP, Server
CAMEL_CASE_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")

# --- Known applications -------------------------------------------------------

APP_CAPABILITIES: dict[SupportedApp, AppAdapterCapabilities] = {
    SupportedApp.CURSOR: AppAdapterCapabilities(
        supports_file_mentions=True,
        mention_prefix="@",
        mention_template="@{path}",
        display_name=SupportedApp.CURSOR.value,
    ),
    SupportedApp.WINDSURF: AppAdapterCapabilities(
        supports_file_mentions=True,
        mention_prefix="@",
        mention_template="@{path}",
        display_name=SupportedApp.WINDSURF.value,
    ),
    SupportedApp.VSCODE: AppAdapterCapabilities(
        supports_file_mentions=True,
        mention_prefix="#",
        mention_template="#{path}",
        display_name=SupportedApp.VSCODE.value,
    ),
    SupportedApp.ZED: AppAdapterCapabilities(
        supports_file_mentions=True,
        mention_prefix="/",
        mention_template="/{path}",
        display_name=SupportedApp.ZED.value,
    ),
    SupportedApp.ANTIGRAVITY: AppAdapterCapabilities(
        supports_file_mentions=True,
        mention_prefix="@",
        mention_template="@{path}",
        display_name=SupportedApp.ANTIGRAVITY.value,
    ),
    SupportedApp.CODEX: AppAdapterCapabilities(
        supports_file_mentions=True,
        mention_prefix="@",
        mention_template="[@{path}]({path})",
        display_name=SupportedApp.CODEX.value,
    ),
    SupportedApp.CLAUDE: AppAdapterCapabilities(
        supports_file_mentions=True,
        mention_prefix="@",
        mention_template="@{path}",
        display_name=SupportedApp.CLAUDE.value,
    ),
    SupportedApp.UNKNOWN: AppAdapterCapabilities.unsupported(),
}
