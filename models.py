"""
Type definitions and data models used across the mention rewriting pipeline.

This module contains the shared types that describe a target application: which
apps are known, and what file-mention syntax each of them accepts. These values
are produced by an adapter registry outside this package and consumed by the
formatter and the rewrite service.
"""

from dataclasses import dataclass, replace
from enum import StrEnum

PATH_TOKEN = "{path}"


class SupportedApp(StrEnum):
    """
    Enumeration of target applications with a known mention syntax.

    Each value is the human-readable name shown in prompts and used as the key
    into `constants.APP_CAPABILITIES`.
    """

    CURSOR = "Cursor"
    WINDSURF = "Windsurf"
    VSCODE = "Visual Studio Code"
    ZED = "Zed"
    ANTIGRAVITY = "Antigravity"
    CODEX = "Codex"
    CLAUDE = "Claude Code"
    UNKNOWN = "Unknown App"


@dataclass(frozen=True)
class AppAdapterCapabilities:
    """
    File-mention capabilities declared by a target application.

    Attributes:
        supports_file_mentions: Whether the app understands file mentions at all.
            When False, every extracted mention is preserved verbatim.
        mention_prefix: The character(s) that introduce a mention (e.g. "@", "#", "/").
        mention_template: Rendering template. Must contain the literal token "{path}",
            e.g. "@{path}" or "[@{path}]({path})".
        display_name: Human-readable app name, used in logs and preservation details.
    """

    supports_file_mentions: bool
    mention_prefix: str = "@"
    mention_template: str = "@{path}"
    display_name: str = SupportedApp.UNKNOWN.value

    @classmethod
    def unsupported(cls, display_name: str = SupportedApp.UNKNOWN.value):
        return cls(supports_file_mentions=False, display_name=display_name)

    @property
    def has_path_template(self) -> bool:
        return PATH_TOKEN in self.mention_template

    def render_mention(self, relative_path: str) -> str:
        """
        Render a relative path in this app's mention syntax.

        Uses the template when it carries the `{path}` token, otherwise falls back
        to `<prefix><relative_path>`.
        """
        if self.has_path_template:
            return self.mention_template.replace(PATH_TOKEN, relative_path)
        return f"{self.mention_prefix}{relative_path}"

    def with_mention_template(self, template: str) -> "AppAdapterCapabilities":
        """Return a copy that renders mentions with `template`, keeping everything else."""
        return replace(self, mention_template=template)
