"""
Configuration data models for git-publish.

These models define the structure of .git-publish.json and
~/.config/git-publish/config.json files, with validation and type safety
via Pydantic.
"""

from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gitpublish.core.errors import ConfigError
from gitpublish.core.reconcile.patterns import validate_patterns

DEFAULT_COMMIT_MESSAGE = "Generated by git-publish."
DEFAULT_REPO_DIR = "build/git-publish"


def _check_globs(patterns: list[str]) -> list[str]:
    try:
        return validate_patterns(patterns)
    except ConfigError as e:
        raise ValueError(str(e)) from e


class ContentSpec(BaseModel):
    """
    One source of content to copy into the checkout.

    Directories are copied recursively; single files are copied by name.
    """
    source: Path = Field(
        ...,
        description="File or directory to copy (relative to the project dir)"
    )
    into: str = Field(
        default="",
        description="Sub path inside the checkout to copy into (default: root)"
    )
    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns to include (default: everything)"
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns to exclude"
    )

    @field_validator("into")
    @classmethod
    def validate_into(cls, v: str) -> str:
        """Keep destinations inside the checkout."""
        v = v.replace("\\", "/").strip("/")
        segments = v.split("/")
        if ".." in segments:
            raise ValueError("'into' cannot leave the checkout directory")
        if segments[0] == ".git":
            raise ValueError("'into' cannot point inside the checkout's .git directory")
        return v

    @field_validator("include", "exclude")
    @classmethod
    def validate_globs(cls, v: list[str]) -> list[str]:
        return _check_globs(v)

    @classmethod
    def parse(cls, value: str) -> "ContentSpec":
        """Parse a command-line value of the form SRC[:INTO]."""
        source, sep, into = value.partition(":")
        if not source:
            raise ValueError(f"Invalid content spec: {value!r}")
        return cls(source=Path(source), into=into if sep else "")


class PublishConfig(BaseModel):
    """
    Top-level git-publish configuration.

    Loaded from defaults, user config, project config, env vars and finally
    command-line options.

    Example:
        >>> config = PublishConfig(
        ...     repo_uri="git@github.com:org/site.git",
        ...     branch="gh-pages",
        ...     contents=[ContentSpec(source=Path("build/docs"))],
        ...     preserve=["CNAME", "**/.nojekyll"],
        ... )
        >>> config.commit_message
        'Generated by git-publish.'
    """
    repo_uri: Optional[str] = Field(
        default=None,
        description="Remote to publish to (default: the project's origin remote)"
    )
    reference_repo_uri: Optional[str] = Field(
        default=None,
        description="Local repository to borrow objects from (default: the project repo)"
    )
    branch: Optional[str] = Field(
        default=None,
        description="Branch to publish to, e.g. 'gh-pages'"
    )
    repo_dir: Path = Field(
        default=Path(DEFAULT_REPO_DIR),
        description="Checkout directory (relative to the project dir)"
    )
    preserve: list[str] = Field(
        default_factory=list,
        description="Glob patterns of checkout files that survive the reset"
    )
    contents: list[ContentSpec] = Field(
        default_factory=list,
        description="Content to copy into the checkout"
    )
    commit_message: str = Field(
        default=DEFAULT_COMMIT_MESSAGE,
        min_length=1,
        description="Message for the publish commit"
    )
    sign: Optional[bool] = Field(
        default=None,
        description="GPG-sign the commit (true), never sign (false), or use git's default"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,  # Validate on field assignment
    )

    @field_validator("contents", mode="before")
    @classmethod
    def validate_contents(cls, v: Any) -> Any:
        """Accept bare strings ("SRC[:INTO]") alongside full objects."""
        if isinstance(v, (str, dict)):
            v = [v]
        if isinstance(v, list):
            return [ContentSpec.parse(item) if isinstance(item, str) else item for item in v]
        return v

    @field_validator("preserve", mode="before")
    @classmethod
    def validate_preserve(cls, v: Union[str, list[str]]) -> list[str]:
        """Convert a comma separated string into a pattern list."""
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator("preserve")
    @classmethod
    def validate_preserve_globs(cls, v: list[str]) -> list[str]:
        return _check_globs(v)
