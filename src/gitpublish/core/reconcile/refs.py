"""
Branch name validation.

Mirrors the rules of `git check-ref-format --branch` so a malformed name is
rejected before any repository or network work happens.
"""

from gitpublish.core.errors import InvalidBranchError

_FORBIDDEN_CHARS = frozenset(" ~^:?*[\\")


def validate_branch_name(branch: str) -> str:
    """
    Check that a branch name is a valid git branch ref name.

    Args:
        branch: Short branch name (e.g. "gh-pages", "docs/site")

    Returns:
        The branch name, unchanged

    Raises:
        InvalidBranchError: If the name breaks any ref-format rule
    """
    if not branch:
        raise InvalidBranchError(branch, "name is empty")
    if branch == "HEAD" or branch == "@":
        raise InvalidBranchError(branch, "name is reserved")
    if branch.startswith("-"):
        raise InvalidBranchError(branch, "name cannot start with '-'")
    if branch.startswith("/") or branch.endswith("/"):
        raise InvalidBranchError(branch, "name cannot start or end with '/'")
    if branch.endswith("."):
        raise InvalidBranchError(branch, "name cannot end with '.'")
    if "//" in branch:
        raise InvalidBranchError(branch, "name cannot contain '//'")
    if ".." in branch:
        raise InvalidBranchError(branch, "name cannot contain '..'")
    if "@{" in branch:
        raise InvalidBranchError(branch, "name cannot contain '@{'")

    for char in branch:
        if ord(char) < 0x20 or ord(char) == 0x7F:
            raise InvalidBranchError(branch, "name cannot contain control characters")
        if char in _FORBIDDEN_CHARS:
            raise InvalidBranchError(branch, f"name cannot contain {char!r}")

    for component in branch.split("/"):
        if component.startswith("."):
            raise InvalidBranchError(branch, "path components cannot start with '.'")
        if component.endswith(".lock"):
            raise InvalidBranchError(branch, "path components cannot end with '.lock'")

    return branch
