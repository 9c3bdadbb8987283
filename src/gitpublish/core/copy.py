"""
Copy stage: populate the reconciled checkout with build output.
"""

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from gitpublish.core.config.models import ContentSpec
from gitpublish.core.errors import FilesystemError
from gitpublish.core.reconcile.patterns import is_selected

logger = logging.getLogger(__name__)


def _iter_files(source: Path) -> Iterable[Path]:
    for path in sorted(source.rglob("*")):
        relative = path.relative_to(source)
        if ".git" in relative.parts:
            continue
        if path.is_file() or path.is_symlink():
            yield path


def copy_content(spec: ContentSpec, repo_dir: Path, base_dir: Path | None = None) -> int:
    """
    Copy one content spec into the checkout.

    Args:
        spec: Source, destination sub path and include/exclude filters
        repo_dir: Checkout root
        base_dir: Directory relative sources are resolved against

    Returns:
        Number of files copied

    Raises:
        FilesystemError: If the source is missing or a copy fails
    """
    source = Path(spec.source)
    if not source.is_absolute() and base_dir is not None:
        source = base_dir / source
    target_root = repo_dir / spec.into if spec.into else repo_dir

    if not source.exists():
        raise FilesystemError(f"Content source does not exist: {source}")

    copied = 0
    try:
        if source.is_file():
            if is_selected(source.name, spec.include, spec.exclude):
                target_root.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target_root / source.name)
                copied = 1
        else:
            for path in _iter_files(source):
                relative = path.relative_to(source).as_posix()
                if not is_selected(relative, spec.include, spec.exclude):
                    continue
                target = target_root / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                if target.is_symlink() or target.is_file():
                    target.unlink()
                shutil.copy2(path, target, follow_symlinks=False)
                copied += 1
    except OSError as e:
        raise FilesystemError(f"Failed to copy {source} into {target_root}: {e}") from e

    logger.debug("Copied %d file(s) from %s into %s", copied, source, target_root)
    return copied


def copy_contents(
    contents: Iterable[ContentSpec], repo_dir: Path, base_dir: Path | None = None
) -> int:
    """
    Copy every content spec into the checkout, in order.

    Later specs overwrite files written by earlier ones.

    Returns:
        Total number of files copied
    """
    total = 0
    for spec in contents:
        total += copy_content(spec, repo_dir, base_dir=base_dir)
    logger.info("Copied %d file(s) into %s", total, repo_dir)
    return total
