"""Path normalization utilities.

Keep this module free of Qt dependencies.
"""

from __future__ import annotations

from pathlib import Path


def abs_path(path: str | Path) -> Path:
    """Return an absolute path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except Exception:
        return p.absolute()


def abs_path_str(path: str | Path) -> str:
    return str(abs_path(path))
