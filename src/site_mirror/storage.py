from __future__ import annotations

from pathlib import Path

from .errors import PersistenceError


def save_file(out_dir: Path, rel_path: str, body: bytes) -> Path:
    """Write body to out_dir/rel_path, creating parent directories."""

    rel_path = rel_path.lstrip("/\\")
    path = out_dir.joinpath(*rel_path.split("/"))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)
    except OSError as e:
        raise PersistenceError(f"cannot write {path}: {e}") from e
    return path
