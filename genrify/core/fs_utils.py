import json
import os
from pathlib import Path
import tempfile
from typing import Any, Callable, Optional


def ensure_dir(directory: str | Path, mode: int = 0o700) -> None:
    """Create `directory` (and parents) if missing. Config and token dirs stay private."""
    if directory and not os.path.exists(directory):
        os.makedirs(directory, mode=mode, exist_ok=True)


def write_json(path: str | Path, data: Any, *, private: bool = False) -> None:
    """
    Write JSON to `path` with an atomic replace.

    The document goes to a temp file in the target directory, is fsynced,
    then moved over the target with os.replace, so readers see either the
    old file or the complete new one. With private=True the file is
    chmod 0600 before the replace (token and config files).
    """
    target = Path(path)
    ensure_dir(target.parent)

    fd, tmp_name = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=target.name,
        suffix=".tmp",
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        if private:
            os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, target)
    except Exception:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def read_json(
    path: str | Path,
    default: Any = None,
    *,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Any:
    """
    Read a JSON file.

    Returns `default` when the file is missing, and also when it is not
    valid JSON (after calling `on_error` with the decode error, if given).
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        if on_error:
            on_error(e)
        return default


def remove_file(path: str | Path) -> bool:
    """Delete `path` if it exists. Returns True when something was removed."""
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True
