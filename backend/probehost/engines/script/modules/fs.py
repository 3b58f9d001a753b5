"""
Filesystem module for probe scripts: exists, read_text, write_text.

Every path is resolved (``~`` expanded, symlinks followed) and must land under
the run's plugin data dir or the shared app data dir. Data dirs of other
plugins live under the app data dir too and are refused explicitly.
Relative paths resolve against the plugin data dir.
"""

import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from probehost.engines.script.errors import CapabilityError

MAX_READ_BYTES = 10 * 1024 * 1024


def _within(path: Path, root: Path) -> bool:
    return path == root or path.is_relative_to(root)


def make_fs_module(
    *,
    plugin_data_dir: Path,
    app_data_dir: Path,
    plugins_data_root: Path,
    check_open: Callable[[], None],
) -> Any:
    """Build the `fs` object. All three roots must already be resolved absolute paths."""

    def _resolve(path: Any) -> Path:
        check_open()
        if not isinstance(path, str) or not path.strip():
            raise CapabilityError("fs: path must be a non-empty string")
        if "\x00" in path:
            raise CapabilityError("fs: path contains a NUL byte")
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = plugin_data_dir / p
        try:
            resolved = p.resolve()
        except (OSError, RuntimeError) as e:
            raise CapabilityError(f"fs: cannot resolve {path}: {e}") from e
        if _within(resolved, plugin_data_dir):
            return resolved
        if _within(resolved, plugins_data_root):
            raise CapabilityError(f"fs: path belongs to another plugin: {path}")
        if _within(resolved, app_data_dir):
            return resolved
        raise CapabilityError(f"fs: path outside allowed roots: {path}")

    def exists(path: str) -> bool:
        return _resolve(path).exists()

    def read_text(path: str) -> str:
        target = _resolve(path)
        try:
            if target.stat().st_size > MAX_READ_BYTES:
                raise CapabilityError(f"fs: file too large: {path}")
            return target.read_text(encoding="utf-8")
        except OSError as e:
            raise CapabilityError(f"fs: cannot read {path}: {e.strerror or e}") from e
        except UnicodeDecodeError as e:
            raise CapabilityError(f"fs: {path} is not valid UTF-8") from e

    def write_text(path: str, text: str) -> None:
        target = _resolve(path)
        if not isinstance(text, str):
            raise CapabilityError("fs: text must be a string")
        tmp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the target and swap in, so readers never see a partial file
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=target.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as e:
            raise CapabilityError(f"fs: cannot write {path}: {e.strerror or e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    return SimpleNamespace(exists=exists, read_text=read_text, write_text=write_text)
