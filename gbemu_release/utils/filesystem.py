# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Atomic writes for report files.

Harness summaries are read by other tooling (CI dashboards, scripts that
diff two runs), so a half-written JSON file is worse than no file. We write
to a temp file next to the target and rename it into place, which is atomic
on POSIX when both paths share a filesystem.
"""

import tempfile
from pathlib import Path

TEMP_PREFIX = ".gbemu_tmp_"


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to a file atomically.

    The temp file lives in the target's directory so the final rename never
    crosses a filesystem boundary. On any failure the temp file is removed
    and the target is left untouched.

    Raises:
        OSError: If the write or rename fails.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd = tempfile.NamedTemporaryFile(
        mode="w",
        encoding=encoding,
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)

    try:
        temp_fd.write(content)
        temp_fd.flush()
        temp_fd.close()
        temp_path.replace(target_path)
    except BaseException:
        temp_fd.close()
        if temp_path.exists():
            temp_path.unlink()
        raise
