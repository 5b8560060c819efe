"""
Artifact materialization.

Output artifacts are collected from a declared base directory and glob
pattern into a tar archive; input artifacts are unpacked from that archive
into a stage's working directory.
"""

from __future__ import annotations

import io
import logging
import tarfile
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)


def collect_files(base_directory: Path, pattern: str = "**/*") -> list[Path]:
    """
    Files under ``base_directory`` matching ``pattern``, sorted.

    Directories are not returned; they are recreated from file paths.

    Raises:
        FileNotFoundError: If base_directory does not exist
    """
    if not base_directory.is_dir():
        raise FileNotFoundError(f"Artifact base directory not found: {base_directory}")
    return sorted(p for p in base_directory.glob(pattern) if p.is_file())


def pack_directory(base_directory: Path, pattern: str = "**/*") -> bytes:
    """
    Archive the files selected by ``pattern`` relative to ``base_directory``.

    Member names are relative to the base directory and member metadata
    that does not affect content (owner, mtime) is normalized, so the same
    tree always packs to the same bytes.
    """
    buffer = io.BytesIO()
    files = collect_files(base_directory, pattern)
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        for path in files:
            info = archive.gettarinfo(str(path), arcname=path.relative_to(base_directory).as_posix())
            info.uid = info.gid = 0
            info.uname = info.gname = ""
            info.mtime = 0
            with path.open("rb") as handle:
                archive.addfile(info, handle)
    logger.debug("Packed %d files from %s", len(files), base_directory)
    return buffer.getvalue()


def _is_safe_member(member: tarfile.TarInfo) -> bool:
    name = PurePosixPath(member.name)
    if name.is_absolute() or ".." in name.parts:
        return False
    return member.isfile() or member.isdir()


def unpack(payload: bytes, target: Path) -> list[str]:
    """
    Extract an artifact archive into ``target``.

    Returns:
        Names of the extracted files

    Raises:
        ValueError: If the archive contains absolute paths, parent
            references, links or device files
    """
    target.mkdir(parents=True, exist_ok=True)
    with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as archive:
        members = archive.getmembers()
        unsafe = [m.name for m in members if not _is_safe_member(m)]
        if unsafe:
            raise ValueError(f"Refusing to unpack unsafe archive members: {unsafe}")
        archive.extractall(target, members=members, filter="data")
    return [m.name for m in members if m.isfile()]


def list_members(payload: bytes) -> list[str]:
    """Names of the files stored in an artifact archive."""
    with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as archive:
        return [m.name for m in archive.getmembers() if m.isfile()]
