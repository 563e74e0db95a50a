"""Test helpers: in-memory archive builders and destination tree snapshots."""

from __future__ import annotations

import gzip
import io
import os
import stat
import tarfile

import pytest

MTIME = 1_600_000_000

_TYPES = {
    "file": tarfile.REGTYPE,
    "dir": tarfile.DIRTYPE,
    "symlink": tarfile.SYMTYPE,
    "hardlink": tarfile.LNKTYPE,
    "fifo": tarfile.FIFOTYPE,
}


def make_tar(members, compress: bool = False) -> bytes:
    """Build a tar (or tar.gz) in memory.

    Each member is a dict with ``name`` and optionally ``type`` (file, dir,
    symlink, hardlink, fifo), ``data``, ``linkname``, ``mode``, ``mtime``,
    ``uid`` and ``gid``. Ownership defaults to the current user so strict
    ownership restoration works unprivileged.
    """
    buf = io.BytesIO()
    with tarfile.open(
        fileobj=buf,
        mode="w",
        format=tarfile.GNU_FORMAT,
        encoding="utf-8",
        errors="surrogateescape",
    ) as tar:
        for member in members:
            name = member["name"]
            if isinstance(name, bytes):
                name = name.decode("utf-8", "surrogateescape")
            kind = member.get("type", "file")
            info = tarfile.TarInfo(name)
            info.type = _TYPES[kind]
            info.mode = member.get("mode", 0o755 if kind == "dir" else 0o644)
            info.mtime = member.get("mtime", MTIME)
            info.uid = member.get("uid", os.getuid())
            info.gid = member.get("gid", os.getgid())
            info.linkname = member.get("linkname", "")
            data = member.get("data", b"")
            if kind == "file":
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
            else:
                tar.addfile(info)
    raw = buf.getvalue()
    if compress:
        return gzip.compress(raw)
    return raw


def snapshot(root) -> dict:
    """Describe every object below ``root``: type, mode, mtime, owner and content."""
    result = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in sorted(dirnames + filenames):
            path = os.path.join(dirpath, name)
            info = os.lstat(path)
            if stat.S_ISLNK(info.st_mode):
                content = os.readlink(path)
            elif stat.S_ISREG(info.st_mode):
                with open(path, "rb") as f:
                    content = f.read()
            else:
                content = None
            result[os.path.relpath(path, root)] = (
                stat.S_IFMT(info.st_mode),
                stat.S_IMODE(info.st_mode),
                int(info.st_mtime),
                info.st_uid,
                info.st_gid,
                content,
            )
    return result


@pytest.fixture
def build_archive(tmp_path):
    """Write an archive file and return its path."""
    counter = {"n": 0}

    def _build(members, compress: bool = False):
        counter["n"] += 1
        path = tmp_path / f"archive-{counter['n']}.rpz"
        path.write_bytes(make_tar(members, compress=compress))
        return path

    return _build


@pytest.fixture
def dest(tmp_path):
    path = tmp_path / "dest"
    path.mkdir()
    return path


@pytest.fixture
def tar_bytes():
    return make_tar


@pytest.fixture
def tree_snapshot():
    return snapshot
