"""Extracting and building archives."""

import os
import shutil
import tarfile
import zipfile
from typing import BinaryIO


class ArchiveError(Exception):
    """Raised when an archive cannot be extracted safely."""


def untar_gz(tar_gz_file: str, trim_prefix: str, output_dir: str) -> None:
    """Extract a gzipped tarball into output_dir, trimming trim_prefix from names."""
    os.makedirs(output_dir, exist_ok=True)
    try:
        archive = tarfile.open(tar_gz_file, mode="r:gz")
    except tarfile.TarError as err:
        raise ArchiveError(f"UnTarGz: {err}") from err

    with archive:
        members = iter(archive)
        while True:
            try:
                member = next(members)
            except StopIteration:
                break
            except tarfile.TarError as err:
                raise ArchiveError(f"UnTarGz: Next() failed: {err}") from err

            if member.isdir() or member.isreg():
                name = member.name
                if name.startswith(trim_prefix):
                    name = name[len(trim_prefix):]
                path = os.path.normpath(os.path.join(output_dir, name))
                if ".." in path:
                    raise ArchiveError('UnTarGz: MkdirAll() failed: path contains ".."')
                if member.isdir():
                    try:
                        os.makedirs(path, exist_ok=True)
                    except OSError as err:
                        raise ArchiveError(f"UnTarGz: MkdirAll() failed: {err}") from err
                    continue
                try:
                    out = open(path, "wb")
                except OSError as err:
                    raise ArchiveError(f"UnTarGz: Create() failed: {err}") from err
                with out:
                    source = archive.extractfile(member)
                    try:
                        shutil.copyfileobj(source, out)
                    except (OSError, tarfile.TarError) as err:
                        raise ArchiveError(f"UnTarGz: Copy() failed: {err}") from err
            else:
                raise ArchiveError(
                    f"UnTarGz: unknown type: {member.type[0]} in {member.name}"
                )


def unzip(zip_file: str, output_dir: str) -> None:
    """Extract a zip archive into output_dir, refusing entries that escape it."""
    prefix = os.path.normpath(output_dir) + os.sep
    with zipfile.ZipFile(zip_file) as archive:
        for info in archive.infolist():
            file_path = os.path.normpath(os.path.join(output_dir, info.filename))
            if not file_path.startswith(prefix):
                raise ArchiveError("invalid file path")
            if info.is_dir():
                os.makedirs(file_path, exist_ok=True)
                continue
            os.makedirs(os.path.dirname(file_path), exist_ok=True)
            mode = (info.external_attr >> 16) & 0o777 or 0o666
            fd = os.open(file_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
            with os.fdopen(fd, "wb") as out, archive.open(info) as source:
                shutil.copyfileobj(source, out)


def _walk_files(root: str, rel: str = ""):
    base = os.path.join(root, rel) if rel else root
    for name in sorted(os.listdir(base)):
        rel_path = f"{rel}/{name}" if rel else name
        if os.path.isdir(os.path.join(base, name)):
            yield from _walk_files(root, rel_path)
        else:
            yield rel_path


def zip_dir(writer: BinaryIO, root: str) -> None:
    """Write every file under root into a zip archive on writer, in lexical order."""
    with zipfile.ZipFile(writer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for rel_path in _walk_files(root):
            with open(os.path.join(root, rel_path), "rb") as source, archive.open(
                rel_path, "w"
            ) as dest:
                shutil.copyfileobj(source, dest)