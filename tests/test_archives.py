import io
import tarfile
import zipfile

import pytest

from kclkit.archives import ArchiveError, untar_gz, unzip, zip_dir


def _add_file(tar, name, data):
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


def _add_dir(tar, name):
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    tar.addfile(info)


def test_untar_gz_trims_prefix(tmp_path):
    archive = tmp_path / "a.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        _add_dir(tar, "pkg/")
        _add_dir(tar, "pkg/bin")
        _add_file(tar, "pkg/bin/tool", b"binary")
        _add_file(tar, "pkg/readme", b"docs")
    out = tmp_path / "out"
    untar_gz(str(archive), "pkg/", str(out))
    assert (out / "bin" / "tool").read_bytes() == b"binary"
    assert (out / "readme").read_bytes() == b"docs"


def test_untar_gz_rejects_parent_paths(tmp_path):
    archive = tmp_path / "a.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        _add_file(tar, "../../escape", b"x")
    with pytest.raises(ArchiveError) as info:
        untar_gz(str(archive), "", str(tmp_path / "out"))
    assert 'path contains ".."' in str(info.value)


def test_untar_gz_rejects_unknown_entry_type(tmp_path):
    archive = tmp_path / "a.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        link = tarfile.TarInfo("link")
        link.type = tarfile.SYMTYPE
        link.linkname = "target"
        tar.addfile(link)
    with pytest.raises(ArchiveError) as info:
        untar_gz(str(archive), "", str(tmp_path / "out"))
    assert "unknown type" in str(info.value)
    assert "link" in str(info.value)


def test_untar_gz_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        untar_gz(str(tmp_path / "none.tar.gz"), "", str(tmp_path / "out"))


def test_zip_dir_skips_directories_and_orders_lexically(tmp_path):
    src = tmp_path / "src"
    (src / "sub").mkdir(parents=True)
    (src / "a.txt").write_bytes(b"A")
    (src / "sub" / "b.txt").write_bytes(b"B")
    (src / "z.txt").write_bytes(b"Z")
    buf = io.BytesIO()
    zip_dir(buf, str(src))
    with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as archive:
        assert archive.namelist() == ["a.txt", "sub/b.txt", "z.txt"]
        assert archive.read("sub/b.txt") == b"B"


def test_zip_dir_then_unzip_round_trip(tmp_path):
    src = tmp_path / "src"
    (src / "d" / "e").mkdir(parents=True)
    files = {"top.k": b"a = 1\n", "d/e/deep.k": b"b = 2\n", "d/mid.k": b""}
    for name, data in files.items():
        (src / name).write_bytes(data)
    zip_path = tmp_path / "out.zip"
    with open(zip_path, "wb") as fh:
        zip_dir(fh, str(src))
    dst = tmp_path / "dst"
    unzip(str(zip_path), str(dst))
    for name, data in files.items():
        assert (dst / name).read_bytes() == data


def test_unzip_rejects_escaping_entries(tmp_path):
    zip_path = tmp_path / "evil.zip"
    with zipfile.ZipFile(zip_path, "w") as archive:
        archive.writestr("../evil.txt", b"x")
    with pytest.raises(ArchiveError) as info:
        unzip(str(zip_path), str(tmp_path / "dst"))
    assert str(info.value) == "invalid file path"
    assert not (tmp_path / "evil.txt").exists()


def test_unzip_creates_directory_entries(tmp_path):
    zip_path = tmp_path / "dirs.zip"
    with zipfile.ZipFile(zip_path, "w") as archive:
        archive.writestr("empty/", b"")
        archive.writestr("empty/inner/file.txt", b"data")
    dst = tmp_path / "dst"
    unzip(str(zip_path), str(dst))
    assert (dst / "empty").is_dir()
    assert (dst / "empty" / "inner" / "file.txt").read_bytes() == b"data"