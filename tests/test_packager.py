from __future__ import annotations

import zipfile

import pytest

from codefix.generation.cancellation import CancellationToken
from codefix.generation.errors import CodeFixCancelledError, PackagingFailedError
from codefix.generation.packager import package_source_file


@pytest.mark.asyncio
async def test_packages_single_entry_archive(source_file, tmp_path) -> None:
    artifact = tmp_path / "out.zip"
    result = await package_source_file(str(source_file), str(artifact), CancellationToken())

    assert result == str(artifact)
    with zipfile.ZipFile(artifact) as zf:
        assert zf.namelist() == ["app.py"]
        assert zf.read("app.py") == source_file.read_bytes()


@pytest.mark.asyncio
async def test_missing_source_is_packaging_failure(tmp_path) -> None:
    artifact = tmp_path / "out.zip"
    with pytest.raises(PackagingFailedError):
        await package_source_file(str(tmp_path / "nope.py"), str(artifact), CancellationToken())
    assert not artifact.exists()


@pytest.mark.asyncio
async def test_unwritable_destination_leaves_no_archive(source_file, tmp_path) -> None:
    artifact = tmp_path / "missing-dir" / "out.zip"
    with pytest.raises(PackagingFailedError):
        await package_source_file(str(source_file), str(artifact), CancellationToken())
    assert not artifact.exists()


@pytest.mark.asyncio
async def test_cancelled_token_writes_nothing(source_file, tmp_path) -> None:
    token = CancellationToken()
    token.cancel()
    artifact = tmp_path / "out.zip"
    with pytest.raises(CodeFixCancelledError):
        await package_source_file(str(source_file), str(artifact), token)
    assert not artifact.exists()
