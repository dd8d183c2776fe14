"""Uploads a staged artifact to a presigned location, always discarding the local copy."""

import asyncio
import base64
import hashlib
import logging

from codefix.generation.cancellation import CancellationToken
from codefix.generation.errors import UploadFailedError
from codefix.jobs.dispatcher import CodeFixServiceClient, CodeFixServiceError
from codefix.jobs.models import ArtifactReference, ArtifactType, RegionProfile
from codefix.storage.temp_artifacts import TempArtifactStore

logger = logging.getLogger(__name__)


def content_md5(data: bytes) -> str:
    """Base64-encoded MD5 digest, as used in the Content-MD5 header."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


async def upload_artifact(
    client: CodeFixServiceClient,
    artifact_path: str,
    code_fix_name: str,
    profile: RegionProfile,
    token: CancellationToken,
    store: TempArtifactStore,
) -> ArtifactReference:
    """Request an upload location, transfer the artifact and return its reference.

    The local artifact is discarded before returning, whatever the outcome.
    """
    try:
        token.check()
        loop = asyncio.get_event_loop()
        try:
            data = await loop.run_in_executor(None, _read_bytes, artifact_path)
        except OSError as e:
            raise UploadFailedError(f"Cannot read artifact {artifact_path}: {e}") from e

        md5 = content_md5(data)
        try:
            location = await client.request_upload_location(
                profile, code_fix_name, md5, ArtifactType.SOURCE_CODE
            )
            await client.transfer_bytes(location, data, md5)
        except CodeFixServiceError as e:
            raise UploadFailedError(f"Artifact upload failed: {e}") from e

        logger.debug("Uploaded artifact %s as upload %s", artifact_path, location.upload_id)
        return ArtifactReference(
            artifact_type=ArtifactType.SOURCE_CODE, upload_id=location.upload_id
        )
    finally:
        store.discard(artifact_path)
