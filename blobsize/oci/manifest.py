from pydantic import BaseModel, Field

from blobsize.oci.descriptor import Descriptor

OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
IMAGE_MEDIA_TYPES = (OCI_MANIFEST, DOCKER_MANIFEST)


class Manifest(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/manifest.md
    """

    config: Descriptor
    artifactType: str | None = None
    layers: list[Descriptor] = []
    subject: Descriptor | None = None
    annotations: dict[str, str] | None = None

    mediaType: str = OCI_MANIFEST
    schemaVersion: int = 2

    # The raw manifest as pulled from the registry
    descriptor: Descriptor | None = Field(exclude=True, default=None)
