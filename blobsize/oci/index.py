from pydantic import BaseModel, ConfigDict, Field

from blobsize.oci.descriptor import Descriptor

OCI_INDEX = "application/vnd.oci.image.index.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
INDEX_MEDIA_TYPES = (OCI_INDEX, DOCKER_MANIFEST_LIST)


class Platform(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    model_config = ConfigDict(populate_by_name=True)

    architecture: str
    os: str
    osVersion: str | None = Field(alias="os.version", default=None)
    osFeatures: list[str] | None = Field(alias="os.features", default=None)
    variant: str | None = None

    def __str__(self):
        return "/".join(p for p in (self.os, self.architecture, self.variant) if p)


class PlatformDescriptor(Descriptor):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    platform: Platform | None = None


class Index(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    artifactType: str | None = None
    manifests: list[PlatformDescriptor] = []
    annotations: dict[str, str] | None = None
    schemaVersion: int = 2
    mediaType: str = OCI_INDEX

    # The raw index as pulled from the registry
    descriptor: Descriptor | None = Field(exclude=True, default=None)
