from pydantic import BaseModel, Field


class Descriptor(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md
    """

    digest: str
    size: int = Field(ge=0)
    mediaType: str = ""
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None
    artifactType: str | None = None
    data: bytes | None = Field(exclude=True, default=None)
