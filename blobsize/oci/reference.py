import re
from dataclasses import dataclass, replace

from blobsize.oci.digest import validate_digest
from blobsize.oci.errors import ReferenceParseError

DEFAULT_REGISTRY = "docker.io"
OFFICIAL_NAMESPACE = "library"

PATH_COMPONENT = re.compile(r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*")
TAG = re.compile(r"[\w][\w.-]{0,127}", re.ASCII)
REGISTRY = re.compile(r"[a-zA-Z0-9](?:[a-zA-Z0-9.-]*[a-zA-Z0-9])?(?::[0-9]+)?")


@dataclass(slots=True, frozen=True)
class Reference:
    """Image name information

    Unlike `docker pull`, a missing tag is not replaced by "latest":
    a reference without tag and digest stands for every tag of the repository.

    ref: https://github.com/distribution/reference/blob/main/reference.go
    """

    registry: str
    repository: str
    tag: str | None = None
    digest: str | None = None

    def __str__(self):
        name = f"{self.registry}/{self.repository}"
        if self.tag is not None:
            name = f"{name}:{self.tag}"
        if self.digest is not None:
            name = f"{name}@{self.digest}"
        return name

    @property
    def identifier(self) -> str | None:
        """The tag or digest to pull the manifest by, digests win."""
        return self.digest or self.tag

    def with_tag(self, tag: str) -> "Reference":
        if not isinstance(tag, str) or not TAG.fullmatch(tag):
            raise ReferenceParseError(f"invalid tag {tag!r} for '{self}'")
        return replace(self, tag=tag, digest=None)

    @classmethod
    def from_string(cls, value: str) -> "Reference":
        name, _, digest = value.partition("@")
        if digest and not validate_digest(digest):
            raise ReferenceParseError(f"invalid digest in '{value}'")

        tag = None
        head, _, last = name.rpartition("/")
        if ":" in last:
            last, tag = last.split(":", 1)
            if not TAG.fullmatch(tag):
                raise ReferenceParseError(f"invalid tag in '{value}'")
            name = f"{head}/{last}" if head else last

        registry, repository = _split_registry(name)
        if not REGISTRY.fullmatch(registry):
            raise ReferenceParseError(f"invalid registry in '{value}'")
        parts = repository.split("/")
        if not all(PATH_COMPONENT.fullmatch(part) for part in parts):
            raise ReferenceParseError(f"invalid repository name '{value}'")
        return cls(registry, repository, tag, digest or None)


def _split_registry(name: str) -> tuple[str, str]:
    """Split "[registry/]repository" and apply the Docker Hub defaults"""
    first, sep, rest = name.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        registry, repository = first, rest
    else:
        registry, repository = DEFAULT_REGISTRY, name
    if registry in (DEFAULT_REGISTRY, "index.docker.io"):
        registry = DEFAULT_REGISTRY
        if "/" not in repository:
            repository = f"{OFFICIAL_NAMESPACE}/{repository}"
    return registry, repository
