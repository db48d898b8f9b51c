"""Blob listing for OCI registries

This module resolves image names to the manifests and layers they reference
and collects the size of every blob, keyed by digest.
"""
import json
import logging
from typing import Iterable

from pydantic import ValidationError

from blobsize.oci.client import Client, ClientPool
from blobsize.oci.descriptor import Descriptor
from blobsize.oci.errors import (
    AuthenticationError,
    BlobSizeError,
    DescriptorReadError,
    FetchError,
    ReferenceParseError,
    ResolutionError,
    TagListError,
    UnsupportedManifestError,
)
from blobsize.oci.index import INDEX_MEDIA_TYPES, OCI_INDEX, Index
from blobsize.oci.manifest import IMAGE_MEDIA_TYPES, OCI_MANIFEST, Manifest
from blobsize.oci.reference import Reference

logger = logging.getLogger(__name__)

# digest -> size in bytes
BlobSizes = dict[str, int]


def run(image_names: Iterable[str], clients: ClientPool) -> tuple[BlobSizes, int]:
    """Collect the blobs of all image names and their total size

    The first failing image name aborts the run.
    """
    blobs: BlobSizes = {}
    for image_name in image_names:
        blobs.update(resolve(image_name, clients=clients))
    return blobs, sum(blobs.values())


def resolve(image_name: str, clients: ClientPool) -> BlobSizes:
    """Collect the blobs of an image name

    A name without tag or digest (e.g. busybox) covers all tags of the repository.
    """
    reference = Reference.from_string(image_name)
    client = clients.get(reference.registry)
    if reference.identifier is not None:
        return walk(reference, client=client)

    tags = client.list_tags(reference.repository)
    if not tags:
        logger.warning("no tags found name=%s", reference)

    blobs: BlobSizes = {}
    for tag in tags:
        blobs.update(walk(reference.with_tag(tag), client=client))
    return blobs


def walk(reference: Reference, client: Client) -> BlobSizes:
    """Collect the blobs of a tagged or digested reference"""
    node = classify(
        client.pull_manifest(name=reference.repository, reference=reference.identifier)
    )
    if isinstance(node, Index):
        logger.info("get images from image index name=%s", reference)
        return walk_index(node, reference=reference, client=client)
    logger.info("get blobs from image name=%s", reference)
    return extract(node)


def walk_index(
    index: Index,
    reference: Reference,
    client: Client,
    blobs: BlobSizes | None = None,
) -> BlobSizes:
    """Collect the blobs of an index and of every manifest it references

    Nested indexes add to `blobs`, so a digest seen anywhere in the walk is
    never pulled twice.
    """
    if index.descriptor is None:
        raise DescriptorReadError(f"missing index descriptor for {reference}")
    if blobs is None:
        blobs = {}
    blobs[index.descriptor.digest] = index.descriptor.size

    for child in index.manifests:
        if child.digest in blobs:
            logger.debug("skipping known manifest digest=%s", child.digest)
            continue
        logger.info(
            "get blobs from image name=%s platform=%s media=%s",
            reference,
            child.platform,
            child.mediaType,
        )
        node = classify(
            client.pull_manifest(name=reference.repository, reference=child.digest)
        )
        if isinstance(node, Index):
            walk_index(node, reference=reference, client=client, blobs=blobs)
        else:
            blobs.update(extract(node))
    return blobs


def extract(image: Manifest) -> BlobSizes:
    """Collect the image manifest itself and its layers"""
    if image.descriptor is None:
        raise DescriptorReadError("missing image manifest descriptor")
    blobs: BlobSizes = {image.descriptor.digest: image.descriptor.size}
    for layer in image.layers:
        blobs[layer.digest] = layer.size
    return blobs


def classify(descriptor: Descriptor) -> Index | Manifest:
    """Parse a pulled manifest as either an image index or an image manifest

    The Content-Type of the response wins, the mediaType in the body is the
    fallback. OCI allows both to be missing, then the shape of the body decides.
    """
    try:
        body = json.loads(descriptor.data or b"")
    except ValueError as e:
        raise DescriptorReadError(f"unreadable manifest {descriptor.digest}: {e}") from e
    if not isinstance(body, dict):
        raise DescriptorReadError(f"manifest {descriptor.digest} is not an object")

    media_type = descriptor.mediaType
    if media_type not in INDEX_MEDIA_TYPES + IMAGE_MEDIA_TYPES:
        media_type = body.get("mediaType") or _guess_media_type(body) or media_type

    if media_type in INDEX_MEDIA_TYPES:
        model = Index
    elif media_type in IMAGE_MEDIA_TYPES:
        model = Manifest
    else:
        raise UnsupportedManifestError(media_type)

    try:
        node = model.model_validate(body)
    except ValidationError as e:
        raise DescriptorReadError(
            f"invalid manifest {descriptor.digest} ({media_type}): {e}"
        ) from e
    node.descriptor = descriptor
    return node


def _guess_media_type(body: dict) -> str | None:
    if body.get("schemaVersion") != 2:
        return None
    if "manifests" in body:
        return OCI_INDEX
    if "config" in body or "layers" in body:
        return OCI_MANIFEST
    return None


__all__ = [
    "AuthenticationError",
    "BlobSizeError",
    "BlobSizes",
    "Client",
    "ClientPool",
    "DescriptorReadError",
    "FetchError",
    "Index",
    "Manifest",
    "Reference",
    "ReferenceParseError",
    "ResolutionError",
    "TagListError",
    "UnsupportedManifestError",
    "classify",
    "extract",
    "resolve",
    "run",
    "walk",
]
