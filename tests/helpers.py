"""Fake registries for the blobsize tests."""

import json
from hashlib import sha256

import httpx

from blobsize.oci.descriptor import Descriptor
from blobsize.oci.errors import FetchError, TagListError
from blobsize.oci.index import OCI_INDEX
from blobsize.oci.manifest import OCI_MANIFEST

CONFIG = {
    "mediaType": "application/vnd.oci.image.config.v1+json",
    "digest": "sha256:" + "c" * 64,
    "size": 100,
}


def image_body(*layers: tuple[str, int], media_type: str = OCI_MANIFEST) -> dict:
    """An image manifest body with the given (digest, size) layers"""
    return {
        "schemaVersion": 2,
        "mediaType": media_type,
        "config": CONFIG,
        "layers": [
            {
                "mediaType": "application/vnd.oci.image.layer.v1.tar+gzip",
                "digest": digest,
                "size": size,
            }
            for digest, size in layers
        ],
    }


def index_body(*children: Descriptor, media_type: str = OCI_INDEX) -> dict:
    return {
        "schemaVersion": 2,
        "mediaType": media_type,
        "manifests": [
            child.model_dump(exclude_none=True) | {"platform": platform}
            for child, platform in zip(
                children,
                (
                    {"architecture": "amd64", "os": "linux"},
                    {"architecture": "arm64", "os": "linux", "variant": "v8"},
                    {"architecture": "s390x", "os": "linux"},
                ),
            )
        ],
    }


class FakeClient:
    """In-memory registry client with fixed digests and sizes"""

    def __init__(self):
        self.tags: dict[str, list[str]] = {}
        self.manifests: dict[tuple[str, str], Descriptor] = {}
        self.pulled: list[tuple[str, str]] = []
        self.closed = False

    def add(
        self,
        name: str,
        body: dict,
        digest: str,
        size: int,
        tags: tuple[str, ...] = (),
        media_type: str | None = None,
    ) -> Descriptor:
        descriptor = Descriptor(
            digest=digest,
            size=size,
            mediaType=media_type or body.get("mediaType", ""),
            data=json.dumps(body).encode("utf-8"),
        )
        self.manifests[(name, digest)] = descriptor
        for tag in tags:
            self.manifests[(name, tag)] = descriptor
            self.tags.setdefault(name, []).append(tag)
        return descriptor

    def list_tags(self, name: str) -> list[str]:
        if name not in self.tags:
            raise TagListError(name)
        return self.tags[name]

    def pull_manifest(self, name: str, reference: str) -> Descriptor:
        self.pulled.append((name, reference))
        try:
            return self.manifests[(name, reference)]
        except KeyError:
            raise FetchError(f"{name}:{reference}") from None

    def close(self):
        self.closed = True


class FakeRegistry:
    """An OCI distribution API served through httpx.MockTransport"""

    def __init__(self, token: str | None = None, page_size: int | None = None):
        self.token = token
        self.page_size = page_size
        self.tags: dict[str, list[str]] = {}
        self.manifests: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, name: str, body: dict, tags: tuple[str, ...] = (), media_type=None):
        data = json.dumps(body).encode("utf-8")
        digest = f"sha256:{sha256(data).hexdigest()}"
        media_type = media_type or body.get("mediaType", "application/json")
        self.manifests[(name, digest)] = (data, media_type)
        for tag in tags:
            self.manifests[(name, tag)] = (data, media_type)
            self.tags.setdefault(name, []).append(tag)
        return Descriptor(digest=digest, size=len(data), mediaType=media_type)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "auth.example.com":
            return httpx.Response(200, json={"token": self.token})

        if self.token and request.headers.get("Authorization") != f"Bearer {self.token}":
            name = path.removeprefix("/v2/").rsplit("/", 2)[0]
            return httpx.Response(
                401,
                headers={
                    "WWW-Authenticate": (
                        'Bearer realm="https://auth.example.com/token",'
                        'service="registry.example.com",'
                        f'scope="repository:{name}:pull"'
                    )
                },
            )

        if path.endswith("/tags/list"):
            name = path.removeprefix("/v2/").removesuffix("/tags/list")
            if name not in self.tags:
                return httpx.Response(404, json={"errors": [{"code": "NAME_UNKNOWN"}]})
            return self._tags_page(name, request)

        name, _, reference = path.removeprefix("/v2/").partition("/manifests/")
        if (name, reference) not in self.manifests:
            return httpx.Response(404, json={"errors": [{"code": "MANIFEST_UNKNOWN"}]})
        data, media_type = self.manifests[(name, reference)]
        return httpx.Response(200, content=data, headers={"Content-Type": media_type})

    def _tags_page(self, name: str, request: httpx.Request) -> httpx.Response:
        tags = self.tags[name]
        if self.page_size is None:
            return httpx.Response(200, json={"name": name, "tags": tags})
        last = request.url.params.get("last")
        start = tags.index(last) + 1 if last else 0
        page = tags[start : start + self.page_size]
        headers = {}
        if start + self.page_size < len(tags):
            headers["Link"] = (
                f'</v2/{name}/tags/list?n={self.page_size}&last={page[-1]}>; rel="next"'
            )
        return httpx.Response(200, json={"name": name, "tags": page}, headers=headers)
