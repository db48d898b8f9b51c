from __future__ import annotations

import logging
import re
from typing import Callable
from urllib.parse import urlparse, urlunparse

import httpx

from blobsize.oci.descriptor import Descriptor
from blobsize.oci.digest import calculate_digest, digest_algorithm, validate_digest
from blobsize.oci.errors import AuthenticationError, FetchError, TagListError
from blobsize.oci.index import INDEX_MEDIA_TYPES
from blobsize.oci.manifest import IMAGE_MEDIA_TYPES

logger = logging.getLogger(__name__)

DOCKER_HUB = "registry-1.docker.io"
MANIFEST_MEDIA_TYPES = INDEX_MEDIA_TYPES + IMAGE_MEDIA_TYPES

_AUTH_PARAM = re.compile(r'(\w+)="([^"]*)"')


def _clean_url(registry_url: str) -> str:
    if "://" not in registry_url:
        registry_url = f"https://{registry_url}"
    parts = urlparse(registry_url)
    if parts.netloc in ("docker.io", "index.docker.io"):
        parts = parts._replace(netloc=DOCKER_HUB)
    return urlunparse(parts).rstrip("/")


def _parse_www_auth(www_authenticate: str) -> tuple[str, dict[str, str]]:
    """Parse the WWW-Authenticate header into its scheme and parameters"""
    scheme, _, params = www_authenticate.partition(" ")
    return scheme.lower(), dict(_AUTH_PARAM.findall(params))


class BearerAuth:
    """Attaches HTTP Bearer Authentication to the given Request object."""

    def __init__(self, token: str):
        self.token = token

    def __call__(self, request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        return request


class Client:
    """Client for the OCI registry API."""

    def __init__(
        self,
        registry_url: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.registry_url = _clean_url(registry_url)
        self.username = username
        self.password = password
        self.timeout = timeout
        self.transport = transport
        self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def session(self) -> httpx.Client:
        if self._session is None:
            self._session = httpx.Client(
                follow_redirects=True,
                max_redirects=2,
                timeout=self.timeout,
                transport=self.transport,
            )
        return self._session

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def get(self, uri: str, scope: str | None = None, **kwargs) -> httpx.Response:
        """GET `uri`, answering a single authentication challenge if needed

        `uri` is either relative to the registry or an absolute URL.
        """
        url = f"{self.registry_url}{uri}" if uri.startswith("/") else uri
        response = self.session.get(url, **kwargs)
        if response.status_code == 401 and "WWW-Authenticate" in response.headers:
            self.authenticate(response.headers["WWW-Authenticate"], scope=scope)
            response = self.session.get(url, **kwargs)
        return response

    def authenticate(self, www_authenticate: str, scope: str | None = None):
        """Answer a Basic or Bearer challenge

        ref: https://distribution.github.io/distribution/spec/auth/token/
        """
        scheme, params = _parse_www_auth(www_authenticate)
        logger.debug("auth challenge scheme=%s params=%s", scheme, params)
        credentials = None
        if self.password:
            credentials = (self.username or "", self.password)

        if scheme == "basic":
            if credentials is None:
                raise AuthenticationError(
                    f"{self.registry_url} requires authentication, "
                    f"provide a username and/or password."
                )
            self.session.auth = credentials
            return
        if scheme != "bearer" or "realm" not in params:
            raise AuthenticationError(
                f"{self.registry_url} sent an unsupported challenge: {www_authenticate}"
            )

        query = {"service": params.get("service"), "scope": params.get("scope", scope)}
        if self.username:
            query["client_id"] = self.username
        try:
            response = self.session.get(
                params["realm"],
                params={k: v for k, v in query.items() if v is not None},
                auth=credentials,
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AuthenticationError(
                f"failed to get a token for {self.registry_url}: {e}"
            ) from e
        token = None
        if isinstance(body, dict):
            token = body.get("token") or body.get("access_token")
        if not token:
            raise AuthenticationError(f"{params['realm']} returned no token")
        self.session.auth = BearerAuth(token)

    def list_tags(self, name: str) -> list[str]:
        """List all tags of repository `name`, following pagination

        ref: https://github.com/opencontainers/distribution-spec/blob/main/spec.md#listing-tags
        """
        tags = []
        uri = f"/v2/{name}/tags/list"
        while uri:
            try:
                response = self.get(uri, scope=f"repository:{name}:pull")
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
                logger.debug("listing tags of %s failed: %s", name, e)
                raise TagListError(name) from e
            if not isinstance(body, dict) or not isinstance(
                body.get("tags") or [], list
            ):
                logger.debug("unexpected tag list for %s: %r", name, body)
                raise TagListError(name)
            tags.extend(body.get("tags") or [])
            uri = response.links.get("next", {}).get("url")
        return tags

    def pull_manifest(self, name: str, reference: str) -> Descriptor:
        """Pull the manifest `reference` of repository `name`

        Returns the descriptor of the manifest exactly as the registry sent it,
        including the raw bytes in `data`.
        """
        uri = f"/v2/{name}/manifests/{reference}"
        try:
            response = self.get(
                uri,
                scope=f"repository:{name}:pull",
                headers={"Accept": ", ".join(MANIFEST_MEDIA_TYPES)},
            )
            if response.status_code == 403:
                logger.debug(response.headers)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"{name}:{reference}", f"{name}:{reference}: {e}") from e

        data = response.content
        if validate_digest(reference):
            try:
                digest = calculate_digest(data, digest_algorithm(reference))
            except ValueError as e:
                raise FetchError(f"{name}@{reference}", str(e)) from e
            if digest != reference:
                raise FetchError(
                    f"{name}@{reference}",
                    f"manifest digest mismatch for {name}@{reference}: got {digest}",
                )
        else:
            digest = calculate_digest(data)

        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        return Descriptor(digest=digest, size=len(data), mediaType=media_type, data=data)


class ClientPool:
    """One client per registry host, closed together."""

    def __init__(self, factory: Callable[[str], Client]):
        self.factory = factory
        self._clients: dict[str, Client] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def get(self, registry: str) -> Client:
        if registry not in self._clients:
            self._clients[registry] = self.factory(registry)
        return self._clients[registry]

    def close(self):
        for client in self._clients.values():
            client.close()
        self._clients.clear()
