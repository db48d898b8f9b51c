class BlobSizeError(Exception):
    """Base class for everything that aborts a blob listing."""


class ReferenceParseError(BlobSizeError, ValueError):
    """Raised when an image name cannot be parsed."""


class ResolutionError(BlobSizeError):
    """Raised when an image name cannot be resolved to references."""

    def __init__(self, repository: str, message: str | None = None):
        self.repository = repository
        super().__init__(message or f"failed to resolve '{repository}'")


class TagListError(ResolutionError):
    """Raised when the tags of a repository cannot be listed."""

    def __init__(self, repository: str):
        super().__init__(repository, f"failed to get tags for '{repository}'")


class FetchError(BlobSizeError):
    """Raised when a manifest cannot be fetched."""

    def __init__(self, reference: str, message: str | None = None):
        self.reference = reference
        super().__init__(message or f"failed to fetch manifest '{reference}'")


class UnsupportedManifestError(BlobSizeError):
    """Raised when a manifest is neither an image nor an image index."""

    def __init__(self, media_type: str):
        self.media_type = media_type
        super().__init__(
            f"manifest is not image and image index but '{media_type}'"
        )


class DescriptorReadError(BlobSizeError):
    """Raised when the digest or size of a manifest or layer is unavailable."""


class AuthenticationError(BlobSizeError):
    """Raised when authentication fails."""
