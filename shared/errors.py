"""Error taxonomy shared by the ingestion and retrieval services.

Every error carries the HTTP status code the API layer renders it with.
Background ingestion never lets these escape; it logs them and persists the
message on the file record instead.
"""


class KnowledgeError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(KnowledgeError):
    """A file, folder, team, chunk or stored object does not exist (or is soft-deleted)."""

    status_code = 404


class ForbiddenError(KnowledgeError):
    """The caller may see the entity but is not allowed to perform the operation."""

    status_code = 403


class ValidationError(KnowledgeError):
    """Malformed request, empty content or invalid segmentation parameters."""

    status_code = 400


class UpstreamFailure(KnowledgeError):
    """Conversion, storage, embedding, vector index or completion model failed."""

    status_code = 502


class ConsistencyWarning(KnowledgeError):
    """The embedding provider returned a different number of vectors than requested.

    Treated as fatal: chunks and embeddings must correspond 1:1.
    """

    status_code = 500
