"""HTTP constants for talking to the AniList GraphQL endpoint."""


class HTTPStatusCodes:
    """Status codes the catalog client branches on."""

    NOT_FOUND = 404
    TOO_MANY_REQUESTS = 429

    @staticmethod
    def is_success(code: int) -> bool:
        return 200 <= code < 300

    @staticmethod
    def is_server_error(code: int) -> bool:
        """5xx answers are mapped to API_SERVER_ERROR and may be retried."""
        return 500 <= code < 600


class HTTPHeaders:
    """Request and response headers used by the transport and client."""

    CONTENT_TYPE = "Content-Type"
    ACCEPT = "Accept"
    USER_AGENT = "User-Agent"
    RETRY_AFTER = "Retry-After"


class ContentTypes:
    JSON = "application/json"
