"""HTTP client for paginated Google Genomics search requests."""

from typing import Any, Optional

# Third party modules
import requests

DEFAULT_BASE_URL = "https://genomics.googleapis.com/v1"


class GenomicsClient:
    """Performs one search request per call against the Genomics API.

    Authentication is supplied by the caller, either as an API key or as an
    already-authenticated requests.Session (e.g. an OAuth2 session).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.session = session if session is not None else requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def search_page(
        self, search_type: str, body: dict[str, Any], fields: Optional[str] = None
    ) -> dict[str, Any]:
        """Fetch one page of search results.

        Args
        -------
            search_type: The resource to search, e.g. "reads".
            body: The JSON request body, including the pageToken (None for
                the first page).
            fields: A field mask restricting the response; None returns all
                fields.

        Returns
        -------
            The decoded JSON response.

        Raises
        -------
            requests.HTTPError: If the server returns an error status.
        """
        params = {}
        if fields is not None:
            # Without the token in the mask we could never fetch a second page
            if "nextPageToken" not in fields.split(","):
                fields = "nextPageToken," + fields
            params["fields"] = fields
        if self.api_key is not None:
            params["key"] = self.api_key

        payload = {k: v for k, v in body.items() if v is not None}

        response = self.session.post(
            f"{self.base_url}/{search_type}/search",
            json=payload,
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()
