"""Shared fixtures: an in-memory paginated reads source."""

import pytest


def make_read(
    name: str,
    position=None,
    reference_name: str = "22",
    reverse_strand: bool = False,
    cigar=None,
    **fields,
) -> dict:
    """Build a read record shaped like a Genomics API response."""
    read = {"fragmentName": name, **fields}
    if position is not None:
        read["alignment"] = {
            "position": {
                "position": str(position),
                "referenceName": reference_name,
                "reverseStrand": reverse_strand,
            },
            "cigar": cigar
            if cigar is not None
            else [{"operation": "ALIGNMENT_MATCH", "operationLength": "10"}],
        }
    return read


class FakeSearchClient:
    """Serves pre-built pages, chained by page tokens, and records each request."""

    def __init__(self, pages: list[list[dict]], fail_on_page=None):
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.requests: list[tuple[str, dict, object]] = []

    def search_page(self, search_type, body, fields=None):
        self.requests.append((search_type, dict(body), fields))
        token = body.get("pageToken")
        index = 0 if token is None else int(token[len("tok") :])
        if self.fail_on_page == index:
            raise ConnectionError(f"page {index} unavailable")
        response = {"alignments": self.pages[index]}
        if index + 1 < len(self.pages):
            response["nextPageToken"] = f"tok{index + 1}"
        return response


@pytest.fixture
def three_pages() -> list[list[dict]]:
    """Three pages of reads, with tokens chaining None -> tok1 -> tok2 -> None."""
    return [
        [make_read("r1", 100), make_read("r2", 150, reverse_strand=True)],
        [make_read("r3", 200, reference_name="X")],
        [make_read("r4"), make_read("r5", 300), make_read("r6", 310)],
    ]


@pytest.fixture
def fake_client(three_pages) -> FakeSearchClient:
    return FakeSearchClient(three_pages)
