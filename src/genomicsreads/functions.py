"""Core functions for genomicsreads: paging through the reads search API."""

import sys
from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional

# Third party modules
from tqdm import tqdm

from genomicsreads.alignments import (
    AlignmentCollection,
    Read,
    check_seqlevels_style,
    reads_to_alignments,
)
from genomicsreads.client import GenomicsClient

# A small region of one 1,000 Genomes sample
DEFAULT_READ_GROUP_SET_ID = "CMvnhpKTFhDnk4_9zcKO3_YB"
DEFAULT_CHROMOSOME = "22"
DEFAULT_START = 16051400
DEFAULT_END = 16051500


class ReadConverter(ABC):
    """Converts pages of raw reads into an accumulated result.

    Subclasses provide an empty starting value, a per-page conversion, and the
    merge of a converted page into the running result.
    """

    @abstractmethod
    def empty(self) -> Any:
        """Return the starting value of the accumulated result."""

    @abstractmethod
    def convert(self, reads: list[Read]) -> Any:
        """Convert one page of raw reads."""

    @abstractmethod
    def merge(self, accumulated: Any, converted: Any) -> Any:
        """Add a converted page to the accumulated result and return it."""


class RawReadConverter(ReadConverter):
    """Accumulates the raw read records into a flat list."""

    def empty(self) -> list[Read]:
        return []

    def convert(self, reads: list[Read]) -> list[Read]:
        return list(reads)

    def merge(self, accumulated: list[Read], converted: list[Read]) -> list[Read]:
        accumulated.extend(converted)
        return accumulated


class AlignmentConverter(ReadConverter):
    """Accumulates reads as an AlignmentCollection."""

    def __init__(self, one_based_coord: bool = True, seqlevels_style: str = "UCSC"):
        check_seqlevels_style(seqlevels_style)
        self.one_based_coord = one_based_coord
        self.seqlevels_style = seqlevels_style

    def empty(self) -> AlignmentCollection:
        return AlignmentCollection(one_based=self.one_based_coord)

    def convert(self, reads: list[Read]) -> AlignmentCollection:
        return reads_to_alignments(
            reads,
            one_based_coord=self.one_based_coord,
            seqlevels_style=self.seqlevels_style,
        )

    def merge(
        self, accumulated: AlignmentCollection, converted: AlignmentCollection
    ) -> AlignmentCollection:
        return accumulated.extend(converted)


def get_reads_page(
    client: GenomicsClient,
    read_group_set_id: str = DEFAULT_READ_GROUP_SET_ID,
    chromosome: str = DEFAULT_CHROMOSOME,
    start: int = DEFAULT_START,
    end: int = DEFAULT_END,
    fields: Optional[str] = None,
    page_token: Optional[str] = None,
) -> tuple[list[Read], Optional[str]]:
    """Get one page of reads.

    In general, use get_reads instead; it calls this function for every page
    that makes up the requested genomic range.

    Note that the GA4GH API uses 0-based coordinates, with an exclusive end.

    Args
    -------
        client: An authenticated client (anything with a search_page method).
        read_group_set_id: The read group set ID.
        chromosome: The chromosome (reference name).
        start: Start position on the chromosome in 0-based coordinates.
        end: End position on the chromosome in 0-based coordinates.
        fields: A subset of fields to retrieve. None returns all fields.
        page_token: The page token, None for the first page.

    Returns
    -------
        A tuple of the reads of this page, and the token for the next page
        (None on the last page).
    """
    body = {
        "readGroupSetIds": [read_group_set_id],
        "referenceName": chromosome,
        "start": start,
        "end": end,
        "pageToken": page_token,
    }

    results = client.search_page("reads", body, fields)

    return results.get("alignments") or [], results.get("nextPageToken")


def iter_reads_pages(
    client: GenomicsClient,
    read_group_set_id: str = DEFAULT_READ_GROUP_SET_ID,
    chromosome: str = DEFAULT_CHROMOSOME,
    start: int = DEFAULT_START,
    end: int = DEFAULT_END,
    fields: Optional[str] = None,
    verbose: bool = True,
) -> Iterator[tuple[list[Read], Optional[str]]]:
    """Yield (reads, next_page_token) for every page of the range, in server order."""
    page_token = None
    with tqdm(unit=" pages", disable=not verbose, file=sys.stderr) as progress:
        while True:
            reads, page_token = get_reads_page(
                client,
                read_group_set_id=read_group_set_id,
                chromosome=chromosome,
                start=start,
                end=end,
                fields=fields,
                page_token=page_token,
            )
            progress.update(1)
            yield reads, page_token
            if page_token is None:
                break
            if verbose:
                tqdm.write(
                    f"Continuing read query with the nextPageToken: {page_token}",
                    file=sys.stderr,
                )


def get_reads(
    client: GenomicsClient,
    read_group_set_id: str = DEFAULT_READ_GROUP_SET_ID,
    chromosome: str = DEFAULT_CHROMOSOME,
    start: int = DEFAULT_START,
    end: int = DEFAULT_END,
    fields: Optional[str] = None,
    converter: Optional[ReadConverter] = None,
    verbose: bool = True,
) -> Any:
    """Get all reads in a genomic range, following page tokens as needed.

    Each page is passed through the converter as it arrives, so only the
    converted objects are kept in memory.

    Args
    -------
        client: An authenticated client.
        read_group_set_id, chromosome, start, end, fields: As for get_reads_page.
        converter: Converts each page and merges it into the result. Defaults
            to RawReadConverter, which returns a list of the raw read records.
        verbose: Report progress on stderr.

    Returns
    -------
        The accumulated result, of the type produced by the converter.
    """
    if converter is None:
        converter = RawReadConverter()

    reads = converter.empty()
    for page_reads, _ in iter_reads_pages(
        client,
        read_group_set_id=read_group_set_id,
        chromosome=chromosome,
        start=start,
        end=end,
        fields=fields,
        verbose=verbose,
    ):
        reads = converter.merge(reads, converter.convert(page_reads))

    if verbose:
        tqdm.write("Reads are now available.", file=sys.stderr)
    return reads
