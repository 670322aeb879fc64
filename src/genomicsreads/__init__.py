"""genomicsreads: Fetch reads from the Google Genomics API as alignments.

genomicsreads retrieves sequencing reads for a genomic range from the
paginated Genomics (GA4GH) reads search API, and converts the JSON read
records into alignments: SAM flags and CIGAR strings are rebuilt from the
record fields, and 0-based API positions are shifted to the 1-based
convention.

Main Components:
    GenomicsClient: Performs one search request against the API.
    get_reads_page: Fetch one page of reads plus its continuation token.
    get_reads: Fetch every page of a range, converting each page as it
        arrives so only converted objects are kept in memory.
    reads_to_alignments: Convert read records to an AlignmentCollection.

Example:
    Command-line usage::

        $ GOOGLE_API_KEY=... genomicsreads --chromosome 22 --start 16051400 --end 16051500 --output reads.sam

    Python API usage::

        from genomicsreads.client import GenomicsClient
        from genomicsreads.functions import AlignmentConverter, get_reads

        client = GenomicsClient(api_key="...")

        # Raw read records
        reads = get_reads(client)

        # Or only keep the converted alignments in memory
        alignments = get_reads(client, converter=AlignmentConverter())
"""

__version__ = "0.1.0"
