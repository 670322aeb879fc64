# Import modules
import click
import os
import time

# Third party modules
import requests

from genomicsreads.alignments import (
    SEQLEVELS_STYLES,
    AlignmentCollection,
    strand_counts,
    write_alignments,
)
from genomicsreads.client import DEFAULT_BASE_URL, GenomicsClient
from genomicsreads.functions import (
    DEFAULT_CHROMOSOME,
    DEFAULT_END,
    DEFAULT_READ_GROUP_SET_ID,
    DEFAULT_START,
    AlignmentConverter,
    get_reads,
)


def validate_output(output_path: str, overwrite: bool) -> None:
    """Check that the output file can be written.

    Raises
    ----------
    ValueError: If the output exists without --overwrite, has an unsupported
        extension, or its directory is not writable.
    """
    if not output_path.endswith((".sam", ".bam")):
        raise ValueError(f"Output file must end in .sam or .bam: {output_path}")

    if os.path.exists(output_path):
        if overwrite and os.access(output_path, os.W_OK):
            print("\tOutput file exists and --overwrite specified. Will overwrite it.")
        else:
            raise ValueError(
                f"Output file exists and --overwrite not specified or not writable: {output_path}"
            )
    elif not os.access(os.path.dirname(os.path.abspath(output_path)), os.W_OK):
        raise ValueError(f"Output file path is not writable: {output_path}")


def summarize_alignments(alignments: AlignmentCollection) -> None:
    """Print a short summary of the fetched alignments."""
    print(f"\nTotal reads: {len(alignments):,}")
    if len(alignments) == 0:
        return
    print(f"Mapped reads: {alignments.positions.count():,}")
    counts = strand_counts(alignments)
    print(f"Strand: + {counts['+']:,} / - {counts['-']:,}")
    references = sorted({name for name in alignments.reference_names if name})
    print(f"References: {', '.join(references)}")


@click.command(
    help="Fetch all reads in a genomic range from the Google Genomics API and convert them to alignments."
)
@click.version_option()
@click.option(
    "--api-key",
    help="API key for the Genomics API.",
    envvar="GOOGLE_API_KEY",
    required=False,
    type=str,
)
@click.option(
    "--base-url",
    help="Root URL of the Genomics API.",
    default=DEFAULT_BASE_URL,
    show_default=True,
)
@click.option(
    "--read-group-set-id",
    help="The read group set to query.",
    default=DEFAULT_READ_GROUP_SET_ID,
    show_default=True,
)
@click.option(
    "--chromosome", help="Reference name to query.", default=DEFAULT_CHROMOSOME, show_default=True
)
@click.option(
    "--start",
    help="Start of the range (0-based, inclusive).",
    default=DEFAULT_START,
    type=int,
    show_default=True,
)
@click.option(
    "--end",
    help="End of the range (0-based, exclusive).",
    default=DEFAULT_END,
    type=int,
    show_default=True,
)
@click.option(
    "--fields",
    help="Comma-separated field mask, e.g. 'alignments(fragmentName,alignment)'. Default: all fields.",
    default=None,
)
@click.option(
    "--seqlevels-style",
    help="Reference naming style for the output.",
    type=click.Choice(list(SEQLEVELS_STYLES)),
    default="UCSC",
    show_default=True,
)
@click.option(
    "--zero-based", help="Keep the API's 0-based positions.", is_flag=True
)
@click.option("--output", help="Write alignments to this .sam or .bam file.", default=None)
@click.option("--overwrite", help="Overwrite output file if it exists.", is_flag=True)
@click.option("--verbose", help="Verbose output.", is_flag=True)
def main(
    api_key: str,
    base_url: str,
    read_group_set_id: str,
    chromosome: str,
    start: int,
    end: int,
    fields: str,
    seqlevels_style: str,
    zero_based: bool,
    output: str,
    overwrite: bool,
    verbose: bool,
) -> None:
    """genomicsreads."""
    time_start = time.time()
    print(f"Read group set: {read_group_set_id}")
    print(f"Range: {chromosome}:{start}-{end} (0-based)")

    if output is not None:
        try:
            validate_output(output, overwrite=overwrite)
        except ValueError as e:
            raise click.ClickException(str(e)) from e

    client = GenomicsClient(api_key=api_key, base_url=base_url)

    try:
        alignments = get_reads(
            client,
            read_group_set_id=read_group_set_id,
            chromosome=chromosome,
            start=start,
            end=end,
            fields=fields,
            converter=AlignmentConverter(
                one_based_coord=not zero_based, seqlevels_style=seqlevels_style
            ),
            verbose=verbose,
        )
    except requests.RequestException as e:
        raise click.ClickException(f"Reads request failed: {e}") from e

    summarize_alignments(alignments)

    if output is not None:
        print(f"\nWriting alignments to: {output}")
        write_alignments(alignments, output)

    print(f"\nTime elapsed: {time.time() - time_start:.2f} seconds")
    print("\nRun complete.")


if __name__ == "__main__":
    main(prog_name="genomicsreads")  # pylint: disable=no-value-for-parameter
