"""Convert Genomics API read records into alignment collections."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Optional, Union

# Third party modules
import numpy as np
import pysam

# SAM flag bits, as reconstructed from the read record fields
FLAG_PAIRED = 1
FLAG_PROPER_PAIR = 2
FLAG_UNMAPPED = 4
FLAG_MATE_UNMAPPED = 8
FLAG_REVERSE = 16
FLAG_MATE_REVERSE = 32
FLAG_READ1 = 64
FLAG_READ2 = 128
FLAG_SECONDARY = 256
FLAG_QCFAIL = 512
FLAG_DUPLICATE = 1024
FLAG_SUPPLEMENTARY = 2048

CIGAR_MAP = MappingProxyType(
    {
        "ALIGNMENT_MATCH": "M",
        "CLIP_HARD": "H",
        "CLIP_SOFT": "S",
        "DELETE": "D",
        "INSERT": "I",
        "PAD": "P",
        "SEQUENCE_MATCH": "=",
        "SEQUENCE_MISMATCH": "X",
        "SKIP": "N",
    }
)

Read = dict[str, Any]


def _to_ucsc(name: str) -> str:
    if name.startswith("chr"):
        return name
    if name in ("MT", "M"):
        return "chrM"
    if name.isdigit() or name in ("X", "Y"):
        return "chr" + name
    # Unplaced contigs / accessions have no UCSC alias we can compute
    return name


def _to_ncbi(name: str) -> str:
    if name in ("chrM", "M"):
        return "MT"
    if name.startswith("chr"):
        return name[3:]
    return name


SEQLEVELS_STYLES = MappingProxyType(
    {
        "UCSC": _to_ucsc,
        "NCBI": _to_ncbi,
        "Ensembl": _to_ncbi,
    }
)


def check_seqlevels_style(style: str) -> None:
    """Raise ValueError if style is not one of SEQLEVELS_STYLES."""
    if style not in SEQLEVELS_STYLES:
        raise ValueError(
            f"Unknown seqlevels style: {style!r} (supported: {', '.join(SEQLEVELS_STYLES)})"
        )


def rename_seqlevel(name: Optional[str], style: str) -> Optional[str]:
    """Relabel a reference name according to a naming style.

    Args
    -------
        name: The reference name, e.g. "22" or "chr22".
        style: One of SEQLEVELS_STYLES, e.g. "UCSC".

    Returns
    -------
        The renamed reference, e.g. "chr22" for UCSC. None stays None.

    Raises
    -------
        ValueError: If the style is not a known naming style.
    """
    check_seqlevels_style(style)
    if name is None:
        return None
    return SEQLEVELS_STYLES[style](name)


def _alignment_position(read: Read) -> dict:
    return (read.get("alignment") or {}).get("position") or {}


def get_position(read: Read) -> Optional[int]:
    """Return the 0-based alignment position of a read, or None if unmapped."""
    position = _alignment_position(read).get("position")
    if position is None:
        return None
    # int64 fields arrive as JSON strings
    return int(position)


def get_reference_name(read: Read) -> Optional[str]:
    """Return the reference name a read is aligned to."""
    return _alignment_position(read).get("referenceName")


def get_cigar(read: Read) -> str:
    """Render the structured CIGAR of a read as a compact string, e.g. "10M2D".

    Raises
    -------
        ValueError: If the read contains an operation with no CIGAR symbol.
    """
    pieces = []
    for cigar_piece in (read.get("alignment") or {}).get("cigar") or []:
        operation = cigar_piece.get("operation")
        if operation not in CIGAR_MAP:
            raise ValueError(
                f"Unknown CIGAR operation {operation!r} in read {read.get('fragmentName')!r}"
            )
        pieces.append(f"{int(cigar_piece['operationLength'])}{CIGAR_MAP[operation]}")
    return "".join(pieces)


def get_flags(read: Read) -> int:
    """Compute the SAM flag for a read from its record fields.

    Boolean fields which are missing count as false, except for the read and
    mate positions, whose absence marks the read (or its mate) as unmapped.
    """
    flags = 0
    mate_position = read.get("nextMatePosition") or {}

    if read.get("numberReads") == 2:
        flags += FLAG_PAIRED
    if read.get("properPlacement") is True:
        flags += FLAG_PROPER_PAIR
    if get_position(read) is None:
        flags += FLAG_UNMAPPED
    if mate_position.get("position") is None:
        flags += FLAG_MATE_UNMAPPED
    if _alignment_position(read).get("reverseStrand") is True:
        flags += FLAG_REVERSE
    if mate_position.get("reverseStrand") is True:
        flags += FLAG_MATE_REVERSE
    if read.get("readNumber") == 0:
        flags += FLAG_READ1
    if read.get("readNumber") == 1:
        flags += FLAG_READ2
    if read.get("secondaryAlignment") is True:
        flags += FLAG_SECONDARY
    if read.get("failedVendorQualityChecks") is True:
        flags += FLAG_QCFAIL
    if read.get("duplicateFragment") is True:
        flags += FLAG_DUPLICATE
    if read.get("supplementaryAlignment") is True:
        flags += FLAG_SUPPLEMENTARY
    return flags


def reference_length(cigar: str) -> int:
    """Number of reference bases covered by a CIGAR string, at least 1."""
    if not cigar:
        return 1
    segment = pysam.AlignedSegment()
    segment.flag = 0
    segment.reference_start = 0
    segment.cigarstring = cigar
    return segment.reference_length or 1


@dataclass(frozen=True)
class Alignment:
    """A single read alignment."""

    name: Optional[str]
    reference_name: Optional[str]
    strand: str
    position: Optional[int]
    cigar: str
    flag: int


class AlignmentCollection:
    """An ordered collection of read alignments.

    Positions are stored in the coordinate base the collection was built with
    (1-based unless built with one_based=False). Unmapped reads keep a
    position of None.
    """

    def __init__(self, alignments: Iterable[Alignment] = (), one_based: bool = True):
        self.one_based = one_based
        self._alignments: list[Alignment] = list(alignments)

    def __len__(self) -> int:
        return len(self._alignments)

    def __iter__(self) -> Iterator[Alignment]:
        return iter(self._alignments)

    def __getitem__(
        self, index: Union[int, slice]
    ) -> Union[Alignment, "AlignmentCollection"]:
        """Return one alignment, or a new collection for a slice."""
        if isinstance(index, slice):
            return AlignmentCollection(self._alignments[index], one_based=self.one_based)
        return self._alignments[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlignmentCollection):
            return NotImplemented
        return (
            self.one_based == other.one_based
            and self._alignments == other._alignments
        )

    def __repr__(self) -> str:
        base = "1-based" if self.one_based else "0-based"
        return f"AlignmentCollection({len(self)} alignments, {base})"

    def extend(self, other: "AlignmentCollection") -> "AlignmentCollection":
        """Append the alignments of another collection, in order."""
        if other.one_based != self.one_based:
            raise ValueError("Cannot merge collections with different coordinate bases")
        self._alignments.extend(other)
        return self

    @property
    def names(self) -> np.ndarray:
        return np.array([a.name for a in self._alignments], dtype=object)

    @property
    def reference_names(self) -> np.ndarray:
        return np.array([a.reference_name for a in self._alignments], dtype=object)

    @property
    def cigars(self) -> np.ndarray:
        return np.array([a.cigar for a in self._alignments], dtype=object)

    @property
    def strands(self) -> np.ndarray:
        return np.array([a.strand for a in self._alignments], dtype=object)

    @property
    def flags(self) -> np.ndarray:
        return np.array([a.flag for a in self._alignments], dtype=np.int64)

    @property
    def positions(self) -> np.ma.MaskedArray:
        """Alignment positions, masked where the read is unmapped."""
        missing = [a.position is None for a in self._alignments]
        data = [0 if a.position is None else a.position for a in self._alignments]
        return np.ma.masked_array(
            np.array(data, dtype=np.int64), mask=np.array(missing, dtype=bool)
        )

    @property
    def is_minus_strand(self) -> np.ndarray:
        return (self.flags & FLAG_REVERSE) != 0

    def _zero_based_start(self, alignment: Alignment) -> Optional[int]:
        if alignment.position is None:
            return None
        return alignment.position - 1 if self.one_based else alignment.position

    def reference_lengths(self) -> dict[str, int]:
        """Estimate reference lengths as the furthest 1-based alignment end seen.

        The reads API does not report contig lengths, so this is the smallest
        length consistent with the alignments in the collection.
        """
        lengths: dict[str, int] = {}
        for alignment in self._alignments:
            start = self._zero_based_start(alignment)
            if start is None or alignment.reference_name is None:
                continue
            end = start + reference_length(alignment.cigar)
            lengths[alignment.reference_name] = max(
                lengths.get(alignment.reference_name, 0), end
            )
        return lengths

    def to_header(
        self, reference_lengths: Optional[dict[str, int]] = None
    ) -> pysam.AlignmentHeader:
        """Build a SAM header covering the references in this collection."""
        if reference_lengths is None:
            reference_lengths = self.reference_lengths()
        header = {
            "HD": {"VN": "1.6", "SO": "unknown"},
            "SQ": [{"SN": name, "LN": length} for name, length in reference_lengths.items()],
        }
        return pysam.AlignmentHeader.from_dict(header)

    def to_aligned_segments(
        self, header: pysam.AlignmentHeader
    ) -> Iterator[pysam.AlignedSegment]:
        """Yield a pysam.AlignedSegment for each alignment.

        Raises
        -------
            ValueError: If a mapped alignment refers to a reference missing
                from the header.
        """
        for alignment in self._alignments:
            segment = pysam.AlignedSegment(header)
            segment.query_name = alignment.name
            segment.flag = alignment.flag
            start = self._zero_based_start(alignment)
            if start is None:
                segment.reference_id = -1
                segment.reference_start = -1
            else:
                if (
                    alignment.reference_name is None
                    or header.get_tid(alignment.reference_name) < 0
                ):
                    raise ValueError(
                        f"Reference {alignment.reference_name!r} of read {alignment.name!r} is not in the header"
                    )
                segment.reference_name = alignment.reference_name
                segment.reference_start = start
            if alignment.cigar:
                segment.cigarstring = alignment.cigar
            yield segment


def reads_to_alignments(
    reads: Optional[list[Read]] = None,
    one_based_coord: bool = True,
    seqlevels_style: str = "UCSC",
) -> AlignmentCollection:
    """Convert Genomics API reads into an AlignmentCollection.

    Note that the GA4GH API uses 0-based coordinates; by default positions
    are shifted to the 1-based convention used by SAM.

    Args
    -------
        reads: Read records as returned by the reads search API.
        one_based_coord: Convert genomic positions to 1-based coordinates.
        seqlevels_style: The style for reference names (chrN or N or...).
            Default is UCSC.

    Returns
    -------
        An AlignmentCollection with one alignment per read, in input order.
        Empty if no reads are given.

    Raises
    -------
        ValueError: If a read has an unknown CIGAR operation, or the style is
            unknown.
    """
    check_seqlevels_style(seqlevels_style)
    if not reads:
        return AlignmentCollection(one_based=one_based_coord)

    alignments = []
    for read in reads:
        position = get_position(read)
        if one_based_coord and position is not None:
            position += 1
        flag = get_flags(read)
        alignments.append(
            Alignment(
                name=read.get("fragmentName"),
                reference_name=rename_seqlevel(get_reference_name(read), seqlevels_style),
                strand="-" if flag & FLAG_REVERSE else "+",
                position=position,
                cigar=get_cigar(read),
                flag=flag,
            )
        )
    return AlignmentCollection(alignments, one_based=one_based_coord)


def write_alignments(
    alignments: AlignmentCollection,
    output_path: str,
    reference_lengths: Optional[dict[str, int]] = None,
) -> None:
    """Write an AlignmentCollection to a .sam or .bam file.

    The output format is chosen from the file extension (.bam writes BAM,
    anything else SAM). Nothing is written if any alignment cannot be
    converted.

    Raises
    -------
        ValueError: If a mapped alignment refers to a reference missing from
            reference_lengths.
    """
    header = alignments.to_header(reference_lengths)
    # Build every record before the file exists, so errors leave no partial output
    segments = list(alignments.to_aligned_segments(header))
    mode = "wb" if str(output_path).endswith(".bam") else "w"
    with pysam.AlignmentFile(str(output_path), mode, header=header) as out_file:
        for segment in segments:
            out_file.write(segment)


def strand_counts(alignments: Union[AlignmentCollection, Iterable[Alignment]]) -> dict[str, int]:
    """Count alignments per strand."""
    counts = {"+": 0, "-": 0}
    for alignment in alignments:
        counts[alignment.strand] += 1
    return counts
