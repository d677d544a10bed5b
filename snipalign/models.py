"""
Data models (dataclasses) used in module
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from Bio.Seq import Seq, reverse_complement
from Bio.SeqRecord import SeqRecord


LOCATION_PATTERN = re.compile(r"^(.+)_(\d+)([+-])(\d+)$")


@dataclass(frozen=True, order=True)
class Location:
    """
    A stranded region of a contig.

    Positions are 1-based and inclusive. `left` is always the lower coordinate, so for
    a minus-strand location the 5' end (`begin`) is `right`.

    Attributes
    ----------
    contig : str
        ID of the contig containing the region.
    left : int
        Leftmost position.
    right : int
        Rightmost position.
    strand : str
        "+" or "-".
    """

    contig: str
    """ID of the contig"""
    left: int
    """Leftmost position (1-based)"""
    right: int
    """Rightmost position (1-based, inclusive)"""
    strand: str = "+"
    """Strand, "+" or "-" """

    @property
    def length(self) -> int:
        return max(0, self.right - self.left + 1)

    @property
    def begin(self) -> int:
        """Position of the 5' end."""
        return self.left if self.strand == "+" else self.right

    @property
    def end(self) -> int:
        """Position of the 3' end."""
        return self.right if self.strand == "+" else self.left

    def __str__(self) -> str:
        return f"{self.contig}_{self.begin}{self.strand}{self.length}"

    @classmethod
    def from_string(cls, location_string: str) -> "Location":
        """
        Parse a location string of the form `contig_begin+length` or `contig_begin-length`.

        Parameters
        ----------
        location_string : str
            String produced by `str(location)`.

        Returns
        -------
        Location
        """

        match = LOCATION_PATTERN.match(location_string.strip())
        if not match:
            raise ValueError(f"Invalid location string {location_string!r}.")
        contig, begin, strand, length = match.groups()
        begin, length = int(begin), int(length)
        if strand == "+":
            return cls(contig, begin, begin + length - 1, strand)
        return cls(contig, begin - length + 1, begin, strand)

    def upstream(self, distance: int) -> "Location":
        """Return the region of the specified length immediately before the 5' end."""
        if self.strand == "+":
            return Location(self.contig, self.left - distance, self.left - 1, "+")
        return Location(self.contig, self.right + 1, self.right + distance, "-")

    def downstream(self, distance: int) -> "Location":
        """Return the region of the specified length immediately past the 3' end."""
        if self.strand == "+":
            return Location(self.contig, self.right + 1, self.right + distance, "+")
        return Location(self.contig, self.left - distance, self.left - 1, "-")

    def expand_upstream(self, distance: int, contig_length: int) -> "Location":
        """Extend the 5' end by up to `distance` positions without leaving the contig."""
        if self.strand == "+":
            return Location(self.contig, max(1, self.left - distance), self.right, "+")
        return Location(
            self.contig, self.left, min(contig_length, self.right + distance), "-"
        )

    def sub_location(self, offset: int, length: int) -> "Location":
        """Return the region `length` long starting `offset` positions past the 5' end."""
        if self.strand == "+":
            start = self.left + offset
            return Location(self.contig, start, start + length - 1, "+")
        stop = self.right - offset
        return Location(self.contig, stop - length + 1, stop, "-")

    def overlaps(self, other: "Location") -> bool:
        return (
            self.contig == other.contig
            and self.left <= other.right
            and other.left <= self.right
        )

    def extract(self, sequence: Seq | str) -> str:
        """
        Extract the DNA for this location from a contig sequence.

        Positions off either edge of the contig are dropped, so the result can be
        shorter than `length`. Minus-strand DNA is reverse-complemented.
        """

        left = max(self.left, 1)
        right = min(self.right, len(sequence))
        if right < left:
            return ""
        dna = str(sequence[left - 1 : right])
        if self.strand == "-":
            dna = reverse_complement(dna)
        return dna


@dataclass
class SequenceRecord:
    """
    A labeled sequence, as written to and read back from the aligner.

    Attributes
    ----------
    id : str
        Sequence label, normally a feature ID.
    comment : str
        Free text, normally the string form of the sequence location.
    dna : str
        Sequence letters; gapped after alignment.
    """

    id: str
    """Sequence label"""
    comment: str
    """Sequence comment"""
    dna: str
    """Sequence letters"""

    def to_seq_record(self) -> SeqRecord:
        return SeqRecord(Seq(self.dna), id=self.id, description=self.comment)

    @classmethod
    def from_seq_record(cls, record: SeqRecord) -> "SequenceRecord":
        comment = record.description
        if comment.startswith(record.id):
            comment = comment[len(record.id) :].strip()
        return cls(record.id, comment, str(record.seq))


@dataclass(frozen=True)
class GenomeLabel:
    """
    Display attributes of a genome. Equality is based solely on the genome ID.

    Attributes
    ----------
    id : str
        Genome ID.
    tooltip : str
        Preferred tooltip, by default the genome name.
    header : str
        Preferred column header, by default the genome ID.
    """

    id: str
    """Genome ID"""
    tooltip: str = field(default="", compare=False)
    """Preferred tooltip"""
    header: str = field(default="", compare=False)
    """Preferred column header"""

    @classmethod
    def from_genome(cls, genome) -> "GenomeLabel":
        return cls(genome.id, genome.name, genome.id)


class SnipType(Enum):
    """Classification of a differing alignment position."""

    GAP = "gap"
    EDGE = "edge"
    MODIFYING = "modifying"
    UPSTREAM = "upstream"
    INVISIBLE = "invisible"


SNIP_TYPE_PRECEDENCE = [
    SnipType.GAP,
    SnipType.EDGE,
    SnipType.MODIFYING,
    SnipType.UPSTREAM,
    SnipType.INVISIBLE,
]
"""Order in which position classes decide the class of a whole snip"""
