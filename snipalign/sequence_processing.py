"""
Distance-bounded sequence collections and FASTA helpers
"""

import os
from typing import IO, Iterable

from Bio import SeqIO

from snipalign.config import KMER_SIZE
from snipalign.kmer_processing import build_profile, kmer_distance
from snipalign.models import SequenceRecord


def write_fasta(
    records: Iterable[SequenceRecord], sink: str | os.PathLike | IO
) -> int:
    """
    Write sequence records in FASTA format.

    Parameters
    ----------
    records : iterable of SequenceRecord
        Records to write, in order.
    sink : str, os.PathLike or file handle
        Output file name or open text handle.

    Returns
    -------
    int
        Number of records written.
    """

    return SeqIO.write((record.to_seq_record() for record in records), sink, "fasta")


def read_fasta(source: str | os.PathLike | IO) -> list[SequenceRecord]:
    """Read every record of a FASTA file, splitting each header into label and comment."""
    return [
        SequenceRecord.from_seq_record(record)
        for record in SeqIO.parse(source, "fasta")
    ]


class SequenceList:
    """
    A list of sequences anchored on a base sequence.

    The base sequence is converted into a kmer profile, and a new sequence is only
    admitted if it is close enough to the base.

    Parameters
    ----------
    id : str
        Label of the base sequence.
    comment : str
        Comment for the base sequence.
    dna : str
        DNA of the base sequence.
    kmer_size : int, optional
        Kmer length for distance computations. Default is `KMER_SIZE`.
    """

    def __init__(self, id: str, comment: str, dna: str, kmer_size: int = KMER_SIZE):
        self.kmer_size = kmer_size
        self._base_profile = build_profile(dna, kmer_size)
        self._members = [SequenceRecord(id, comment, dna)]
        self._max_dist = 0.0

    @property
    def base_id(self) -> str:
        return self._members[0].id

    @property
    def max_dist(self) -> float:
        """Highest distance of an accepted sequence from the base."""
        return self._max_dist

    @property
    def records(self) -> list[SequenceRecord]:
        return list(self._members)

    def size(self) -> int:
        return len(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self):
        return iter(self._members)

    def distance_to(self, dna: str) -> float:
        """Return the distance from a proposed sequence to the base."""
        return kmer_distance(build_profile(dna, self.kmer_size), self._base_profile)

    def try_add(self, id: str, comment: str, dna: str, max_allowed: float) -> bool:
        """
        Add a sequence to this list if it is within a specified distance of the base.

        Parameters
        ----------
        id : str
            Label of the sequence.
        comment : str
            Sequence comment.
        dna : str
            Sequence DNA.
        max_allowed : float
            Maximum acceptable distance.

        Returns
        -------
        bool
            True if the sequence was added, else False (in which case nothing changes).
        """

        distance = self.distance_to(dna)
        if distance > max_allowed:
            return False
        self._members.append(SequenceRecord(id, comment, dna))
        if distance > self._max_dist:
            self._max_dist = distance
        return True

    def serialize(self, sink: str | os.PathLike | IO) -> None:
        """Write all the sequences, base first, to a FASTA file or handle."""
        write_fasta(self._members, sink)
