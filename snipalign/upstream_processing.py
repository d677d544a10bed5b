"""
Post-processing of alignments for gaps caused by differing start calls or by
sequence ends.
"""

import logging

from snipalign.config import GAP
from snipalign.gbk_processing import Genome, genome_of
from snipalign.models import Location, SequenceRecord


def leading_gaps(sequence: str) -> int:
    return len(sequence) - len(sequence.lstrip(GAP))


def recapture_upstream(
    alignment: list[SequenceRecord], genomes: dict[str, Genome]
) -> int:
    """
    Replace illusory leading indels with the upstream DNA they stand for.

    When one gene has a start called further downstream than its homologs, its
    aligned row begins with gaps. If the DNA just upstream of that row's location
    is a prefix of a row without leading gaps, the gaps are replaced by that DNA
    and the row comment is updated to the expanded location.

    Parameters
    ----------
    alignment : list of SequenceRecord
        Aligned rows whose comments are location strings. Modified in place.
    genomes : dict of str to Genome
        Genomes by ID, covering every row.

    Returns
    -------
    int
        Number of rows recaptured.
    """

    fronted = [record for record in alignment if record.dna.startswith(GAP)]
    full = [record for record in alignment if not record.dna.startswith(GAP)]
    if not fronted or not full:
        return 0

    recaptures = 0
    for record in fronted:
        indel_length = leading_gaps(record.dna)
        if indel_length == len(record.dna):
            continue
        genome = genomes[genome_of(record.id)]
        location = Location.from_string(record.comment)
        upstream = genome.get_dna(location.upstream(indel_length)).upper()
        if len(upstream) != indel_length:
            continue
        if any(other.dna.startswith(upstream) for other in full):
            record.dna = upstream + record.dna[indel_length:]
            contig_length = genome.contig_length(location.contig)
            record.comment = str(location.expand_upstream(indel_length, contig_length))
            logging.info(f"Upstream region added to {record.id}.")
            recaptures += 1

    return recaptures


def fill_terminal_indels(record: SequenceRecord, genome: Genome) -> None:
    """
    Fill gaps at either end of an aligned row with the flanking genome DNA, in lower case.

    Positions past the contig edge stay gaps. The row is upper-cased, and its DNA is
    replaced in place.

    Parameters
    ----------
    record : SequenceRecord
        Aligned row whose comment is a location string.
    genome : Genome
        Genome containing the row's location.
    """

    sequence = record.dna.upper()
    location = Location.from_string(record.comment)
    start = leading_gaps(sequence)
    if start == len(sequence):
        record.dna = sequence
        return
    if start > 0:
        dna = genome.get_dna(location.upstream(start)).rjust(start, GAP)
        sequence = dna.lower() + sequence[start:]
    end = len(sequence.rstrip(GAP))
    trailing = len(sequence) - end
    if trailing > 0:
        dna = genome.get_dna(location.downstream(trailing)).ljust(trailing, GAP)
        sequence = sequence[:end] + dna.lower()
    record.dna = sequence
