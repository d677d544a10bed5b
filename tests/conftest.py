"""
Pytest configuration and shared fixtures.
"""

import pytest
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqFeature import FeatureLocation, SeqFeature
from Bio.SeqRecord import SeqRecord

from snipalign.gbk_processing import Feature, Genome
from snipalign.models import Location, SequenceRecord


class IdentityAligner:
    """Stands in for the external aligner when the inputs already line up."""

    def __init__(self):
        self.calls = []

    def align(self, records):
        self.calls.append([record.id for record in records])
        return [SequenceRecord(r.id, r.comment, r.dna.upper()) for r in records]


@pytest.fixture
def identity_aligner():
    return IdentityAligner()


@pytest.fixture
def make_genbank(tmp_path):
    """
    Factory writing a GenBank file.

    `features` holds (contig, start, end, strand, qualifiers) tuples with 0-based,
    end-exclusive coordinates.
    """

    def _make(file_name, contigs, features, organism="Escherichia coli", directory=None):
        directory = directory or tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        records = []
        for contig_id, dna in contigs.items():
            record = SeqRecord(
                Seq(dna), id=contig_id, name=contig_id, description=f"{organism} {contig_id}"
            )
            record.annotations["molecule_type"] = "DNA"
            record.annotations["organism"] = organism
            record.features = [
                SeqFeature(
                    FeatureLocation(start, end, strand=strand),
                    type="CDS",
                    qualifiers={key: [value] for key, value in qualifiers.items()},
                )
                for contig, start, end, strand, qualifiers in features
                if contig == contig_id
            ]
            records.append(record)
        path = directory / file_name
        SeqIO.write(records, path, "genbank")
        return path

    return _make


@pytest.fixture
def make_genome():
    """
    Factory building a genome in memory.

    `features` holds (locus, function, left, right, strand, protein) tuples on contig "c1".
    """

    def _make(genome_id, dna, features, name=None):
        pegs = [
            Feature(
                id=f"{genome_id}|{locus}",
                function=function,
                location=Location("c1", left, right, strand),
                protein=protein,
                genome_id=genome_id,
            )
            for locus, function, left, right, strand, protein in features
        ]
        return Genome(genome_id, name or f"Genome {genome_id}", {"c1": dna}, pegs)

    return _make
