import pytest
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqFeature import FeatureLocation, SeqFeature
from Bio.SeqRecord import SeqRecord

from snipalign.gbk_processing import find_genome_files, genome_of, iter_genome_dir, load_genome
from snipalign.models import Location


@pytest.fixture
def genome_file(make_genbank):
    contigs = {"c1": "ATGAAATAGCCCCTACTTCAT", "c2": "ATGGGGTAA"}
    features = [
        ("c1", 0, 9, 1, {"product": "Dehydrogenase X", "locus_tag": "G1_0001", "gene": "dhxA"}),
        ("c1", 12, 21, -1, {"locus_tag": "G1_0002", "translation": "MKZ"}),
        ("c2", 0, 9, 1, {"product": "kinase Y"}),
    ]
    return make_genbank("g1.gbk", contigs, features)


class TestLoadGenome:
    """Reading genomes and their protein features from GenBank files"""

    def test_genome_attributes(self, genome_file):
        genome = load_genome(genome_file)
        assert genome.id == "g1"
        assert genome.name == "Escherichia coli"
        assert sorted(genome.contigs) == ["c1", "c2"]
        assert genome.contig_length("c1") == 21

    def test_features(self, genome_file):
        genome = load_genome(genome_file)
        assert [feature.id for feature in genome.pegs] == ["g1|G1_0001", "g1|G1_0002", "g1|peg.3"]
        first, second, third = genome.pegs
        assert first.function == "Dehydrogenase X"
        assert first.location == Location("c1", 1, 9, "+")
        assert first.aliases == ["dhxA", "G1_0001"]
        assert first.genome_id == "g1"
        assert second.function == "hypothetical protein"
        assert second.location == Location("c1", 13, 21, "-")
        assert third.location.contig == "c2"

    def test_proteins(self, genome_file):
        genome = load_genome(genome_file)
        first, second, third = genome.pegs
        assert first.protein == "MK"
        assert second.protein == "MKZ"
        assert third.protein == "MG"

    def test_get_dna(self, genome_file):
        genome = load_genome(genome_file)
        assert genome.get_dna(genome.get_feature("g1|G1_0002").location) == "ATGAAGTAG"

    def test_joined_cds_skipped(self, tmp_path):
        record = SeqRecord(Seq("ATGAAA" + "C" * 18 + "CCCATG"), id="c1", name="c1")
        record.annotations["molecule_type"] = "DNA"
        record.annotations["topology"] = "circular"
        record.features = [
            SeqFeature(
                FeatureLocation(24, 30, strand=1) + FeatureLocation(0, 6, strand=1),
                type="CDS",
                qualifiers={"product": ["origin spanning protein"], "locus_tag": ["G1_0001"]},
            ),
            SeqFeature(
                FeatureLocation(6, 15, strand=1),
                type="CDS",
                qualifiers={"product": ["kinase Y"], "locus_tag": ["G1_0002"]},
            ),
        ]
        path = tmp_path / "g1.gbk"
        SeqIO.write([record], path, "genbank")
        genome = load_genome(path)
        assert [feature.id for feature in genome.pegs] == ["g1|G1_0002"]
        assert genome.pegs[0].location == Location("c1", 7, 15, "+")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_genome(tmp_path / "missing.gbk")


class TestGenomeDirectory:
    def test_genome_files_sorted(self, make_genbank, tmp_path):
        directory = tmp_path / "genomes"
        for name in ("b.gbk", "a.gb"):
            make_genbank(name, {"c1": "ATGAAATAG"}, [], directory=directory)
        (directory / "notes.txt").write_text("not a genome\n")
        assert [path.split("/")[-1] for path in find_genome_files(directory)] == ["a.gb", "b.gbk"]
        assert [genome.id for genome in iter_genome_dir(directory)] == ["a", "b"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            find_genome_files(tmp_path / "missing")


def test_genome_of():
    assert genome_of("83333.1|peg.5") == "83333.1"
    assert genome_of("g1|G1_0001") == "g1"
