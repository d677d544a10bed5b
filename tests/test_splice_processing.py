from io import StringIO

import pandas as pd
import pytest

from snipalign.config import AlignmentContext
from snipalign.sequence_processing import read_fasta
from snipalign.splice_processing import MAP_FILE_NAME, match_regions, splice_contigs, splice_genomes

CONTEXT = AlignmentContext(kmer_size=3, max_dist=0.7, max_upstream=0)


@pytest.fixture
def reference(make_genome):
    return make_genome("ref", "GGGG" + "ATGAAATAG" + "TTTT", [("p1", "dehydrogenase X", 5, 13, "+", "")])


class TestSplice:
    """Replacing reference regions with their source counterparts"""

    def test_plus_strand(self, reference, make_genome):
        source = make_genome("src", "CC" + "ATGCAATAG" + "CC", [("p1", "dehydrogenase X", 3, 11, "+", "")])
        pairs, mapping = match_regions(source, reference, CONTEXT)
        assert [(ref.id, src.id) for ref, src in pairs] == [("ref|p1", "src|p1")]
        assert mapping.values.tolist() == [["src|p1", "ref|p1", "dehydrogenase X"]]
        (contig,) = splice_contigs(reference, pairs)
        assert contig.id == "c1"
        assert contig.dna == "GGGG" + "ATGCAATAG" + "TTTT"

    def test_minus_strand_source(self, reference, make_genome):
        source = make_genome("src", "CC" + "CTATTGCAT" + "CC", [("p1", "dehydrogenase X", 3, 11, "-", "")])
        pairs, _ = match_regions(source, reference, CONTEXT)
        (contig,) = splice_contigs(reference, pairs)
        assert contig.dna == "GGGG" + "CTATTGCAT" + "TTTT"

    def test_overlap_skipped(self, reference, make_genome):
        source = make_genome(
            "src",
            "ATGCAATAG" + "ATGAAGTAG",
            [("p1", "dehydrogenase X", 1, 9, "+", ""), ("p2", "dehydrogenase X", 10, 18, "+", "")],
        )
        pairs, _ = match_regions(source, reference, CONTEXT)
        assert len(pairs) == 2
        (contig,) = splice_contigs(reference, pairs)
        assert contig.dna == "GGGG" + "ATGCAATAG" + "TTTT"

    def test_unmatched_region(self, reference, make_genome):
        source = make_genome("src", "CCCGGGCCC", [("p1", "kinase Y", 1, 9, "+", "")])
        pairs, mapping = match_regions(source, reference, CONTEXT)
        assert pairs == []
        assert mapping.values.tolist() == [["src|p1", "", "kinase Y"]]


class TestSpliceGenomes:
    def test_fasta_and_map(self, make_genbank, tmp_path):
        reference = make_genbank(
            "ref.gbk", {"c1": "GGGG" + "ATGAAATAG" + "TTTT"}, [("c1", 4, 13, 1, {"product": "dehydrogenase X"})]
        )
        source = make_genbank(
            "src.gbk", {"s1": "CC" + "ATGCAATAG" + "CC"}, [("s1", 2, 11, 1, {"product": "dehydrogenase X"})]
        )
        work_dir = tmp_path / "work"
        output = StringIO()
        assert splice_genomes(source, reference, CONTEXT, work_dir, output) == 1
        output.seek(0)
        (record,) = read_fasta(output)
        assert (record.id, record.dna) == ("c1", "GGGGATGCAATAGTTTT")
        mapping = pd.read_csv(work_dir / MAP_FILE_NAME, sep="\t", dtype=str, keep_default_na=False)
        assert mapping.columns.tolist() == ["source_fid", "reference_fid", "function"]
        assert mapping["reference_fid"].tolist() == ["ref|peg.1"]

    def test_no_match(self, make_genbank, tmp_path):
        reference = make_genbank(
            "ref.gbk", {"c1": "GGGGATGAAATAGTTTT"}, [("c1", 4, 13, 1, {"product": "dehydrogenase X"})]
        )
        source = make_genbank("src.gbk", {"s1": "CCCGGGCCC"}, [("s1", 0, 9, 1, {"product": "kinase Y"})])
        with pytest.raises(ValueError):
            splice_genomes(source, reference, CONTEXT, tmp_path / "work", StringIO())
        assert (tmp_path / "work" / MAP_FILE_NAME).is_file()
