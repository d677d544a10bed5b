import logging
from io import StringIO

import pytest

from snipalign.align_reporting import TextMultiAlignReporter
from snipalign.config import GAP, AlignmentContext
from snipalign.feature_processing import FunctionMap
from snipalign.gto_alignment import align_gtos, collect_base_sequences
from snipalign.models import SequenceRecord

CONTEXT = AlignmentContext(kmer_size=3, max_dist=0.7, max_upstream=0)


@pytest.fixture
def base_file(make_genbank):
    return make_genbank(
        "g1.gbk",
        {"c1": "ATGAAATAG" + "ATGCCCGGGTAA"},
        [
            ("c1", 0, 9, 1, {"product": "dehydrogenase X", "locus_tag": "G1_1"}),
            ("c1", 9, 21, 1, {"product": "kinase Y", "locus_tag": "G1_2"}),
        ],
    )


def gene_file(make_genbank, genome_id, dna):
    return make_genbank(
        f"{genome_id}.gbk",
        {"c1": dna},
        [("c1", 0, len(dna), 1, {"product": "dehydrogenase X", "locus_tag": f"{genome_id.upper()}_1"})],
    )


class TestAlignGtos:
    """Function-based alignments of coding sequences"""

    def test_alignment_written(self, base_file, make_genbank, identity_aligner):
        others = [gene_file(make_genbank, "g2", "ATGAAGTAG"), gene_file(make_genbank, "g3", "ATGCAATAG")]
        output = StringIO()
        count = align_gtos(base_file, others, CONTEXT, identity_aligner, TextMultiAlignReporter(output))
        assert count == 1
        assert output.getvalue() == (
            "dehydrogenase X\n\n"
            "g1|G1_1\tc1_1+9\tATGAAATAG\n"
            "g2|G2_1\tc1_1+9\tATGAAGTAG\n"
            "g3|G3_1\tc1_1+9\tATGCAATAG\n\n"
        )

    def test_identical_sequences_not_aligned(self, base_file, make_genbank, identity_aligner):
        others = [gene_file(make_genbank, "g2", "ATGAAATAG"), gene_file(make_genbank, "g3", "ATGAAATAG")]
        output = StringIO()
        assert align_gtos(base_file, others, CONTEXT, identity_aligner, TextMultiAlignReporter(output)) == 0
        assert identity_aligner.calls == []

    def test_too_few_sequences(self, base_file, make_genbank, identity_aligner):
        others = [gene_file(make_genbank, "g2", "ATGAAGTAG"), gene_file(make_genbank, "g3", "CCCGGGCCC")]
        output = StringIO()
        assert align_gtos(base_file, others, CONTEXT, identity_aligner, TextMultiAlignReporter(output)) == 0

class FrontGapAligner:
    """Lines rows up at their ends, padding the shorter ones with leading gaps."""

    def align(self, records):
        width = max(len(record.dna) for record in records)
        return [
            SequenceRecord(r.id, r.comment, r.dna.upper().rjust(width, GAP))
            for r in records
        ]


class TestUpstreamCheck:
    """Leading gaps from a late start call in the gtos command"""

    @pytest.fixture
    def paths(self, make_genbank):
        base = make_genbank(
            "g1.gbk",
            {"c1": "ATGAAACCC"},
            [("c1", 0, 9, 1, {"product": "dehydrogenase X", "locus_tag": "G1_1"})],
        )
        # the start is called three bases after the ATG
        late = make_genbank(
            "g2.gbk",
            {"c1": "CCCATGAAACCCGGG"},
            [("c1", 6, 12, 1, {"product": "dehydrogenase X", "locus_tag": "G2_1"})],
        )
        other = gene_file(make_genbank, "g3", "ATGAAGCCC")
        return base, [late, other]

    def test_upstream_recaptured(self, paths, caplog):
        caplog.set_level(logging.INFO)
        base, others = paths
        output = StringIO()
        count = align_gtos(
            base, others, CONTEXT, FrontGapAligner(), TextMultiAlignReporter(output), upstream_check=True
        )
        assert count == 1
        assert output.getvalue() == (
            "dehydrogenase X\n\n"
            "g1|G1_1\tc1_1+9\tATGAAACCC\n"
            "g2|G2_1\tc1_4+9\tATGAAACCC\n"
            "g3|G3_1\tc1_1+9\tATGAAGCCC\n\n"
        )
        assert "1 upstream regions recaptured." in caplog.text

    def test_gaps_kept_without_check(self, paths, caplog):
        caplog.set_level(logging.INFO)
        base, others = paths
        output = StringIO()
        align_gtos(base, others, CONTEXT, FrontGapAligner(), TextMultiAlignReporter(output))
        assert "g2|G2_1\tc1_7+6\t---AAACCC\n" in output.getvalue()
        assert "upstream regions recaptured" not in caplog.text

def test_collect_base_sequences(make_genome):
    base = make_genome(
        "g1",
        "ATGAAATAG" + "ATGAAGTAG" + "CCCGGGCCC",
        [
            ("p1", "dehydrogenase X", 1, 9, "+", ""),
            ("p2", "dehydrogenase X", 10, 18, "+", ""),
            ("p3", "dehydrogenase X", 19, 27, "+", ""),
            ("p4", "hypothetical protein", 19, 27, "+", ""),
        ],
    )
    function_map = FunctionMap()
    sequence_map = collect_base_sequences(base, function_map, CONTEXT)
    assert list(sequence_map) == ["DehyX"]
    assert [record.id for record in sequence_map["DehyX"]] == ["g1|p1", "g1|p2"]
