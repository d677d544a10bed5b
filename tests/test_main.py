import pandas as pd
import pytest

from snipalign import main as main_module
from snipalign.main import create_parser, main


@pytest.fixture
def genome_dir(make_genbank, tmp_path):
    directory = tmp_path / "genomes"
    for genome_id, dna in (("g1", "ATGAAATAG"), ("g2", "ATGCAATAG")):
        make_genbank(
            f"{genome_id}.gbk",
            {"c1": dna},
            [("c1", 0, 9, 1, {"product": "dehydrogenase X", "locus_tag": f"{genome_id.upper()}_1"})],
            directory=directory,
        )
    return directory


class TestParser:
    def test_defaults(self):
        args = create_parser().parse_args(["genomes", "in", "base.gbk"])
        assert args.kmer == 15
        assert args.maxDist == 0.6
        assert args.upstream == 100
        assert args.format == "text"
        assert args.alt_ids == []

    def test_splice_upstream_default(self):
        args = create_parser().parse_args(["splice", "src.gbk", "ref.gbk"])
        assert args.upstream == 0

    def test_filters_case_insensitive(self):
        args = create_parser().parse_args(["diff", "base.gbk", "t1.gbk", "--filter", "nonphage"])
        assert args.filter == ["NONPHAGE"]


class TestMain:
    """Command-line runs"""

    def test_genomes(self, genome_dir, tmp_path, monkeypatch, identity_aligner):
        monkeypatch.setattr(main_module, "ClustalAligner", lambda *args: identity_aligner)
        output = tmp_path / "report.txt"
        group_output = tmp_path / "groups.tbl"
        main(
            [
                "genomes", str(genome_dir), str(genome_dir / "g1.gbk"),
                "-K", "3", "-m", "0.7", "-u", "0",
                "-o", str(output), "--groupOut", str(group_output),
                "--workDir", str(tmp_path / "work"),
            ]
        )
        assert output.read_text() == "function\tg1\tg2\ndehydrogenase X\tA\tC\n"
        assert group_output.read_text().endswith("//\ng1|G1_1\t\t  \t M\n")

    def test_snipcount(self, tmp_path):
        data = tmp_path / "groups.tbl"
        data.write_text("g1\tBase\ng2\tMutant\n//\ng1|p1\t\t  \tM \n")
        output = tmp_path / "counts.tbl"
        main(["snipcount", str(data), "-o", str(output)])
        table = pd.read_csv(output, sep="\t")
        assert table["upstream_M"].tolist() == [0, 1]

    def test_bad_kmer_size(self, tmp_path):
        with pytest.raises(SystemExit) as e:
            main(["gtos", "base.gbk", "other.gbk", "-K", "2", "-o", str(tmp_path / "out.txt")])
        assert e.value.code == 1
        assert not (tmp_path / "out.txt").exists()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SystemExit) as e:
            main(["genomes", str(tmp_path / "missing"), str(tmp_path / "base.gbk")])
        assert e.value.code == 1

    def test_major_report_needs_special(self, genome_dir, tmp_path):
        with pytest.raises(SystemExit) as e:
            main(
                [
                    "genomes", str(genome_dir), str(genome_dir / "g1.gbk"),
                    "--format", "majorprotein", "-o", str(tmp_path / "out.xlsx"),
                ]
            )
        assert e.value.code == 1
        assert not (tmp_path / "out.xlsx").exists()

    def test_custom_config_overrides(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("kmer: 2\n")
        with pytest.raises(SystemExit) as e:
            main(["gtos", "base.gbk", "other.gbk", "-cc", str(config)])
        assert e.value.code == 1

    def test_custom_config_unknown_key(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("bogus: 1\n")
        with pytest.raises(SystemExit) as e:
            main(["snipcount", "groups.tbl", "-cc", str(config)])
        assert e.value.code == 1

    @pytest.mark.parametrize("key", ["command", "func"])
    def test_custom_config_cannot_replace_command(self, tmp_path, key, caplog):
        config = tmp_path / "config.yaml"
        config.write_text(f"{key}: genomes\n")
        with pytest.raises(SystemExit) as e:
            main(["snipcount", "groups.tbl", "-cc", str(config)])
        assert e.value.code == 1
        assert f"Unknown option {key}" in caplog.text
