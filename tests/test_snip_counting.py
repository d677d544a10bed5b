import pytest

from snipalign.snip_counting import count_snips, read_feature_data

FEATURE_DATA = (
    "g1\tBase\n"
    "g2\tMutant A\n"
    "g3\tMutant B\n"
    "//\n"
    "g1|p1\tAR1,op1\t  \t M\t  \n"
    "g1|p2\t\t  \tMD\t D\n"
    "g1|p3\tAR1\t  \t  \t  \n"
)


@pytest.fixture
def feature_file(tmp_path):
    path = tmp_path / "groups.snips.tbl"
    path.write_text(FEATURE_DATA)
    return path


class TestSnipCount:
    """Summaries of feature-data files"""

    def test_read(self, feature_file):
        data = read_feature_data(feature_file)
        assert data.genomes == [("g1", "Base"), ("g2", "Mutant A"), ("g3", "Mutant B")]
        assert data.features[0] == ("g1|p1", ["AR1", "op1"], ["  ", " M", "  "])
        assert data.features[1][1] == []

    def test_counts(self, feature_file):
        table = count_snips(read_feature_data(feature_file))
        assert table.columns.tolist() == [
            "genome_id",
            "genome_name",
            "upstream_M",
            "upstream_D",
            "instream_M",
            "instream_D",
            "changed",
        ]
        assert table.set_index("genome_id").loc["g2"].tolist() == ["Mutant A", 1, 0, 1, 1, 2]
        assert table.set_index("genome_id").loc["g3"].tolist() == ["Mutant B", 0, 0, 0, 1, 1]
        assert table.set_index("genome_id").loc["g1", "changed"] == 0

    def test_by_group(self, feature_file):
        table = count_snips(read_feature_data(feature_file), by_group=True)
        assert table["group"].tolist() == ["all"] * 3 + ["AR1"] * 3 + ["op1"] * 3
        ar1 = table[table["group"] == "AR1"].set_index("genome_id")
        assert ar1.loc["g2", "changed"] == 1
        assert ar1.loc["g3", "changed"] == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_feature_data(tmp_path / "missing.tbl")
