import pytest

from snipalign.config import ParameterError
from snipalign.feature_processing import (
    FunctionMap,
    ListFilter,
    check_filters,
    create_filters,
    is_hypothetical,
    non_phage_filter,
    normalize_function,
)
from snipalign.gbk_processing import Feature
from snipalign.models import Location


def make_feature(fid, function):
    return Feature(fid, function, Location("c1", 1, 9, "+"), genome_id=fid.split("|")[0])


class TestFunctionMap:
    """Function normalization and stable function IDs"""

    def test_normalize_function(self):
        assert normalize_function("Dehydrogenase X (EC 1.1.1.1) # comment") == "dehydrogenase x"
        assert normalize_function("dehydrogenase   X") == "dehydrogenase x"

    def test_variants_share_an_id(self):
        function_map = FunctionMap()
        fun_id = function_map.find_or_insert("Dehydrogenase X (EC 1.1.1.1)")
        assert function_map.find_or_insert("dehydrogenase x") == fun_id
        assert function_map.get_by_name("DEHYDROGENASE X") == fun_id
        assert function_map.get_name(fun_id) == "Dehydrogenase X (EC 1.1.1.1)"
        assert len(function_map) == 1

    def test_colliding_prefixes(self):
        function_map = FunctionMap()
        assert function_map.find_or_insert("Dehydrogenase X") == "DehyX"
        assert function_map.find_or_insert("Dehydrogenation X") == "DehyX2"

    def test_unknown_function(self):
        function_map = FunctionMap()
        assert function_map.get_by_name("kinase Y") is None
        assert "kinase Y" not in function_map

    @pytest.mark.parametrize(
        "function, expected",
        [
            ("hypothetical protein", True),
            ("Hypothetical protein", True),
            ("", True),
            (None, True),
            ("kinase Y", False),
        ],
    )
    def test_is_hypothetical(self, function, expected):
        assert is_hypothetical(function) == expected


class TestFilters:
    def test_non_phage(self):
        assert non_phage_filter(make_feature("g1|p1", "kinase Y"))
        assert not non_phage_filter(make_feature("g1|p2", "Phage tail protein"))

    def test_list_filter(self):
        list_filter = ListFilter({"g1|p1"})
        assert list_filter(make_feature("g1|p1", "kinase Y"))
        assert not list_filter(make_feature("g1|p2", "kinase Y"))

    def test_create_filters_from_file(self, tmp_path):
        fid_file = tmp_path / "fids.tbl"
        fid_file.write_text("fid\tnote\ng1|p1\tkeep\ng1|p3\tkeep\n")
        filters = create_filters(["nonphage", "LIST"], fid_file)
        assert len(filters) == 2
        assert check_filters(filters, make_feature("g1|p1", "kinase Y"))
        assert not check_filters(filters, make_feature("g1|p2", "kinase Y"))
        assert not check_filters(filters, make_feature("g1|p3", "phage integrase"))

    def test_no_filters_accept_everything(self):
        assert check_filters([], make_feature("g1|p1", "phage integrase"))

    def test_list_without_file(self):
        with pytest.raises(ParameterError):
            create_filters(["LIST"])

    def test_unknown_filter(self):
        with pytest.raises(ParameterError):
            create_filters(["SOMETIMES"])
