import dataclasses

import pytest

from snipalign.config import (
    KMER_SIZE,
    MAX_DIST,
    MAX_UPSTREAM,
    AlignmentContext,
    ParameterError,
    load_custom_config,
)


class TestAlignmentContext:
    """Run parameters are validated once, when the context is built"""

    def test_defaults(self):
        context = AlignmentContext()
        assert (context.kmer_size, context.max_dist, context.max_upstream) == (
            KMER_SIZE,
            MAX_DIST,
            MAX_UPSTREAM,
        )

    @pytest.mark.parametrize("kmer_size", [2, 101])
    def test_kmer_size_out_of_range(self, kmer_size):
        with pytest.raises(ParameterError):
            AlignmentContext(kmer_size=kmer_size)

    def test_max_dist_must_be_positive(self):
        with pytest.raises(ParameterError):
            AlignmentContext(max_dist=0.0)

    def test_negative_upstream(self):
        with pytest.raises(ParameterError):
            AlignmentContext(max_upstream=-1)

    def test_immutable(self):
        context = AlignmentContext()
        with pytest.raises(dataclasses.FrozenInstanceError):
            context.kmer_size = 20

    def test_parameter_error_is_value_error(self):
        assert issubclass(ParameterError, ValueError)


class TestCustomConfig:
    def test_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("maxDist: 0.5\nkmer: 12\n")
        assert load_custom_config(path) == {"maxDist": 0.5, "kmer": 12}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_custom_config(path) == {}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- maxDist\n- kmer\n")
        with pytest.raises(ParameterError):
            load_custom_config(path)
