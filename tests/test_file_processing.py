import os

import pytest

from snipalign.file_processing import atomic_output, modify_first_line, open_output


class TestAtomicOutput:
    """Report files only appear once complete"""

    def test_success(self, tmp_path):
        path = tmp_path / "out" / "report.txt"
        with atomic_output(path) as handle:
            handle.write("done\n")
        assert path.read_text() == "done\n"
        assert os.listdir(path.parent) == ["report.txt"]

    def test_failure_leaves_nothing(self, tmp_path):
        path = tmp_path / "report.txt"
        with pytest.raises(RuntimeError):
            with atomic_output(path) as handle:
                handle.write("partial")
                raise RuntimeError("interrupted")
        assert os.listdir(tmp_path) == []

    def test_failure_keeps_old_file(self, tmp_path):
        path = tmp_path / "report.txt"
        path.write_text("old\n")
        with pytest.raises(RuntimeError):
            with atomic_output(path) as handle:
                handle.write("new")
                raise RuntimeError("interrupted")
        assert path.read_text() == "old\n"

    def test_binary(self, tmp_path):
        path = tmp_path / "report.bin"
        with open_output(path, binary=True) as handle:
            handle.write(b"\x00\x01")
        assert path.read_bytes() == b"\x00\x01"


def test_modify_first_line(tmp_path):
    source = tmp_path / "bad.gbk"
    target = tmp_path / "fixed.gbk"
    source.write_text("LOCUS       contig1 bp    DNA\nFEATURES\n")
    modify_first_line(source, target)
    assert target.read_text() == "LOCUS       contig1 0 bp    DNA\nFEATURES\n"
