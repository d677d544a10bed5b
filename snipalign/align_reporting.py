"""
Whole-alignment reports for the `gtos` command.
"""

import html
from collections import Counter
from typing import IO

from snipalign.config import GAP, ParameterError
from snipalign.gbk_processing import Genome, genome_of
from snipalign.models import Location, SequenceRecord
from snipalign.upstream_processing import fill_terminal_indels

MIN_INDEL = GAP * 20
"""Shortest gap run reported by the indel report"""


class MultiAlignReporter:
    """
    Base class for whole-alignment reports.

    Parameters
    ----------
    output : file handle
        Report destination.
    """

    def __init__(self, output: IO):
        self.output = output

    def println(self, line: str = "") -> None:
        self.output.write(line + "\n")

    def open_report(self, genome: Genome, alt_bases: list[str]) -> None:
        pass

    def register_genome(self, genome: Genome) -> None:
        pass

    def write_alignment(
        self, fid: str, title: str, alignment: list[SequenceRecord]
    ) -> None:
        raise NotImplementedError

    def close_report(self) -> None:
        pass

    def show_sequence(self, record: SequenceRecord) -> None:
        self.println(f"{record.id}\t{record.comment}\t{record.dna}")


class TextMultiAlignReporter(MultiAlignReporter):
    """Title followed by one `label comment sequence` line per row."""

    def write_alignment(self, fid, title, alignment):
        self.println(title)
        self.println()
        for record in alignment:
            self.show_sequence(record)
        self.println()


class HtmlMultiAlignReporter(MultiAlignReporter):
    """One table per alignment, with letters that differ from the column consensus highlighted."""

    def open_report(self, genome, alt_bases):
        self.println("<!DOCTYPE html>")
        self.println("<html>")
        self.println("<head><title>Alignments</title>")
        self.println(
            "<style>td { font-family: monospace; } "
            "mark { background-color: #FFBA80; }</style></head>"
        )
        self.println("<body>")

    def write_alignment(self, fid, title, alignment):
        width = len(alignment[0].dna) if alignment else 0
        consensus = [
            Counter(record.dna[p] for record in alignment).most_common(1)[0][0]
            for p in range(width)
        ]
        rows = [f"<h2>{html.escape(title)}</h2>", "<table>"]
        for record in alignment:
            letters = "".join(
                char if char == consensus[p] else f"<mark>{char}</mark>"
                for p, char in enumerate(record.dna)
            )
            rows.append(
                f"<tr><td>{html.escape(record.id)}</td>"
                f"<td>{html.escape(record.comment)}</td><td>{letters}</td></tr>"
            )
        rows.append("</table>")
        self.println("\n".join(rows))

    def close_report(self):
        self.println("</body></html>")


class SnipMultiAlignReporter(MultiAlignReporter):
    """
    One line per run of positions in which a non-base row matches none of the base rows.

    Columns are `function, peg, snip, original, location`, where `original` is the
    first base genome's text for the same positions.
    """

    def open_report(self, genome, alt_bases):
        self.base_id = genome.id
        self.base_genome_ids = {genome.id, *alt_bases}
        self.println("function\tpeg\tsnip\toriginal\tlocation")

    def write_alignment(self, fid, title, alignment):
        base_sequence = None
        bases = []
        others = []
        for record in alignment:
            genome_id = genome_of(record.id)
            if genome_id not in self.base_genome_ids:
                others.append(record)
            else:
                bases.append(record.dna)
                if genome_id == self.base_id and base_sequence is None:
                    base_sequence = record.dna
        if base_sequence is None:
            return
        width = len(base_sequence)

        def difference(char: str, p: int) -> bool:
            return all(base[p] != char for base in bases)

        for record in others:
            sequence = record.dna
            location = Location.from_string(record.comment)
            offset = 0
            p = 0
            while p < width:
                if not difference(sequence[p], p):
                    if sequence[p] != GAP:
                        offset += 1
                    p += 1
                    continue
                start, offset_in = p, offset
                while p < width and difference(sequence[p], p):
                    if sequence[p] != GAP:
                        offset += 1
                    p += 1
                if offset > offset_in:
                    location_string = str(location.sub_location(offset_in, offset - offset_in))
                else:
                    location_string = f"{location.contig}{location.strand}{location.begin}"
                self.println(
                    f"{title}\t{record.id}\t{sequence[start:p]}\t"
                    f"{base_sequence[start:p]}\t{location_string}"
                )


class IndelMultiAlignReporter(MultiAlignReporter):
    """
    Alignments with a long gap that separates the non-base genomes from the base.

    An alignment is shown when the base has a gap run of at least 20 and some other
    row does not, or when the base has none and some other row does. Alignments with
    two rows from one genome are skipped. Terminal gaps are filled with the flanking
    genome DNA in lower case.
    """

    def __init__(self, output):
        super().__init__(output)
        self.genomes = {}

    def open_report(self, genome, alt_bases):
        self.base_id = genome.id
        self.alt_ids = set(alt_bases)
        self.genomes[genome.id] = genome

    def register_genome(self, genome):
        self.genomes[genome.id] = genome

    def write_alignment(self, fid, title, alignment):
        base = None
        aligned = []
        indel_base = False
        indel_count = 0
        dups = False
        found = set()
        for record in alignment:
            genome_id = genome_of(record.id)
            if genome_id == self.base_id:
                if base is not None:
                    dups = True
                    continue
                base = SequenceRecord(record.id, record.comment, record.dna)
                indel_base = MIN_INDEL in base.dna
                fill_terminal_indels(base, self.genomes[genome_id])
            elif genome_id not in self.alt_ids:
                if genome_id in found:
                    dups = True
                    continue
                row = SequenceRecord(record.id, record.comment, record.dna)
                if MIN_INDEL in row.dna:
                    indel_count += 1
                found.add(genome_id)
                fill_terminal_indels(row, self.genomes[genome_id])
                aligned.append(row)
        if dups or base is None:
            return
        if (indel_base and indel_count < len(aligned)) or (not indel_base and indel_count > 0):
            self.println(title)
            self.println()
            self.show_sequence(base)
            for row in aligned:
                self.show_sequence(row)
            self.println()


ALIGN_FORMATS = {
    "text": TextMultiAlignReporter,
    "html": HtmlMultiAlignReporter,
    "snips": SnipMultiAlignReporter,
    "indels": IndelMultiAlignReporter,
}
"""Whole-alignment reporters by format name"""


def create_align_reporter(report_format: str, output: IO) -> MultiAlignReporter:
    if report_format not in ALIGN_FORMATS:
        raise ParameterError(
            f"Invalid report format {report_format}. Must be one of {', '.join(ALIGN_FORMATS)}."
        )
    return ALIGN_FORMATS[report_format](output)
