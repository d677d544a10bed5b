"""
Snip reports for the `genomes` command.

Every reporter receives the registered genomes, then one alignment per base
feature, and writes the snips found in a text, HTML or spreadsheet format.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from typing import IO

import pandas as pd

from snipalign.config import CELL_WIDTH, GAP, ParameterError
from snipalign.gbk_processing import Feature, Genome
from snipalign.models import GenomeLabel, Location, SequenceRecord, SnipType
from snipalign.region_processing import ExtendedRegion, RegionList
from snipalign.snip_processing import SnipColumn, compute_wild_set, iterate_snips

SORT_ORDERS = ("location", "changes")
"""Sort orders for the HTML sections"""

UNMODIFIED_FLAGS = "  "
"""Feature-data flags of a genome with no significant snip"""


@dataclass
class ReportParameters:
    """
    Options shared by the snip reporters.

    Attributes
    ----------
    cell_width : int
        Maximum characters per line in an HTML cell.
    sort : str
        Sort order for HTML sections, "location" or "changes".
    groups : dict of str to list of str
        Group memberships by base feature ID.
    special : set of str
        Genome IDs that must all change for a feature to enter a major-change report.
    """

    cell_width: int = CELL_WIDTH
    """Maximum HTML cell width"""
    sort: str = "changes"
    """HTML section sort order"""
    groups: dict = field(default_factory=dict)
    """Group memberships by feature ID"""
    special: set = field(default_factory=set)
    """Genomes of interest for major-change reports"""

    def __post_init__(self):
        if self.cell_width < 1:
            raise ParameterError("Cell width must be at least 1.")
        if self.sort not in SORT_ORDERS:
            raise ParameterError(
                f"Invalid sort order {self.sort}. Must be one of {', '.join(SORT_ORDERS)}."
            )

    def get_groups(self, fid: str) -> list[str] | None:
        return self.groups.get(fid)


class SnipReporter:
    """
    Base class for snip reports.

    Besides the report itself, a reporter can write a feature-data file that flags,
    for every base feature and displayed genome, upstream and instream changes:
    "M" for nucleotide changes and "D" for changes involving gaps.

    Parameters
    ----------
    output : file handle
        Report destination.
    parameters : ReportParameters
        Report options.
    """

    binary = False
    """True if the report must be written to a binary handle"""

    def __init__(self, output: IO, parameters: ReportParameters):
        self.output = output
        self.parameters = parameters
        self.genome_labels = []
        self.genome_names = {}
        self.feature_output = None
        self._unmodified = ""

    def setup_feature_output(self, handle: IO) -> None:
        self.feature_output = handle

    def register(self, genome: Genome) -> None:
        """Register a displayed genome. The first genome registered is the base."""
        self.genome_labels.append(GenomeLabel.from_genome(genome))
        self.genome_names[genome.id] = genome.name
        self.register_genome(genome)

    def register_genome(self, genome: Genome) -> None:
        pass

    @property
    def genome_ids(self) -> list[str]:
        return [label.id for label in self.genome_labels]

    def reorder(self, ordering: list[GenomeLabel]) -> None:
        """
        Reorder the displayed genomes.

        The base genome stays first. Registered genomes named in `ordering` follow in
        that order and take its labels; the rest keep their registration order.
        """

        base, *others = self.genome_labels
        remaining = {label.id: label for label in others}
        reordered = [base]
        for label in ordering:
            if label.id in remaining:
                reordered.append(label)
                del remaining[label.id]
        reordered.extend(remaining.values())
        self.genome_labels = reordered

    def initialize_output(self) -> None:
        """Finish genome registration and start the report."""
        self.open_report(self.genome_labels)
        self._unmodified = "\t".join([UNMODIFIED_FLAGS] * len(self.genome_labels))
        if self.feature_output is not None:
            for label in self.genome_labels:
                self.feature_output.write(f"{label.id}\t{self.get_genome_name(label.id)}\n")
            self.feature_output.write("//\n")

    def process_alignment(
        self, feature: Feature, regions: RegionList, alignment: list[SequenceRecord]
    ) -> None:
        """
        Report the snips of one alignment.

        Parameters
        ----------
        feature : Feature
            Base genome feature.
        regions : RegionList
            Aligned regions, base first.
        alignment : list of SequenceRecord
            Aligned rows.
        """

        self.open_alignment(feature.function, regions, feature)
        genome_ids = self.genome_ids
        wild_set = compute_wild_set(genome_ids[0], regions, genome_ids)
        flags = [UNMODIFIED_FLAGS] * len(genome_ids)
        count = 0
        for column in iterate_snips(regions, alignment, wild_set, genome_ids):
            self.process_snips(column)
            for i in range(1, column.rows):
                flags[i] = self._char_code(column, i, flags[i])
            count += 1
        logging.debug(f"{count} snips found in alignment for {feature.id}.")
        self._write_feature_data(feature.id, "\t".join(flags))
        self.close_alignment()

    def _char_code(self, column: SnipColumn, i: int, original: str) -> str:
        item = column.get_item(i)
        if item is None or not item.significant:
            return original
        kind = column.get_type(i)
        if kind is None or kind == SnipType.EDGE:
            return original
        position = 1 if item.offset + item.length > item.region.upstream_distance else 0
        if original[position] == "D":
            return original
        code = "D" if GAP in item.chars else "M"
        return original[:position] + code + original[position + 1 :]

    def _write_feature_data(self, fid: str, flags: str) -> None:
        if self.feature_output is None:
            return
        groups = list(self.parameters.get_groups(fid) or [])
        groups.extend(self.get_other_groups(fid) or [])
        self.feature_output.write(f"{fid}\t{','.join(groups)}\t{flags}\n")

    def write_feature_data(self, fid: str) -> None:
        """Write the feature-data line of a base feature that was not aligned."""
        self._write_feature_data(fid, self._unmodified)

    def get_genome_name(self, genome_id: str) -> str:
        return self.genome_names.get(genome_id, "")

    def get_other_groups(self, fid: str) -> list[str] | None:
        return None

    def open_report(self, genome_labels: list[GenomeLabel]) -> None:
        raise NotImplementedError

    def open_alignment(self, title: str, regions: RegionList, feature: Feature) -> None:
        raise NotImplementedError

    def process_snips(self, column: SnipColumn) -> None:
        raise NotImplementedError

    def close_alignment(self) -> None:
        raise NotImplementedError

    def close_report(self) -> None:
        raise NotImplementedError

    def finish_report(self) -> None:
        self.close_report()
        self.output.flush()


class TextSnipReporter(SnipReporter):
    """Tab-delimited report with one line per snip column."""

    def open_report(self, genome_labels):
        headers = "\t".join(label.header for label in genome_labels)
        self.output.write(f"function\t{headers}\n")

    def open_alignment(self, title, regions, feature):
        self.title = title

    def process_snips(self, column):
        snips = "\t".join(column.get_snip(i) for i in range(column.rows))
        self.output.write(f"{self.title}\t{snips}\n")

    def close_alignment(self):
        pass

    def close_report(self):
        pass


DIFF_COLOR = "#80BAFF"
"""Background for protein-modifying differences"""
INVISIBLE_COLOR = "#80FFBA"
"""Background for synonymous differences"""
UPSTREAM_COLOR = "#FFBA80"
"""Background for upstream differences"""
GAP_COLOR = "#FFFF00"
"""Background for gap differences"""
EDGE_COLOR = "#FFBABA"
"""Background for differences off the edge of a contig"""

TYPE_COLORS = {
    SnipType.MODIFYING: DIFF_COLOR,
    SnipType.INVISIBLE: INVISIBLE_COLOR,
    SnipType.UPSTREAM: UPSTREAM_COLOR,
    SnipType.GAP: GAP_COLOR,
    SnipType.EDGE: EDGE_COLOR,
}

BREAK = "<br />"


@dataclass
class TableEntry:
    """One alignment section of the HTML report."""

    title: str
    location: Location
    groups: list[str] = field(default_factory=list)
    rows: list[str] = field(default_factory=list)
    diff_count: int = 0

    def location_key(self):
        return (self.location, self.title)

    def changes_key(self):
        return (-self.diff_count, self.location, self.title)

    def output(self, header: str) -> str:
        parts = [f"<h2>{html.escape(self.title)}</h2>"]
        if self.groups:
            parts.append(f"<ul><li>{html.escape(', '.join(self.groups))}</li></ul>")
        parts.append("<table>")
        parts.append(header)
        parts.extend(self.rows)
        parts.append("</table>")
        return "<div>\n" + "\n".join(parts) + "\n</div>"


class HtmlSnipReporter(SnipReporter):
    """
    HTML report with one table per alignment.

    Each differing letter is coloured by its class, protein-modifying letters carry an
    "old => new" tooltip, and cells are broken every `cell_width` letters. Sections are
    sorted by base location or by the number of genomes with visible differences.
    """

    def __init__(self, output, parameters):
        super().__init__(output, parameters)
        self.cell_width = parameters.cell_width
        self.sections = []
        self.table = None
        self.regions = None
        self.diffs = set()
        self.header = ""

    def open_report(self, genome_labels):
        cells = ["<th>Location</th>"]
        for label in genome_labels:
            tooltip = html.escape(label.tooltip or self.get_genome_name(label.id), quote=True)
            cells.append(f'<th title="{tooltip}">{html.escape(label.header or label.id)}</th>')
        self.header = "<tr>" + "".join(cells) + "</tr>"

    def open_alignment(self, title, regions, feature):
        self.table = TableEntry(
            title, feature.location, list(self.parameters.get_groups(feature.id) or [])
        )
        self.regions = regions
        self.diffs = set()

    def _break_up(self, letters: list[str]) -> str:
        lines = [
            "".join(letters[i : i + self.cell_width])
            for i in range(0, len(letters), self.cell_width)
        ]
        return BREAK.join(lines)

    @staticmethod
    def _marked_letter(char: str, kind: SnipType, tooltip: str = "") -> str:
        title = f' title="{html.escape(tooltip, quote=True)}"' if tooltip else ""
        return f'<mark style="background-color: {TYPE_COLORS[kind]}"{title}>{char}</mark>'

    def process_snips(self, column):
        diff_count = 0
        base_snip = column.get_snip(0)
        cells = [f"<td>{self._break_up(list(base_snip))}</td>"]
        for i in range(1, column.rows):
            if not column.is_significant(i):
                cells.append("<td>&nbsp;</td>")
                continue
            letters = []
            for char, (kind, change) in zip(column.get_snip(i), column.classify(i)):
                if kind is None:
                    letters.append(char)
                    continue
                letters.append(self._marked_letter(char, kind, change))
                if kind != SnipType.INVISIBLE:
                    diff_count += 1
                    self.diffs.add(i)
            cells.append(f"<td>{self._break_up(letters)}</td>")
        if diff_count > 0:
            location = column.get_location(0)
            location_string = html.escape(str(location))
            if location.overlaps(self.table.location):
                label = f"<b>{location_string}</b>"
            else:
                label = f"<i>{location_string}</i>"
            self.table.rows.append(f"<tr><td>{label}</td>{''.join(cells)}</tr>")

    def close_alignment(self):
        if self.table.rows:
            self.table.diff_count = len(self.diffs)
            self.sections.append(self.table)

    def close_report(self):
        if self.parameters.sort == "location":
            self.sections.sort(key=TableEntry.location_key)
        else:
            self.sections.sort(key=TableEntry.changes_key)
        legend = " ".join(
            [
                "Color scheme:",
                f'<span style="background-color: {UPSTREAM_COLOR}">Upstream difference.</span>',
                f'<span style="background-color: {GAP_COLOR}">Gap-related difference.</span>',
                f'<span style="background-color: {INVISIBLE_COLOR}">Invisible difference.</span>',
                f'<span style="background-color: {DIFF_COLOR}">Protein-modifying difference.</span>',
                f'<span style="background-color: {EDGE_COLOR}">Contig edge difference.</span>',
            ]
        )
        text = [
            "<!DOCTYPE html>",
            "<html>",
            "<head><title>Snip Alignments</title>",
            "<style>",
            "td { font-family: monospace; vertical-align: top; padding: 0 4px; }",
            "th { text-align: left; }",
            "</style>",
            "</head>",
            "<body>",
            "<h1>Snip Alignments</h1>",
            f"<p>{legend}</p>",
            "\n".join(section.output(self.header) for section in self.sections),
            "</body></html>",
        ]
        self.output.write("\n".join(text) + "\n")


GENE_NAME = re.compile(r"[a-z]{3}(?:[A-Z])?")
"""Pattern of a conventional bacterial gene name"""

MAJOR_COLUMNS = [
    "fig_id",
    "start_loc",
    "stop_loc",
    "strand",
    "gene_name",
    "length",
    "function",
    "groups",
    "all",
]


def is_significant(seq1: str, seq2: str) -> bool:
    """Return True unless one sequence is a suffix of the other."""
    return not seq1.endswith(seq2) and not seq2.endswith(seq1)


def gene_name(feature: Feature) -> str:
    """Return the last alias of a feature that looks like a gene name."""
    name = ""
    for alias in feature.aliases:
        if GENE_NAME.fullmatch(alias):
            name = alias
    return name


class MajorSnipReporter(SnipReporter):
    """
    Spreadsheet of base features that changed significantly in every special genome.

    The `all` column is "X" when every registered non-base genome changed.
    Subclasses decide what a significant change is.
    """

    binary = True

    def __init__(self, output, parameters):
        super().__init__(output, parameters)
        if not parameters.special:
            raise ParameterError("Major-change reports require a list of special genomes.")
        self.special = set(parameters.special)
        self.base_id = None
        self.all = set()
        self.changed = set()
        self.feature = None
        self.rows = []

    def register_genome(self, genome):
        if self.base_id is None:
            self.base_id = genome.id
        else:
            self.all.add(genome.id)

    def open_report(self, genome_labels):
        pass

    def test_regions(self, region1: ExtendedRegion, region2: ExtendedRegion) -> bool:
        raise NotImplementedError

    def open_alignment(self, title, regions, feature):
        self.changed = set()
        self.feature = feature
        base_region = regions.get_region(feature.id)
        for region in regions:
            if region is not base_region and self.test_regions(base_region, region):
                self.changed.add(region.genome_id)

    def process_snips(self, column):
        pass

    def close_alignment(self):
        if not self.special <= self.changed:
            return
        feature = self.feature
        location = feature.location
        self.rows.append(
            {
                "fig_id": feature.id,
                "start_loc": location.begin,
                "stop_loc": location.end,
                "strand": location.strand,
                "gene_name": gene_name(feature),
                "length": location.length,
                "function": feature.function,
                "groups": " | ".join(self.parameters.get_groups(feature.id) or []),
                "all": "X" if self.all <= self.changed else "",
            }
        )

    def close_report(self):
        table = pd.DataFrame(self.rows, columns=MAJOR_COLUMNS)
        table.to_excel(self.output, sheet_name="Changes", index=False, engine="openpyxl")
        logging.info(f"{len(table)} features written to the major-change report.")


class MajorProteinReporter(MajorSnipReporter):
    def test_regions(self, region1, region2):
        return is_significant(region1.protein, region2.protein)


class MajorUpstreamReporter(MajorSnipReporter):
    def test_regions(self, region1, region2):
        return is_significant(region1.upstream_dna, region2.upstream_dna)


REPORT_FORMATS = {
    "text": TextSnipReporter,
    "html": HtmlSnipReporter,
    "majorprotein": MajorProteinReporter,
    "majorupstream": MajorUpstreamReporter,
}
"""Snip reporters by format name"""


def create_snip_reporter(
    report_format: str, output: IO, parameters: ReportParameters
) -> SnipReporter:
    try:
        reporter_class = REPORT_FORMATS[report_format]
    except KeyError:
        raise ParameterError(
            f"Invalid report format {report_format}. Must be one of {', '.join(REPORT_FORMATS)}."
        ) from None
    return reporter_class(output, parameters)
