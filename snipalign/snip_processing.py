"""
Extraction of snips from a multiple alignment of extended regions.

A snip column is a maximal run of alignment columns in which at least one
non-wild row differs from the base row. Each column holds one item per
displayed genome, with the characters of the run, the ungapped offset of the
run in the region and whether the row differs from every wild-type row.
"""

from dataclasses import dataclass
from typing import Iterator

from Bio.Seq import Seq

from snipalign.config import GAP
from snipalign.gbk_processing import genome_of
from snipalign.models import SNIP_TYPE_PRECEDENCE, Location, SequenceRecord, SnipType
from snipalign.region_processing import ExtendedRegion

UPSTREAM_AA = "upstream"
"""Protein-map entry for positions before the start codon"""

GENETIC_CODE = 11
"""Translation table for protein maps"""


@dataclass
class SnipItem:
    """
    The portion of one alignment row inside a snip column.

    Attributes
    ----------
    region : ExtendedRegion
        Region aligned in this row.
    chars : str
        Row characters inside the column, gaps included.
    offset : int
        Ungapped offset into the region DNA of the first character.
    significant : bool
        True if the row differs from every wild-type row somewhere in the column.
    """

    region: ExtendedRegion
    """Aligned region"""
    chars: str
    """Row characters, gaps included"""
    offset: int
    """Ungapped offset of the first character"""
    significant: bool = False
    """True if the characters differ from all wild rows"""

    @property
    def fid(self) -> str:
        return self.region.id

    @property
    def length(self) -> int:
        """Number of real (non-gap) characters."""
        return len(self.chars) - self.chars.count(GAP)

    @property
    def location(self) -> Location:
        """Genomic location of the characters; a gap-only item gets a one-position location."""
        return self.region.full_location.sub_location(self.offset, max(self.length, 1))

    def protein_map(self) -> list[str]:
        """
        Map each character to the amino acid of the codon containing it.

        Returns
        -------
        list of str
            `UPSTREAM_AA` for positions before the start codon, the gap character for
            gaps, "?" for positions in an incomplete codon, otherwise a one-letter amino acid.
        """

        region = self.region
        upstream = region.upstream_distance
        result = []
        offset = self.offset
        for char in self.chars:
            if char == GAP:
                result.append(GAP)
                continue
            if offset < upstream:
                result.append(UPSTREAM_AA)
            else:
                codon_start = upstream + (offset - upstream) // 3 * 3
                codon = region.dna[codon_start : codon_start + 3]
                if len(codon) < 3:
                    result.append("?")
                else:
                    result.append(str(Seq(codon).translate(table=GENETIC_CODE)))
            offset += 1
        return result


def classify_positions(
    base: SnipItem, item: SnipItem
) -> list[tuple[SnipType | None, str]]:
    """
    Classify each character of a row against the base row.

    Parameters
    ----------
    base : SnipItem
        Base row item of the column.
    item : SnipItem
        Row item to classify.

    Returns
    -------
    list of (SnipType or None, str)
        One entry per character. The type is None where the row matches the base.
        The string is "old => new" for protein-modifying positions, else empty.
    """

    base_aa = base.protein_map()
    item_aa = item.protein_map()
    result = []
    offset = item.offset
    for p, (char, base_char) in enumerate(zip(item.chars, base.chars)):
        if char == base_char:
            result.append((None, ""))
        elif char == GAP or base_char == GAP:
            if char == GAP and item.region.is_virtual(offset):
                result.append((SnipType.EDGE, ""))
            else:
                result.append((SnipType.GAP, ""))
        elif base_aa[p] == UPSTREAM_AA:
            result.append((SnipType.UPSTREAM, ""))
        elif base_aa[p] == item_aa[p]:
            result.append((SnipType.INVISIBLE, ""))
        else:
            result.append((SnipType.MODIFYING, f"{base_aa[p]} => {item_aa[p]}"))
        if char != GAP:
            offset += 1
    return result


def snip_type(types: list[SnipType | None]) -> SnipType | None:
    """Return the deciding class of a set of position classes."""
    found = set(types)
    return next((kind for kind in SNIP_TYPE_PRECEDENCE if kind in found), None)


@dataclass
class SnipColumn:
    """
    One run of differing alignment columns.

    Attributes
    ----------
    start : int
        Alignment column where the run starts.
    width : int
        Number of alignment columns in the run.
    items : list of SnipItem or None
        One item per displayed genome, base first; None where the genome has no region
        in the alignment.
    """

    start: int
    """First alignment column"""
    width: int
    """Number of alignment columns"""
    items: list
    """Items for the displayed genomes, base first"""

    @property
    def rows(self) -> int:
        return len(self.items)

    def get_item(self, i: int) -> SnipItem | None:
        return self.items[i]

    def get_snip(self, i: int) -> str:
        item = self.items[i]
        return item.chars if item is not None else ""

    def get_fid(self, i: int) -> str | None:
        item = self.items[i]
        return item.fid if item is not None else None

    def get_offset(self, i: int) -> int:
        return self.items[i].offset

    def is_significant(self, i: int) -> bool:
        item = self.items[i]
        return item is not None and item.significant

    def get_location(self, i: int) -> Location:
        return self.items[i].location

    def classify(self, i: int) -> list[tuple[SnipType | None, str]]:
        return classify_positions(self.items[0], self.items[i])

    def get_type(self, i: int) -> SnipType | None:
        """Return the class of row `i`, or None if it does not differ from the base."""
        if i == 0 or self.items[i] is None:
            return None
        return snip_type([kind for kind, _ in self.classify(i)])


def compute_wild_set(
    base_genome_id: str, regions: list[ExtendedRegion], genome_ids: list[str]
) -> set[str]:
    """Return the wild-type genomes of an alignment: the base plus every genome not displayed."""
    wild_set = {base_genome_id}
    wild_set.update(
        genome_of(region.id)
        for region in regions
        if genome_of(region.id) not in genome_ids
    )
    return wild_set


def iterate_snips(
    regions: list[ExtendedRegion],
    alignment: list[SequenceRecord],
    wild_set: set[str],
    genome_ids: list[str],
) -> Iterator[SnipColumn]:
    """
    Walk an alignment from left to right and yield its significant snip columns.

    Parameters
    ----------
    regions : list of ExtendedRegion
        Aligned regions; the first one is the base.
    alignment : list of SequenceRecord
        Aligned rows, labelled by region feature ID.
    wild_set : set of str
        IDs of the wild-type genomes.
    genome_ids : list of str
        Displayed genome IDs, base first. The first region of each genome is displayed.

    Yields
    ------
    SnipColumn
        Each run in which at least one displayed row differs from all the wild rows.

    Raises
    ------
    ValueError
        If the rows differ in length or a row does not belong to any region.
    """

    region_map = {region.id: region for region in regions}
    rows = []
    for record in alignment:
        region = region_map.get(record.id)
        if region is None:
            raise ValueError(f"Aligned sequence {record.id} does not match any region.")
        rows.append((region, record.dna.upper()))
    if not rows:
        return
    width = len(rows[0][1])
    if any(len(seq) != width for _, seq in rows):
        raise ValueError("Aligned sequences are not all the same length.")

    base_index = next(
        (i for i, (region, _) in enumerate(rows) if region.id == regions[0].id), 0
    )
    base_seq = rows[base_index][1]
    wild_rows = [i for i, (region, _) in enumerate(rows) if genome_of(region.id) in wild_set]
    test_rows = [
        i for i in range(len(rows)) if i != base_index and i not in wild_rows
    ]
    display_rows = []
    for genome_id in genome_ids:
        display_rows.append(
            next(
                (i for i, (region, _) in enumerate(rows) if genome_of(region.id) == genome_id),
                None,
            )
        )
    if display_rows:
        display_rows[0] = base_index

    offsets = [0] * len(rows)
    col = 0
    while col < width:
        if not any(rows[i][1][col] != base_seq[col] for i in test_rows):
            for i, (_, seq) in enumerate(rows):
                if seq[col] != GAP:
                    offsets[i] += 1
            col += 1
            continue
        start = col
        while col < width and any(rows[i][1][col] != base_seq[col] for i in test_rows):
            col += 1
        wild_chars = [{rows[i][1][p] for i in wild_rows} for p in range(start, col)]
        items = []
        for i in display_rows:
            if i is None:
                items.append(None)
                continue
            region, seq = rows[i]
            chars = seq[start:col]
            significant = i not in wild_rows and any(
                char not in wild_chars[p] for p, char in enumerate(chars)
            )
            items.append(SnipItem(region, chars, offsets[i], significant))
        for i, (_, seq) in enumerate(rows):
            offsets[i] += col - start - seq[start:col].count(GAP)
        if any(item is not None and item.significant for item in items):
            yield SnipColumn(start, col - start, items)
