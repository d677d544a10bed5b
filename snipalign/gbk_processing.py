"""
Module to load genomes and their protein-coding features from GenBank (gbk) files.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from snipalign.config import HYPOTHETICAL
from snipalign.file_processing import modify_first_line
from snipalign.models import Location

GBK_EXTENSIONS = (".gb", ".gbk", ".gbff", ".genbank")
"""File extensions recognized as GenBank genomes in a genome directory"""

ALIAS_QUALIFIERS = ("gene", "gene_synonym", "locus_tag", "old_locus_tag")
"""Feature qualifiers that contribute aliases"""


@dataclass
class Feature:
    """
    A protein-coding feature of a genome.

    Attributes
    ----------
    id : str
        Feature ID, `<genome id>|<locus tag>`.
    function : str
        Assigned function (the `product` qualifier).
    location : Location
        Coding location.
    protein : str
        Protein translation, without the terminal stop.
    aliases : list of str
        Gene names, locus tags and synonyms.
    genome_id : str
        ID of the parent genome.
    """

    id: str
    """Feature ID"""
    function: str
    """Assigned function"""
    location: Location
    """Coding location"""
    protein: str = ""
    """Protein translation"""
    aliases: list[str] = field(default_factory=list)
    """Alternate names"""
    genome_id: str = ""
    """ID of the parent genome"""


def genome_of(fid: str) -> str:
    """Return the genome ID portion of a feature ID."""
    return fid.rsplit("|", 1)[0]


class Genome:
    """
    A genome: named contigs plus the protein-coding features found on them.

    Parameters
    ----------
    id : str
        Genome ID.
    name : str
        Genome name.
    contigs : dict of str to Seq or str
        Contig sequences keyed by contig ID.
    features : list of Feature
        Protein-coding features, in file order.
    """

    def __init__(
        self,
        id: str,
        name: str,
        contigs: dict[str, Seq | str],
        features: list[Feature],
    ):
        self.id = id
        self.name = name
        self.contigs = contigs
        self.features = features
        self._feature_index = {feature.id: feature for feature in features}

    def __str__(self) -> str:
        return f"{self.id} ({self.name})"

    @property
    def pegs(self) -> list[Feature]:
        return self.features

    def get_feature(self, fid: str) -> Feature | None:
        return self._feature_index.get(fid)

    def contig_length(self, contig_id: str) -> int:
        return len(self.contigs[contig_id])

    def get_dna(self, location: Location) -> str:
        """Return the DNA at a location, clipped to the contig."""
        return location.extract(self.contigs[location.contig])


def read_gbk_records(path_to_gbk: str | os.PathLike) -> list[SeqRecord]:
    """
    Read every record of a GenBank file.

    Parameters
    ----------
    path_to_gbk : str or os.PathLike
        Path to the GenBank file.

    Returns
    -------
    list of SeqRecord

    Notes
    -----
    If the file fails to parse, the first line is repaired with `modify_first_line`
    (prokka writes LOCUS lines biopython rejects) in a temporary copy, which is parsed instead.
    """

    try:
        with open(path_to_gbk) as handle:
            return list(SeqIO.parse(handle, format="gb"))
    except ValueError:
        logging.info("Trying to fix possible prokka LOCUS input error...")

    with tempfile.TemporaryDirectory() as temp_dir:
        fixed_path = os.path.join(temp_dir, os.path.basename(path_to_gbk))
        modify_first_line(path_to_gbk, fixed_path)
        with open(fixed_path) as handle:
            return list(SeqIO.parse(handle, format="gb"))


def _translate(dna: str, table: int) -> str:
    dna = dna[: len(dna) - len(dna) % 3]
    return str(Seq(dna).translate(table=table)).rstrip("*")


def load_genome(path_to_gbk: str | os.PathLike) -> Genome:
    """
    Load a genome from a GenBank file.

    Parameters
    ----------
    path_to_gbk : str or os.PathLike
        Path to the GenBank file. The file stem becomes the genome ID.

    Returns
    -------
    Genome
        The genome, with one feature per single-part CDS annotation. Multi-part (joined)
        CDS locations cannot be represented by `Location` and are skipped.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """

    if not os.path.isfile(path_to_gbk):
        raise FileNotFoundError(
            f"Genome file {path_to_gbk} not found or unreadable."
        )

    genome_id = Path(path_to_gbk).stem
    records = read_gbk_records(path_to_gbk)
    if records:
        first = records[0]
        name = first.annotations.get("organism") or first.description or genome_id
    else:
        name = genome_id

    contigs = {}
    features = []
    peg_num = 0
    for record in records:
        contigs[record.id] = record.seq
        for seq_feature in record.features:
            if seq_feature.type != "CDS":
                continue
            peg_num += 1
            if len(seq_feature.location.parts) > 1:
                logging.debug(
                    f"Multi-part CDS {seq_feature.location} in {record.id} skipped."
                )
                continue
            qualifiers = seq_feature.qualifiers
            strand = "-" if seq_feature.location.strand == -1 else "+"
            location = Location(
                record.id,
                int(seq_feature.location.start) + 1,
                int(seq_feature.location.end),
                strand,
            )
            locus = qualifiers.get("locus_tag", [f"peg.{peg_num}"])[0]
            protein = qualifiers.get("translation", [""])[0]
            if not protein:
                table = int(qualifiers.get("transl_table", [11])[0])
                protein = _translate(location.extract(record.seq), table)
            aliases = [
                alias
                for qualifier in ALIAS_QUALIFIERS
                for alias in qualifiers.get(qualifier, [])
            ]
            features.append(
                Feature(
                    id=f"{genome_id}|{locus}",
                    function=qualifiers.get("product", [HYPOTHETICAL])[0],
                    location=location,
                    protein=protein,
                    aliases=aliases,
                    genome_id=genome_id,
                )
            )

    logging.debug(f"{len(features)} protein features read from {path_to_gbk}.")

    return Genome(genome_id, name, contigs, features)


def find_genome_files(path_to_dir: str | os.PathLike) -> list[str]:
    """Return the GenBank files in a directory, sorted by name."""
    if not os.path.isdir(path_to_dir):
        raise FileNotFoundError(
            f"Input directory {path_to_dir} is not found or invalid."
        )
    return [
        os.path.join(path_to_dir, file_name)
        for file_name in sorted(os.listdir(path_to_dir))
        if file_name.lower().endswith(GBK_EXTENSIONS)
    ]


def iter_genome_dir(path_to_dir: str | os.PathLike) -> Iterator[Genome]:
    """Load the genomes in a directory one at a time."""
    for path_to_gbk in find_genome_files(path_to_dir):
        yield load_genome(path_to_gbk)
