"""
The `splice` command: replace regions of a reference genome with the matching
regions of a source genome.
"""

import logging
import os
from typing import IO

import pandas as pd
from Bio.Seq import reverse_complement

from snipalign.config import AlignmentContext
from snipalign.feature_processing import FunctionMap
from snipalign.file_processing import create_dirs_to_output
from snipalign.gbk_processing import Genome, load_genome
from snipalign.models import SequenceRecord
from snipalign.region_processing import ExtendedRegion, create_region_map, genome_regions
from snipalign.sequence_processing import write_fasta

MAP_FILE_NAME = "map.tbl"
"""Name of the source-to-reference map written to the work directory"""


def match_regions(
    source: Genome,
    reference: Genome,
    context: AlignmentContext,
) -> tuple[list[tuple[ExtendedRegion, ExtendedRegion]], pd.DataFrame]:
    """
    Pair every source region with its closest reference region of the same function.

    Returns
    -------
    pairs : list of (ExtendedRegion, ExtendedRegion)
        (reference region, source region) pairs, in source order.
    mapping : pd.DataFrame
        One row per source region with columns `source_fid`, `reference_fid` (empty
        when unmatched) and `function`.
    """

    function_map = FunctionMap()
    logging.info(f"Scanning proteins in {reference}.")
    reference_map = create_region_map(
        reference, function_map, context.max_upstream, context.kmer_size
    )
    logging.info(f"Scanning proteins in {source}.")
    pairs = []
    rows = []
    for region in genome_regions(source, context.max_upstream):
        fun_id = function_map.get_by_name(region.function)
        regions = reference_map.get(fun_id) if fun_id is not None else None
        closest = regions.closest(region, context.max_dist) if regions else None
        if closest is None:
            rows.append((region.id, "", region.function))
        else:
            pairs.append((closest, region))
            rows.append((region.id, closest.id, region.function))
    logging.info(f"{len(pairs)} regions placed, {len(rows) - len(pairs)} lost.")

    mapping = pd.DataFrame(rows, columns=["source_fid", "reference_fid", "function"])
    return pairs, mapping


def splice_contigs(
    reference: Genome, pairs: list[tuple[ExtendedRegion, ExtendedRegion]]
) -> list[SequenceRecord]:
    """
    Build the reference contigs with every matched region replaced by its source region.

    Pairs are applied in reference location order. A pair whose reference region
    overlaps one already placed is skipped. Contigs are returned sorted by ID.
    """

    pairs = sorted(pairs, key=lambda pair: (pair[0].full_location, pair[1].id))
    by_contig = {}
    for ref_region, source_region in pairs:
        by_contig.setdefault(ref_region.full_location.contig, []).append(
            (ref_region, source_region)
        )

    contigs = []
    for contig_id in sorted(reference.contigs):
        sequence = str(reference.contigs[contig_id])
        pieces = []
        pos = 1
        for ref_region, source_region in by_contig.get(contig_id, []):
            location = ref_region.full_location
            if location.left < pos:
                logging.debug(f"Overlapping region {ref_region.id} skipped.")
                continue
            pieces.append(sequence[pos - 1 : location.left - 1])
            dna = source_region.dna
            if source_region.full_location.strand == "-":
                dna = reverse_complement(dna)
            pieces.append(dna)
            pos = location.right + 1
        pieces.append(sequence[pos - 1 :])
        contigs.append(SequenceRecord(contig_id, "", "".join(pieces)))
        logging.info(f"Contig {contig_id} processed.")

    return contigs


def splice_genomes(
    path_to_source: str | os.PathLike,
    path_to_reference: str | os.PathLike,
    context: AlignmentContext,
    work_dir: str | os.PathLike,
    output: IO,
) -> int:
    """
    Splice a source genome into a reference genome.

    Parameters
    ----------
    path_to_source : str or os.PathLike
        GenBank file of the genome supplying the regions.
    path_to_reference : str or os.PathLike
        GenBank file of the genome receiving them.
    context : AlignmentContext
        Run parameters.
    work_dir : str or os.PathLike
        Directory that receives `map.tbl`.
    output : file handle
        Destination of the spliced contigs, in FASTA format.

    Returns
    -------
    int
        Number of matched region pairs.

    Raises
    ------
    ValueError
        If no source region matches the reference.
    """

    reference = load_genome(path_to_reference)
    source = load_genome(path_to_source)
    pairs, mapping = match_regions(source, reference, context)

    create_dirs_to_output(work_dir)
    path_to_map = os.path.join(work_dir, MAP_FILE_NAME)
    mapping.to_csv(path_to_map, sep="\t", index=False)
    logging.info(f"Map written to {path_to_map}.")

    if not pairs:
        raise ValueError("Source genome does not match any part of reference genome.")
    write_fasta(splice_contigs(reference, pairs), output)
    logging.info("Processing complete.")

    return len(pairs)
