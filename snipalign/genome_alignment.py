"""
The `genomes` command: align the regions of every genome in a directory against
the features of a base genome and report the snips.
"""

import logging
import os
from dataclasses import dataclass

from tqdm import tqdm

from snipalign.config import BAR_FORMAT, AlignmentContext
from snipalign.feature_processing import FeatureFilter, FunctionMap, check_filters
from snipalign.gbk_processing import Feature, Genome, iter_genome_dir, load_genome
from snipalign.models import GenomeLabel
from snipalign.region_processing import (
    MarkedRegionList,
    create_region_map,
    genome_regions,
)
from snipalign.snip_reporting import SnipReporter


@dataclass
class MatchCounts:
    """Outcome of matching the regions of one genome against the base."""

    found: int = 0
    """Regions queued for alignment with a functional difference"""
    bad_function: int = 0
    """Regions whose function does not occur in the base"""
    too_far: int = 0
    """Regions too distant from every base region of their function"""
    same: int = 0
    """Regions identical in protein and upstream DNA to their base region"""
    skipped: int = 0
    """Regions whose closest base region was removed by filtering"""


class AlignmentBuilder:
    """
    Collects, for every base feature, the regions of other genomes that match it.

    Parameters
    ----------
    base : Genome
        Base genome.
    context : AlignmentContext
        Run parameters.
    filters : list of callable, optional
        Feature filters; base features that fail them get no alignment.
    function_map : FunctionMap, optional
        Function map to fill. A new one is created by default.
    """

    def __init__(
        self,
        base: Genome,
        context: AlignmentContext,
        filters: list[FeatureFilter] | None = None,
        function_map: FunctionMap | None = None,
    ):
        self.base = base
        self.context = context
        self.function_map = function_map if function_map is not None else FunctionMap()
        self.base_map = create_region_map(
            base, self.function_map, context.max_upstream, context.kmer_size
        )
        self.align_map = {}
        self.filtered = 0
        processed = 0
        for regions in self.base_map.values():
            for region in regions:
                processed += 1
                if not check_filters(filters or [], region.feature):
                    self.filtered += 1
                else:
                    self.align_map[region.id] = MarkedRegionList(
                        [region], kmer_size=context.kmer_size
                    )
        logging.info(
            f"{processed} features with {len(self.base_map)} functions processed for base genome, "
            f"{self.filtered} removed by filter."
        )

    def add_genome(self, genome: Genome, wild: bool = False) -> MatchCounts:
        """
        Match every region of a genome to its closest base region.

        Parameters
        ----------
        genome : Genome
            Genome to match.
        wild : bool, optional
            True for wild-type genomes, whose regions never mark an alignment as worth
            computing. Default is False.

        Returns
        -------
        MatchCounts
            How the regions were disposed of.
        """

        counts = MatchCounts()
        for region in genome_regions(genome, self.context.max_upstream):
            fun_id = self.function_map.get_by_name(region.function)
            base_regions = self.base_map.get(fun_id) if fun_id is not None else None
            if base_regions is None:
                counts.bad_function += 1
                continue
            closest = base_regions.closest(region, self.context.max_dist)
            if closest is None:
                counts.too_far += 1
                continue
            alignment = self.align_map.get(closest.id)
            if alignment is None:
                counts.skipped += 1
                continue
            alignment.append(region)
            if wild:
                continue
            if (
                closest.protein == region.protein
                and closest.upstream_dna == region.upstream_dna
            ):
                counts.same += 1
            else:
                alignment.increment()
                counts.found += 1
        return counts

    def alignments(self) -> list[tuple[Feature, MarkedRegionList]]:
        """Return the pending alignments, ordered by base feature location."""
        pairs = [(regions[0].feature, regions) for regions in self.align_map.values()]
        return sorted(pairs, key=lambda pair: (pair[0].location, pair[0].id))


def align_genomes(
    path_to_dir: str | os.PathLike,
    path_to_base: str | os.PathLike,
    alt_ids: list[str],
    context: AlignmentContext,
    aligner,
    reporter: SnipReporter,
    filters: list[FeatureFilter] | None = None,
    genome_labels: list[GenomeLabel] | None = None,
) -> int:
    """
    Run the snip report for a directory of genomes.

    Parameters
    ----------
    path_to_dir : str or os.PathLike
        Directory of GenBank genomes.
    path_to_base : str or os.PathLike
        GenBank file of the base genome. If the base is also in the directory it is skipped there.
    alt_ids : list of str
        IDs of the other wild-type genomes. They are aligned but not displayed.
    context : AlignmentContext
        Run parameters.
    aligner : object
        Multiple aligner with an `align(records)` method.
    reporter : SnipReporter
        Report writer.
    filters : list of callable, optional
        Feature filters applied to the base features.
    genome_labels : list of GenomeLabel, optional
        Display order and labels for the genomes.

    Returns
    -------
    int
        Number of alignments computed.
    """

    base = load_genome(path_to_base)
    logging.info(f"Scanning base genome {base}.")
    builder = AlignmentBuilder(base, context, filters)
    reporter.register(base)

    logging.info(f"Scanning input directory {path_to_dir}.")
    for genome in iter_genome_dir(path_to_dir):
        if genome.id == base.id:
            logging.info("Base genome found in input directory-- skipped.")
            continue
        logging.info(f"Processing input genome {genome}.")
        wild = genome.id in alt_ids
        if not wild:
            reporter.register(genome)
        counts = builder.add_genome(genome, wild)
        logging.info(
            f"{counts.found} regions queued for alignment.  {counts.bad_function} had unusual "
            f"functions, {counts.too_far} were too far to align."
        )
        logging.info(
            f"{counts.same} regions were functionally identical to the base, "
            f"{counts.skipped} skipped by filtering."
        )

    if genome_labels:
        reporter.reorder(genome_labels)
    reporter.initialize_output()

    logging.info("Processing alignments.")
    aligned = 0
    for feature, regions in tqdm(
        builder.alignments(),
        desc="Aligning",
        disable=logging.root.level > logging.INFO,
        bar_format=BAR_FORMAT,
    ):
        if regions.counter == 0:
            reporter.write_feature_data(feature.id)
            continue
        logging.debug(f"Performing alignment on {feature.id}.")
        alignment = aligner.align(regions.to_records())
        reporter.process_alignment(feature, regions, alignment)
        aligned += 1
    reporter.finish_report()
    logging.info(f"{aligned} alignments computed.")

    return aligned
