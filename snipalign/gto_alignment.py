"""
The `gtos` command: align the coding sequences of a set of genomes by function.

Only functions of the base genome take part, and a function is only aligned if
at least three sequences close enough to its first base sequence were found and
they are not all identical.
"""

import logging
import os

from tqdm import tqdm

from snipalign.align_reporting import MultiAlignReporter
from snipalign.config import BAR_FORMAT, MIN_ALIGNMENT_SIZE, AlignmentContext
from snipalign.feature_processing import FunctionMap, is_hypothetical
from snipalign.gbk_processing import Feature, Genome, load_genome
from snipalign.sequence_processing import SequenceList
from snipalign.upstream_processing import recapture_upstream


def add_feature(
    sequences: SequenceList, genome: Genome, feature: Feature, max_dist: float
) -> bool:
    location = feature.location
    return sequences.try_add(
        feature.id, str(location), genome.get_dna(location), max_dist
    )


def collect_base_sequences(
    base: Genome, function_map: FunctionMap, context: AlignmentContext
) -> dict[str, SequenceList]:
    """
    Start one sequence list per non-hypothetical function of the base genome.

    The first feature with a function seeds its list; later base features of the
    same function are added if they are close enough.
    """

    sequence_map = {}
    kept = 0
    for feature in base.pegs:
        if is_hypothetical(feature.function):
            continue
        fun_id = function_map.find_or_insert(feature.function)
        sequences = sequence_map.get(fun_id)
        if sequences is not None:
            if add_feature(sequences, base, feature, context.max_dist):
                kept += 1
        else:
            location = feature.location
            sequence_map[fun_id] = SequenceList(
                feature.id, str(location), base.get_dna(location), context.kmer_size
            )
            kept += 1
    logging.info(
        f"{len(sequence_map)} functions found in {base}, {kept} features kept."
    )
    return sequence_map


def align_gtos(
    path_to_base: str | os.PathLike,
    paths_to_others: list[str | os.PathLike],
    context: AlignmentContext,
    aligner,
    reporter: MultiAlignReporter,
    alt_bases: list[str] | None = None,
    upstream_check: bool = False,
) -> int:
    """
    Align the coding sequences of several genomes by function and report them.

    Parameters
    ----------
    path_to_base : str or os.PathLike
        GenBank file of the base genome.
    paths_to_others : list of str or os.PathLike
        GenBank files of the genomes to align to the base.
    context : AlignmentContext
        Run parameters.
    aligner : object
        Multiple aligner with an `align(records)` method.
    reporter : MultiAlignReporter
        Report writer.
    alt_bases : list of str, optional
        IDs of alternate base genomes.
    upstream_check : bool, optional
        If True, leading gaps caused by differing start calls are replaced by the upstream DNA.

    Returns
    -------
    int
        Number of alignments written.
    """

    function_map = FunctionMap()
    genomes = {}
    base = load_genome(path_to_base)
    logging.info(f"Scanning features from {base}.")
    genomes[base.id] = base
    sequence_map = collect_base_sequences(base, function_map, context)
    reporter.open_report(base, alt_bases or [])

    for path_to_gbk in paths_to_others:
        genome = load_genome(path_to_gbk)
        reporter.register_genome(genome)
        logging.info(f"Scanning genome {genome}.")
        if upstream_check:
            genomes[genome.id] = genome
        kept = 0
        for feature in genome.pegs:
            fun_id = function_map.get_by_name(feature.function)
            sequences = sequence_map.get(fun_id) if fun_id is not None else None
            if sequences is not None and add_feature(
                sequences, genome, feature, context.max_dist
            ):
                kept += 1
        logging.info(f"{kept} sequences kept from {genome}.")

    align_count = 0
    recaptures = 0
    for fun_id, sequences in tqdm(
        sequence_map.items(),
        desc="Aligning",
        disable=logging.root.level > logging.INFO,
        bar_format=BAR_FORMAT,
    ):
        if sequences.size() < MIN_ALIGNMENT_SIZE or sequences.max_dist <= 0.0:
            continue
        function = function_map.get_name(fun_id)
        logging.debug(f"Processing alignment for {function}.")
        alignment = aligner.align(sequences.records)
        if upstream_check:
            recaptures += recapture_upstream(alignment, genomes)
        reporter.write_alignment(sequences.base_id, function, alignment)
        align_count += 1

    reporter.close_report()
    logging.info(f"{align_count} alignments output.")
    if upstream_check:
        logging.info(f"{recaptures} upstream regions recaptured.")

    return align_count
