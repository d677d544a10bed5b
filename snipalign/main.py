"""
This module handles CLI behaviour of the package. Option defaults come from the config
module and can be overridden by a custom YAML config file; each subcommand then
validates its parameters before any genome is read and invokes its processing function.
"""

import argparse
import logging
import os
import sys
from contextlib import ExitStack

from snipalign.align_reporting import ALIGN_FORMATS, create_align_reporter
from snipalign.alignment_processing import ALIGNERS, AlignerError, ClustalAligner
from snipalign.config import *
from snipalign.diff_processing import count_protein_changes
from snipalign.feature_processing import FILTER_TYPES, create_filters
from snipalign.file_processing import atomic_output, open_output
from snipalign.genome_alignment import align_genomes
from snipalign.gto_alignment import align_gtos
from snipalign.snip_counting import count_snips, read_feature_data
from snipalign.snip_reporting import (
    REPORT_FORMATS,
    SORT_ORDERS,
    ReportParameters,
    create_snip_reporter,
)
from snipalign.splice_processing import splice_genomes
from snipalign.utils import read_genome_labels, read_group_file, timeit


def check_files(paths: list[str], description: str) -> None:
    for path in paths:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"{description} {path} not found or unreadable.")


def create_context(args: argparse.Namespace) -> AlignmentContext:
    return AlignmentContext(
        kmer_size=args.kmer,
        max_dist=args.maxDist,
        max_upstream=getattr(args, "upstream", MAX_UPSTREAM),
    )


def create_aligner(args: argparse.Namespace) -> ClustalAligner:
    if args.alignerTimeout <= 0:
        raise ParameterError("Aligner timeout must be greater than 0.")
    return ClustalAligner(args.aligner, args.workDir, args.alignerTimeout)


def run_genomes(args: argparse.Namespace) -> None:
    context = create_context(args)
    if not os.path.isdir(args.in_dir):
        raise FileNotFoundError(f"Input directory {args.in_dir} is not found or invalid.")
    check_files([args.base_gbk], "Base genome file")
    filters = create_filters(args.filter, args.fidFile)
    genome_labels = read_genome_labels(args.gFile) if args.gFile else None
    groups = read_group_file(args.groups) if args.groups else {}
    special = {genome_id for genome_id in (args.special or "").split(",") if genome_id}
    parameters = ReportParameters(args.cellWidth, args.sort, groups, special)
    if args.format not in REPORT_FORMATS:
        raise ParameterError(f"Invalid report format {args.format}.")
    if args.format.startswith("major") and not special:
        raise ParameterError("Major-change reports require a list of special genomes.")
    aligner = create_aligner(args)
    binary = REPORT_FORMATS[args.format].binary
    if args.output:
        logging.info(f"Results will be written to {args.output}.")
    else:
        logging.info("Results will be written to the standard output.")

    with ExitStack() as stack:
        output = stack.enter_context(open_output(args.output, binary))
        reporter = create_snip_reporter(args.format, output, parameters)
        if args.groupOut:
            reporter.setup_feature_output(stack.enter_context(atomic_output(args.groupOut)))
        align_genomes(
            args.in_dir,
            args.base_gbk,
            args.alt_ids,
            context,
            aligner,
            reporter,
            filters,
            genome_labels,
        )


def run_gtos(args: argparse.Namespace) -> None:
    context = create_context(args)
    check_files([args.base_gbk, *args.other_gbk], "Genome file")
    aligner = create_aligner(args)
    with open_output(args.output) as output:
        reporter = create_align_reporter(args.format, output)
        align_gtos(
            args.base_gbk,
            args.other_gbk,
            context,
            aligner,
            reporter,
            args.alt,
            args.upstreamCheck,
        )


def run_splice(args: argparse.Namespace) -> None:
    context = create_context(args)
    check_files([args.source_gbk], "Source genome file")
    check_files([args.reference_gbk], "Reference genome file")
    with open_output(args.output) as output:
        splice_genomes(args.source_gbk, args.reference_gbk, context, args.workDir, output)


def run_diff(args: argparse.Namespace) -> None:
    check_files(args.alt, "Alternate base genome file")
    check_files([args.base_gbk], "Base genome file")
    check_files(args.test_gbk, "Test genome file")
    filters = create_filters(args.filter, args.fidFile)
    table = count_protein_changes(args.base_gbk, args.test_gbk, args.alt, filters)
    with open_output(args.output) as output:
        table.to_csv(output, sep="\t", index=False)


def run_snipcount(args: argparse.Namespace) -> None:
    data = read_feature_data(args.groups_snips_tbl)
    table = count_snips(data, args.byGroup)
    with open_output(args.output) as output:
        table.to_csv(output, sep="\t", index=False)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="Output file. If not specified, the standard output is used",
    )

    parser.add_argument(
        "--verbosity",
        "-v",
        type=int,
        default=VERBOSITY,
        help="Specify verbosity of output (0 - silent, 1 - info, 2 - debug)",
    )

    parser.add_argument(
        "--custom_config",
        "-cc",
        default=None,
        type=str,
        help="Path to custom yaml config file that will override defaults and any other commandline args",
    )


def add_alignment_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--maxDist",
        "-m",
        type=float,
        default=MAX_DIST,
        help="Maximum kmer distance for a sequence to be placed in an alignment",
    )

    parser.add_argument(
        "--kmer",
        "-K",
        type=int,
        default=KMER_SIZE,
        help="Kmer size for computing sequence distances",
    )

    parser.add_argument(
        "--workDir",
        default=WORK_DIR,
        help="Working directory for temporary files",
    )

    parser.add_argument(
        "--aligner",
        choices=ALIGNERS,
        default=ALIGNER,
        help="External multiple-alignment program",
    )

    parser.add_argument(
        "--alignerTimeout",
        type=float,
        default=ALIGNER_TIMEOUT,
        help="Seconds to wait for the aligner",
    )


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--filter",
        type=str.upper,
        choices=FILTER_TYPES,
        action="append",
        default=[],
        help="Type of feature filtering. May be repeated",
    )

    parser.add_argument(
        "--fidFile",
        default=None,
        help="Tab-delimited file with headers listing acceptable feature IDs in the first column (LIST filter)",
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Align homologous regions across genomes and report the snips against a base genome",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    genomes = subparsers.add_parser(
        "genomes",
        help="Report the snips of every genome in a directory against a base genome",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    genomes.add_argument("in_dir", help="Directory of GenBank genomes")
    genomes.add_argument("base_gbk", help="GenBank file of the base genome")
    genomes.add_argument(
        "alt_ids", nargs="*", default=[], help="IDs of other wild-type genomes"
    )
    add_alignment_arguments(genomes)
    add_filter_arguments(genomes)
    genomes.add_argument(
        "--upstream",
        "-u",
        type=int,
        default=MAX_UPSTREAM,
        help="Maximum upstream distance for protein neighborhoods",
    )
    genomes.add_argument(
        "--format", choices=list(REPORT_FORMATS), default="text", help="Report format"
    )
    genomes.add_argument(
        "--sort", choices=SORT_ORDERS, default="changes", help="Sort order for HTML tables"
    )
    genomes.add_argument(
        "--cellWidth",
        "-w",
        type=int,
        default=CELL_WIDTH,
        help="Maximum character width for a snip display cell",
    )
    genomes.add_argument(
        "--gFile",
        default=None,
        help="Tab-delimited file of genome IDs, tooltips and headers giving the output column order",
    )
    genomes.add_argument(
        "--groups", default=None, help="Tab-delimited file of group information by feature ID"
    )
    genomes.add_argument(
        "--groupOut", default=None, help="Output file for group snip information"
    )
    genomes.add_argument(
        "--special",
        default=None,
        help="Comma-delimited IDs of the genomes used by the major-change reports",
    )
    add_common_arguments(genomes)
    genomes.set_defaults(func=run_genomes)

    gtos = subparsers.add_parser(
        "gtos",
        help="Align the coding sequences of several genomes by function",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    gtos.add_argument("base_gbk", help="GenBank file of the base genome")
    gtos.add_argument("other_gbk", nargs="+", help="GenBank files of the genomes to align")
    add_alignment_arguments(gtos)
    gtos.add_argument(
        "--format", choices=list(ALIGN_FORMATS), default="text", help="Report format"
    )
    gtos.add_argument(
        "--alt", action="append", default=[], help="ID of an alternate base genome"
    )
    gtos.add_argument(
        "--upstreamCheck",
        action="store_true",
        help="Replace leading gaps caused by differing start calls with upstream DNA",
    )
    add_common_arguments(gtos)
    gtos.set_defaults(func=run_gtos)

    splice = subparsers.add_parser(
        "splice",
        help="Splice the matching regions of a source genome into a reference genome",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    splice.add_argument("source_gbk", help="GenBank file of the genome to splice in")
    splice.add_argument("reference_gbk", help="GenBank file of the reference genome")
    add_alignment_arguments(splice)
    splice.add_argument(
        "--upstream",
        "-u",
        type=int,
        default=0,
        help="Maximum upstream distance for protein neighborhoods",
    )
    add_common_arguments(splice)
    splice.set_defaults(func=run_splice)

    diff = subparsers.add_parser(
        "diff",
        help="Count the changed proteins of test genomes",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    diff.add_argument("base_gbk", help="GenBank file of the base genome")
    diff.add_argument("test_gbk", nargs="+", help="GenBank files of the genomes to test")
    diff.add_argument(
        "--alt", action="append", default=[], help="GenBank file of an alternate base genome"
    )
    add_filter_arguments(diff)
    add_common_arguments(diff)
    diff.set_defaults(func=run_diff)

    snipcount = subparsers.add_parser(
        "snipcount",
        help="Summarize a group snip file",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    snipcount.add_argument("groups_snips_tbl", help="Group snip file written by --groupOut")
    snipcount.add_argument(
        "--byGroup", action="store_true", help="Add counts for each group"
    )
    add_common_arguments(snipcount)
    snipcount.set_defaults(func=run_snipcount)

    return parser


@timeit
def main(argv: list[str] | None = None) -> None:
    """
    Parses command line input and invokes the requested subcommand.
    """

    args = create_parser().parse_args(argv)

    try:
        if args.custom_config is not None:
            for key, value in load_custom_config(args.custom_config).items():
                if key in ("command", "func") or not hasattr(args, key):
                    raise ParameterError(f"Unknown option {key} in {args.custom_config}.")
                setattr(args, key, value)
        setup_logging(args.verbosity)
        args.func(args)
    except (ValueError, FileNotFoundError, AlignerError) as e:
        logging.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
