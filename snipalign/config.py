"""
This submodule holds run defaults, the per-run alignment context and logging setup.
"""

import logging
from dataclasses import dataclass

import yaml


# Constants
KMER_SIZE = 15
"""Kmer size for computing sequence distances"""
MIN_KMER_SIZE = 3
"""Smallest acceptable kmer size"""
MAX_KMER_SIZE = 100
"""Largest acceptable kmer size"""

MAX_DIST = 0.6
"""Maximum kmer distance for a sequence to be placed in an alignment"""

MAX_UPSTREAM = 100
"""Maximum upstream distance for protein neighborhoods"""

MIN_ALIGNMENT_SIZE = 3
"""Minimum number of sequences for a function-based alignment to be computed"""

CELL_WIDTH = 20
"""Maximum character width for a snip display cell"""

WORK_DIR = "Temp"
"""Working directory for temporary files"""

ALIGNER = "clustalo"
"""External multiple-alignment program"""
ALIGNER_TIMEOUT = 600
"""Seconds to wait for the external aligner before giving up"""

HYPOTHETICAL = "hypothetical protein"
"""Placeholder function for proteins with no assigned function"""

GAP = "-"
"""Gap character used by the aligner"""

VERBOSITY = 1
"""
Specify verbosity of output (0 - silent, 1 - max)
"""

BAR_FORMAT = "{desc:<50.100} {percentage:3.0f}% |{bar:100}{r_bar}"
"""
Format of the progress bar for tqdm module.
"""


class ParameterError(ValueError):
    """Invalid run configuration, detected before any genome is read."""


@dataclass(frozen=True)
class AlignmentContext:
    """
    Parameters shared by every component of a single run.

    Attributes
    ----------
    kmer_size : int
        Kmer length used for every profile built during the run.
    max_dist : float
        Maximum kmer distance for two regions to be considered the same gene.
    max_upstream : int
        Maximum upstream distance included in an extended region.
    """

    kmer_size: int = KMER_SIZE
    """Kmer length for distance profiles"""
    max_dist: float = MAX_DIST
    """Maximum acceptable kmer distance"""
    max_upstream: int = MAX_UPSTREAM
    """Maximum upstream neighborhood length"""

    def __post_init__(self):
        if not MIN_KMER_SIZE <= self.kmer_size <= MAX_KMER_SIZE:
            raise ParameterError(
                f"Kmer size {self.kmer_size} is out of range.  "
                f"Must be >= {MIN_KMER_SIZE} and <= {MAX_KMER_SIZE}."
            )
        if self.max_dist <= 0.0:
            raise ParameterError(
                f"Maximum distance {self.max_dist} must be greater than 0."
            )
        if self.max_upstream < 0:
            raise ParameterError("Upstream distance must be 0 or more.")


def load_custom_config(path_to_config: str) -> dict:
    """
    Read a YAML file of option overrides.

    Parameters
    ----------
    path_to_config : str
        Path to the YAML file. Keys are command-line option destinations.

    Returns
    -------
    dict
        The overrides; empty if the file holds no mapping.
    """

    with open(path_to_config, "r") as file:
        custom_config = yaml.safe_load(file)

    if not custom_config:
        return {}
    if not isinstance(custom_config, dict):
        raise ParameterError(f"Custom config {path_to_config} is not a mapping.")

    return custom_config


def setup_logging(verbosity: int) -> None:
    """
    Configures the logging settings based on the provided verbosity level.

    Parameters
    ----------
    verbosity : int
        The verbosity level for logging. The levels are defined as:
        - 0: ERROR level, only error messages will be logged.
        - 1: INFO level, informational messages and above will be logged.
        - 2 or higher: DEBUG level, all messages including debugging details will be logged.

    Returns
    -------
    None

    Notes
    -----
    This function sets up the logging configuration with a simple message format and adjusts the logging
    level according to the verbosity parameter. If an invalid verbosity level is provided, it defaults to
    WARNING level.
    """

    log_format = "%(message)s"
    if verbosity == 0:
        level = logging.ERROR
    elif verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    else:
        level = logging.WARNING  # Default
    logging.basicConfig(level=level, format=log_format)
