"""
Protein regions extended with their upstream neighborhoods, and lists of them.
"""

import logging
import os
from typing import IO, Iterable, Iterator

from tqdm import tqdm

from snipalign.config import BAR_FORMAT, KMER_SIZE, MAX_UPSTREAM
from snipalign.feature_processing import FunctionMap, is_hypothetical
from snipalign.gbk_processing import Feature, Genome
from snipalign.kmer_processing import KmerProfile, build_profile, kmer_distance
from snipalign.models import Location, SequenceRecord
from snipalign.sequence_processing import write_fasta


class ExtendedRegion:
    """
    A protein-coding feature together with the DNA upstream of it.

    Parameters
    ----------
    feature : Feature
        The feature.
    full_location : Location
        Location covering the upstream neighborhood and the coding region.
    dna : str
        DNA of `full_location`, upstream first.
    virtual_distance : int, optional
        Upstream positions that were wanted but lie past the contig edge. Default is 0.
    edge_end : bool, optional
        True if the 3' end of the feature touches the contig edge. Default is False.
    """

    def __init__(
        self,
        feature: Feature,
        full_location: Location,
        dna: str,
        virtual_distance: int = 0,
        edge_end: bool = False,
    ):
        self.feature = feature
        self.full_location = full_location
        self.dna = dna
        self.upstream_distance = full_location.length - feature.location.length
        self.virtual_distance = virtual_distance
        self.edge_end = edge_end
        self._profiles = {}

    @classmethod
    def from_feature(
        cls, genome: Genome, feature: Feature, max_upstream: int = MAX_UPSTREAM
    ) -> "ExtendedRegion":
        """Extend a feature upstream by up to `max_upstream` positions, stopping at the contig edge."""
        location = feature.location
        contig_length = genome.contig_length(location.contig)
        full_location = location.expand_upstream(max_upstream, contig_length)
        upstream_distance = full_location.length - location.length
        if location.strand == "+":
            edge_end = location.right >= contig_length
        else:
            edge_end = location.left <= 1
        return cls(
            feature,
            full_location,
            genome.get_dna(full_location),
            virtual_distance=max_upstream - upstream_distance,
            edge_end=edge_end,
        )

    def __repr__(self) -> str:
        return f"ExtendedRegion({self.id}, {self.full_location})"

    @property
    def id(self) -> str:
        return self.feature.id

    @property
    def genome_id(self) -> str:
        return self.feature.genome_id

    @property
    def function(self) -> str:
        return self.feature.function

    @property
    def location(self) -> Location:
        return self.feature.location

    @property
    def protein(self) -> str:
        return self.feature.protein

    @property
    def upstream_dna(self) -> str:
        return self.dna[: self.upstream_distance]

    def is_virtual(self, offset: int) -> bool:
        """
        Return True if an ungapped offset lies past the physical contig edge.

        Offset 0 (or less) is virtual when the upstream neighborhood was truncated by the
        contig edge; offsets at or past the end of the DNA are virtual when the feature
        itself runs to the contig edge.
        """

        if offset <= 0:
            return self.virtual_distance > 0
        return offset >= len(self.dna) and self.edge_end

    def profile(self, kmer_size: int = KMER_SIZE) -> KmerProfile:
        profile = self._profiles.get(kmer_size)
        if profile is None:
            profile = build_profile(self.dna, kmer_size)
            self._profiles[kmer_size] = profile
        return profile

    def distance(self, other: "ExtendedRegion", kmer_size: int = KMER_SIZE) -> float:
        return kmer_distance(self.profile(kmer_size), other.profile(kmer_size))

    def to_record(self) -> SequenceRecord:
        return SequenceRecord(self.id, str(self.full_location), self.dna)


def genome_regions(
    genome: Genome, max_upstream: int = MAX_UPSTREAM
) -> Iterator[ExtendedRegion]:
    """Yield an extended region for every protein-coding feature of a genome, in file order."""
    for feature in genome.pegs:
        yield ExtendedRegion.from_feature(genome, feature, max_upstream)


class RegionList(list):
    """
    An ordered list of extended regions with nearest-neighbor lookup.

    Parameters
    ----------
    regions : iterable of ExtendedRegion, optional
        Initial members.
    kmer_size : int, optional
        Kmer length for distance computations. Default is `KMER_SIZE`.
    """

    def __init__(
        self, regions: Iterable[ExtendedRegion] = (), kmer_size: int = KMER_SIZE
    ):
        super().__init__(regions)
        self.kmer_size = kmer_size

    def closest(
        self, candidate: ExtendedRegion, max_dist: float
    ) -> ExtendedRegion | None:
        """
        Find the member closest to a candidate region.

        Parameters
        ----------
        candidate : ExtendedRegion
            Region to match.
        max_dist : float
            Maximum acceptable distance.

        Returns
        -------
        ExtendedRegion or None
            The member at minimum distance, or None if the list is empty or the minimum
            exceeds `max_dist`. When several members share the minimum, the earliest one wins.
        """

        best = None
        best_dist = None
        for region in self:
            distance = candidate.distance(region, self.kmer_size)
            if best_dist is None or distance < best_dist:
                best = region
                best_dist = distance
        if best is None or best_dist > max_dist:
            return None
        return best

    def get_region(self, fid: str) -> ExtendedRegion | None:
        return next((region for region in self if region.id == fid), None)

    def to_records(self) -> list[SequenceRecord]:
        return [region.to_record() for region in self]

    def save(self, sink: str | os.PathLike | IO) -> None:
        """Write the regions to a FASTA file, labelled by feature ID with the location as comment."""
        write_fasta(self.to_records(), sink)


class MarkedRegionList(RegionList):
    """A region list that counts members found functionally different from the first."""

    def __init__(
        self, regions: Iterable[ExtendedRegion] = (), kmer_size: int = KMER_SIZE
    ):
        super().__init__(regions, kmer_size)
        self.counter = 0

    def increment(self) -> None:
        self.counter += 1


def create_region_map(
    genome: Genome,
    function_map: FunctionMap,
    max_upstream: int = MAX_UPSTREAM,
    kmer_size: int = KMER_SIZE,
) -> dict[str, RegionList]:
    """
    Sort the protein regions of a genome by function.

    Parameters
    ----------
    genome : Genome
        Genome to scan.
    function_map : FunctionMap
        Function map; every function found is added to it.
    max_upstream : int, optional
        Maximum upstream distance. Default is `MAX_UPSTREAM`.
    kmer_size : int, optional
        Kmer length for the returned lists. Default is `KMER_SIZE`.

    Returns
    -------
    dict of str to RegionList
        Region lists keyed by function ID. Hypothetical proteins are left out.
    """

    region_map = {}
    for feature in tqdm(
        genome.pegs,
        desc=f"Scanning {genome.id}",
        disable=logging.root.level > logging.INFO,
        bar_format=BAR_FORMAT,
    ):
        if is_hypothetical(feature.function):
            continue
        fun_id = function_map.find_or_insert(feature.function)
        region_map.setdefault(fun_id, RegionList(kmer_size=kmer_size)).append(
            ExtendedRegion.from_feature(genome, feature, max_upstream)
        )

    return region_map
