"""
Functions to build DNA kmer profiles and measure the distance between them
"""

from dataclasses import dataclass

from Bio.Seq import reverse_complement

from snipalign.config import KMER_SIZE

NUCLEOTIDES = frozenset("ACGT")


@dataclass(frozen=True)
class KmerProfile:
    """
    The set of canonical kmers found in a DNA sequence.

    Attributes
    ----------
    kmer_size : int
        Kmer length used to build the profile.
    kmers : frozenset of str
        Canonical kmers (the lesser of a kmer and its reverse complement).
    """

    kmer_size: int
    """Kmer length"""
    kmers: frozenset
    """Canonical kmers"""

    def __len__(self) -> int:
        return len(self.kmers)


def canonical_kmer(kmer: str) -> str:
    """Return the strand-independent form of a kmer."""
    rev = reverse_complement(kmer)
    return kmer if kmer <= rev else rev


def build_profile(dna: str, kmer_size: int = KMER_SIZE) -> KmerProfile:
    """
    Build the kmer profile of a DNA sequence.

    Parameters
    ----------
    dna : str
        DNA sequence. Case is ignored; kmers containing anything other than A, C, G or T
        (ambiguity codes, gaps) are skipped.
    kmer_size : int, optional
        Kmer length. Default is `KMER_SIZE`.

    Returns
    -------
    KmerProfile
        Profile holding every canonical kmer of the sequence.
    """

    dna = dna.upper()
    kmers = set()
    for i in range(len(dna) - kmer_size + 1):
        kmer = dna[i : i + kmer_size]
        if NUCLEOTIDES.issuperset(kmer):
            kmers.add(canonical_kmer(kmer))

    return KmerProfile(kmer_size, frozenset(kmers))


def kmer_distance(profile1: KmerProfile, profile2: KmerProfile) -> float:
    """
    Compute the Jaccard distance between two kmer profiles.

    Parameters
    ----------
    profile1 : KmerProfile
        First profile.
    profile2 : KmerProfile
        Second profile, built with the same kmer size.

    Returns
    -------
    float
        1 minus the fraction of the kmer union shared by both profiles. Identical
        profiles (including two empty ones) are at distance 0.0, disjoint profiles at 1.0.

    Raises
    ------
    ValueError
        If the profiles were built with different kmer sizes.
    """

    if profile1.kmer_size != profile2.kmer_size:
        raise ValueError(
            f"Cannot compare kmer profiles of size {profile1.kmer_size} and {profile2.kmer_size}."
        )

    union = len(profile1.kmers | profile2.kmers)
    if union == 0:
        return 0.0
    shared = len(profile1.kmers & profile2.kmers)

    return 1.0 - shared / union
