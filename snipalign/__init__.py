"""
A package to align homologous regions of bacterial genomes and report the snips
(small substitutions and indels) found against a base genome.
"""

from .config import *
from .feature_processing import *
from .file_processing import *
from .gbk_processing import *
from .kmer_processing import *
from .models import *
from .region_processing import *
from .sequence_processing import *
from .snip_processing import *
from .utils import *
