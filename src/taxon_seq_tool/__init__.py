"""NCBI nucleotide record search by taxon.

Retrieves sequence record metadata (length, gene description, accession,
GI number) for one or more taxa from NCBI nuccore, with predicted-record
filtering and optional fallback to a parent taxon.
"""

__version__ = "1.0.0"
__author__ = "Austin P. Morrissey"

from .models import RESULT_COLUMNS, SearchConstraints, SequenceRecord, TaxonInput
from .pipeline import search_sequences

__all__ = [
    "RESULT_COLUMNS",
    "SearchConstraints",
    "SequenceRecord",
    "TaxonInput",
    "search_sequences",
]
