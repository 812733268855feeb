"""Sequence ID search and parent-taxon fallback."""

from typing import List, Optional

from .eutils import EutilsClient
from .logging_config import get_logger
from .models import (
    MAX_RECORDS_PER_REQUEST, FallbackKind, RelativeTaxon, SearchConstraints
)
from .taxonomy import IdentifierResolver, TaxonomyService

logger = get_logger('search')

NUCLEOTIDE_DB = 'nuccore'


def build_query(taxonomy_id: str, constraints: SearchConstraints) -> str:
    """Build the nuccore query term; the filter expression is parenthesized."""
    term = f"txid{taxonomy_id}[Organism:exp] AND {constraints.seqrange}[SLEN]"
    if constraints.entrez_query:
        term += f" AND ({constraints.entrez_query})"
    return term


class SequenceSearch:
    """Finds nucleotide record IDs for a taxonomy ID."""

    def __init__(self, client: EutilsClient, db: str = NUCLEOTIDE_DB):
        self.client = client
        self.db = db

    def search(self, taxonomy_id: str, constraints: SearchConstraints) -> List[str]:
        """Return matching record IDs in NCBI order; empty when none match."""
        term = build_query(taxonomy_id, constraints)

        if constraints.limit > MAX_RECORDS_PER_REQUEST:
            logger.warning(
                f"limit={constraints.limit} exceeds NCBI's {MAX_RECORDS_PER_REQUEST} "
                f"records per search; results will be truncated by NCBI"
            )

        result = self.client.esearch(self.db, term, retmax=constraints.limit)

        if result['count'] == 0:
            return []

        return result['ids']


class ParentFallback:
    """Finds a related taxon to search when a taxon has no records.

    Ancestry is preferred: the immediate parent in the NCBI classification of
    the resolved taxonomy ID. Without a usable ancestry, a name that looks
    like a binomial (contains whitespace) is cut down to its genus.
    """

    def __init__(self, taxonomy: TaxonomyService, resolver: IdentifierResolver):
        self.taxonomy = taxonomy
        self.resolver = resolver

    def find_relative(self, taxonomy_id: Optional[str] = None,
                      name: Optional[str] = None) -> RelativeTaxon:
        if taxonomy_id is not None:
            chain = self.taxonomy.classification(taxonomy_id)
            if len(chain) > 1:
                parent = chain[-2]
                logger.debug(f"Parent of {taxonomy_id} is {parent.name} ({parent.rank})")
                return RelativeTaxon(
                    kind=FallbackKind.ANCESTRY,
                    taxonomy_id=self.resolver.resolve_name(parent.name),
                    name=parent.name
                )

        if name is not None and len(name.split()) > 1:
            genus = name.split()[0]
            return RelativeTaxon(
                kind=FallbackKind.NAME_HEURISTIC,
                taxonomy_id=self.resolver.resolve_name(genus),
                name=genus
            )

        return RelativeTaxon(kind=FallbackKind.NONE)
