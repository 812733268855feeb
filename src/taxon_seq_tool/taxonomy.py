"""Taxon name resolution and ancestry lookup against NCBI Taxonomy."""

from dataclasses import dataclass
from typing import List, Optional

from .error_handler import RemoteRequestError
from .eutils import EutilsClient
from .logging_config import get_logger
from .models import TaxonInput

logger = get_logger('taxonomy')

TAXONOMY_DB = 'taxonomy'


@dataclass
class LineageEntry:
    """One rank of a classification chain."""
    taxonomy_id: str
    name: str
    rank: str


class TaxonomyService:
    """NCBI Taxonomy lookups used by the search pipeline."""

    def __init__(self, client: EutilsClient):
        self.client = client

    def resolve_name(self, name: str) -> Optional[str]:
        """Look up the taxonomy ID for a name.

        When several taxa match, the first ID NCBI returns is used.
        """
        result = self.client.esearch(TAXONOMY_DB, name, retmax=20)
        ids = result['ids']

        if not ids:
            logger.debug(f"No taxonomy match for {name!r}")
            return None

        if len(ids) > 1:
            logger.debug(f"{len(ids)} taxonomy matches for {name!r}, using {ids[0]}")

        return ids[0]

    def classification(self, taxonomy_id: str) -> List[LineageEntry]:
        """Return the classification chain, root first and the taxon itself last."""
        records = self.client.efetch(TAXONOMY_DB, [taxonomy_id])

        if not records:
            return []

        try:
            taxon = records[0]
            chain = [
                LineageEntry(
                    taxonomy_id=str(entry['TaxId']),
                    name=str(entry['ScientificName']),
                    rank=str(entry.get('Rank', ''))
                )
                for entry in taxon.get('LineageEx', [])
            ]
            chain.append(LineageEntry(
                taxonomy_id=str(taxon['TaxId']),
                name=str(taxon['ScientificName']),
                rank=str(taxon.get('Rank', ''))
            ))
        except (KeyError, TypeError, IndexError) as e:
            raise RemoteRequestError(
                f"Unexpected taxonomy record for {taxonomy_id}: {e}",
                endpoint='efetch.fcgi'
            ) from e

        return chain


class IdentifierResolver:
    """Maps a TaxonInput to a taxonomy ID."""

    def __init__(self, taxonomy: TaxonomyService):
        self.taxonomy = taxonomy

    def resolve(self, taxon: TaxonInput) -> Optional[str]:
        """Supplied IDs are trusted as-is; names go to NCBI Taxonomy."""
        if taxon.is_id:
            return taxon.taxonomy_id
        return self.resolve_name(taxon.name)

    def resolve_name(self, name: str) -> Optional[str]:
        return self.taxonomy.resolve_name(name)
