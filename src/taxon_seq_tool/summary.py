"""Document summary retrieval and parsing for nucleotide records."""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .error_handler import SummaryParseError
from .eutils import EutilsClient
from .logging_config import get_logger
from .models import MAX_RECORDS_PER_REQUEST, SequenceRecord, records_to_frame

logger = get_logger('summary')

# RefSeq model (predicted) mRNA and ncRNA accession prefixes
HYPOTHETICAL_PREFIXES = frozenset(['XM', 'XR'])


def split_accession(caption: str) -> Tuple[Optional[str], str]:
    """Split a caption into (prefix marker, accession).

    ``XM_123456`` gives ``('XM', '123456')``; a caption without an underscore
    has no marker and is returned unchanged.
    """
    if '_' not in caption:
        return None, caption
    prefix, accession = caption.split('_', 1)
    return prefix, accession


def split_title(title: str) -> Tuple[str, str]:
    """Split a record title into (species label, gene description)."""
    tokens = title.split()
    return ' '.join(tokens[:2]), ' '.join(tokens[2:])


def is_hypothetical(prefix: Optional[str]) -> bool:
    return prefix in HYPOTHETICAL_PREFIXES


def parse_summary_item(item: Mapping[str, Any]) -> Tuple[Optional[str], SequenceRecord]:
    """Parse one DocSum into (prefix marker, record)."""
    try:
        caption = str(item['Caption'])
        title = str(item['Title'])
        length = int(item['Length'])
        gi = int(item['Gi'])
    except KeyError as e:
        raise SummaryParseError(f"Summary item is missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise SummaryParseError(f"Bad numeric field in summary item {item.get('Caption')!r}: {e}") from e

    if length < 0:
        raise SummaryParseError(f"Negative length for {caption}: {length}")

    prefix, accession = split_accession(caption)
    species, gene_desc = split_title(title)

    return prefix, SequenceRecord(
        taxon=species,
        length=length,
        gene_desc=gene_desc,
        acc_no=accession,
        gi_no=gi
    )


def parse_summary(items: Iterable[Mapping[str, Any]], keep_hypothetical: bool = False) -> List[SequenceRecord]:
    """Parse an esummary response, dropping XM/XR records unless kept."""
    records = []
    dropped = 0

    for item in items:
        prefix, record = parse_summary_item(item)
        if not keep_hypothetical and is_hypothetical(prefix):
            dropped += 1
            continue
        records.append(record)

    if dropped:
        logger.debug(f"Dropped {dropped} predicted (XM/XR) records")

    return records


@dataclass
class SummaryChunk:
    """A slice of the id list.

    ``offset`` is the 1-based position of the first id in the full list. It
    is for logging only: the request names the chunk's ids directly, so no
    ``retstart`` is sent.
    """
    offset: int
    ids: List[str]

    @property
    def size(self) -> int:
        return len(self.ids)


def chunk_ids(ids: Sequence[str], chunk_size: int = MAX_RECORDS_PER_REQUEST) -> List[SummaryChunk]:
    """Partition ids into consecutive chunks, preserving order."""
    return [
        SummaryChunk(offset=start + 1, ids=list(ids[start:start + chunk_size]))
        for start in range(0, len(ids), chunk_size)
    ]


class SummaryRetriever:
    """Fetches and parses summaries for a list of record IDs."""

    def __init__(self, client: EutilsClient, db: str = 'nuccore',
                 chunk_size: int = MAX_RECORDS_PER_REQUEST):
        self.client = client
        self.db = db
        self.chunk_size = chunk_size

    def fetch_records(self, ids: Sequence[str], keep_hypothetical: bool = False) -> List[SequenceRecord]:
        """Fetch summaries chunk by chunk; any failing chunk propagates."""
        if not ids:
            return []

        if len(ids) <= self.chunk_size:
            items = self.client.esummary(self.db, ids)
            return parse_summary(items, keep_hypothetical)

        chunks = chunk_ids(ids, self.chunk_size)
        logger.info(f"Fetching {len(ids)} summaries in {len(chunks)} chunks")

        records: List[SequenceRecord] = []
        for chunk in chunks:
            items = self._fetch_chunk(chunk)
            records.extend(parse_summary(items, keep_hypothetical))

        return records

    def _fetch_chunk(self, chunk: SummaryChunk) -> List[Any]:
        logger.debug(f"Summary chunk at {chunk.offset}: {chunk.size} ids")
        return self.client.esummary(self.db, chunk.ids, retmax=chunk.size)

    def fetch_summaries(self, ids: Sequence[str], keep_hypothetical: bool = False) -> pd.DataFrame:
        """Fetch summaries and return them as a result table."""
        return records_to_frame(self.fetch_records(ids, keep_hypothetical))
