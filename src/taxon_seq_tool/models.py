"""Data models for the taxon sequence search tool."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

# Column order of every per-taxon result table
RESULT_COLUMNS = ["taxon", "length", "gene_desc", "acc_no", "gi_no"]

# Remote per-request ceiling for search results and summary batches
MAX_RECORDS_PER_REQUEST = 10000


@dataclass(frozen=True)
class TaxonInput:
    """A taxon given either by name or by NCBI taxonomy ID."""

    label: str
    name: Optional[str] = None
    taxonomy_id: Optional[str] = None

    def __post_init__(self):
        if (self.name is None) == (self.taxonomy_id is None):
            raise ValueError("TaxonInput needs exactly one of name or taxonomy_id")

    @classmethod
    def from_name(cls, name: str) -> 'TaxonInput':
        """Create an input from a taxon name."""
        name = str(name).strip()
        if not name:
            raise ValueError("Taxon name must not be empty")
        return cls(label=name, name=name)

    @classmethod
    def from_id(cls, taxonomy_id) -> 'TaxonInput':
        """Create an input from a taxonomy ID (integer-valued text)."""
        text = str(taxonomy_id).strip()
        if not text.isdigit():
            raise ValueError(f"Taxonomy ID must be integer-valued, got {taxonomy_id!r}")
        return cls(label=text, taxonomy_id=text)

    @property
    def is_id(self) -> bool:
        return self.taxonomy_id is not None


@dataclass(frozen=True)
class SearchConstraints:
    """Constraints applied to every sequence search in a run."""

    seqrange: str = "1:3000"
    limit: int = 500
    entrez_query: Optional[str] = None
    hypothetical: bool = False
    getrelated: bool = False


@dataclass
class SequenceRecord:
    """Summary metadata for one nucleotide record."""

    taxon: str
    length: int
    gene_desc: str
    acc_no: str
    gi_no: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FallbackKind(Enum):
    """How a related taxon was found."""
    ANCESTRY = "ancestry"
    NAME_HEURISTIC = "name_heuristic"
    NONE = "none"


@dataclass
class RelativeTaxon:
    """Result of a parent-taxon lookup."""

    kind: FallbackKind
    taxonomy_id: Optional[str] = None
    name: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.taxonomy_id is not None


@dataclass
class TaxonOutcome:
    """Success or failure of one taxon within a batch."""

    taxon: TaxonInput
    result: Optional[pd.DataFrame] = None
    error: Optional[Exception] = None
    taxonomy_id: Optional[str] = None
    searched_id: Optional[str] = None
    fallback: Optional[RelativeTaxon] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def label(self) -> str:
        return self.taxon.label


def empty_result() -> pd.DataFrame:
    """Zero-row result table with the fixed column set."""
    return pd.DataFrame({
        "taxon": pd.Series(dtype="object"),
        "length": pd.Series(dtype="int64"),
        "gene_desc": pd.Series(dtype="object"),
        "acc_no": pd.Series(dtype="object"),
        "gi_no": pd.Series(dtype="int64"),
    })


def records_to_frame(records: List[SequenceRecord]) -> pd.DataFrame:
    """Build a result table from parsed records."""
    if not records:
        return empty_result()

    frame = pd.DataFrame([r.to_dict() for r in records], columns=RESULT_COLUMNS)
    return frame.astype({"length": "int64", "gi_no": "int64"})
