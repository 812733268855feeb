"""Per-taxon search pipeline and batch orchestration."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from .config import APIConfig, Config
from .error_handler import ErrorHandler, TaxonResolutionError, get_error_handler
from .eutils import EutilsClient
from .logging_config import ProgressLogger, get_logger
from .models import SearchConstraints, TaxonInput, TaxonOutcome, empty_result
from .search import NUCLEOTIDE_DB, ParentFallback, SequenceSearch
from .summary import SummaryRetriever
from .taxonomy import IdentifierResolver, TaxonomyService

logger = get_logger('pipeline')

BatchResult = Union[pd.DataFrame, Dict[str, Optional[pd.DataFrame]]]


class SequenceSearchPipeline:
    """Wires the components for one run; each taxon goes through run_taxon."""

    def __init__(self, client: Optional[EutilsClient] = None,
                 api_config: Optional[APIConfig] = None,
                 db: str = NUCLEOTIDE_DB):
        self.client = client or EutilsClient(api_config)
        self.taxonomy = TaxonomyService(self.client)
        self.resolver = IdentifierResolver(self.taxonomy)
        self.searcher = SequenceSearch(self.client, db)
        self.fallback = ParentFallback(self.taxonomy, self.resolver)
        self.retriever = SummaryRetriever(self.client, db)

    def run_taxon(self, taxon: TaxonInput, constraints: SearchConstraints,
                  verbose: bool = True) -> TaxonOutcome:
        """Resolve, search, fall back if needed and fetch summaries for one taxon.

        Raises:
            TaxonResolutionError: If a taxon name has no taxonomy ID
            RemoteRequestError: If any E-utilities call fails
            SummaryParseError: If a summary item cannot be parsed
        """
        level = logging.INFO if verbose else logging.DEBUG

        def narrate(message: str):
            logger.log(level, message)

        narrate(f"Working on {taxon.label}...")
        narrate("...retrieving sequence IDs...")

        taxonomy_id = self.resolver.resolve(taxon)
        if taxonomy_id is None:
            raise TaxonResolutionError(taxon.name)

        outcome = TaxonOutcome(taxon=taxon, taxonomy_id=taxonomy_id, searched_id=taxonomy_id)

        ids = self.searcher.search(taxonomy_id, constraints)
        narrate(f"...retrieving {len(ids)} sequence IDs...")

        if not ids and constraints.getrelated:
            narrate(f"no sequences for {taxon.label} - getting other related taxa")
            relative = self.fallback.find_relative(taxonomy_id, taxon.name)
            outcome.fallback = relative

            if relative.found:
                narrate(f"...retrieving sequence IDs for {relative.name} "
                        f"({relative.kind.value} fallback)...")
                ids = self.searcher.search(relative.taxonomy_id, constraints)
                outcome.searched_id = relative.taxonomy_id
                narrate(f"...retrieving {len(ids)} sequence IDs...")
            else:
                narrate(f"no related taxon found for {taxon.label}")

        if not ids:
            narrate("no sequences found")
            outcome.result = empty_result()
            return outcome

        narrate("...retrieving available genes and their lengths...")
        outcome.result = self.retriever.fetch_summaries(ids, constraints.hypothetical)
        narrate("...done.")

        return outcome


class BatchOrchestrator:
    """Runs the pipeline over many taxa, isolating failures per taxon."""

    def __init__(self,
                 pipeline: SequenceSearchPipeline,
                 max_workers: int = 1,
                 error_handler: Optional[ErrorHandler] = None):
        """
        Initialize orchestrator.

        Args:
            pipeline: Pipeline used for every taxon
            max_workers: Worker threads; 1 processes taxa sequentially
            error_handler: Handler that logs and records per-taxon failures
        """
        self.pipeline = pipeline
        self.max_workers = max(1, max_workers)
        self.error_handler = error_handler or get_error_handler()

    def run_all(self, taxa: List[TaxonInput], constraints: SearchConstraints,
                verbose: bool = True) -> List[TaxonOutcome]:
        """Process every taxon; outcomes come back in input order."""
        progress = ProgressLogger(
            logger,
            len(taxa),
            "Searching taxa",
            level=logging.INFO if verbose else logging.DEBUG
        )
        outcomes: List[Optional[TaxonOutcome]] = [None] * len(taxa)

        if self.max_workers > 1 and len(taxa) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._process_single, taxon, constraints, verbose)
                    for taxon in taxa
                ]
                for index, future in enumerate(futures):
                    outcomes[index] = future.result()
                    progress.update(success=outcomes[index].success, item=taxa[index].label)
        else:
            for index, taxon in enumerate(taxa):
                outcomes[index] = self._process_single(taxon, constraints, verbose)
                progress.update(success=outcomes[index].success, item=taxon.label)

        progress.complete()
        return outcomes

    def _process_single(self, taxon: TaxonInput, constraints: SearchConstraints,
                        verbose: bool) -> TaxonOutcome:
        """Run one taxon, converting any failure into a failed outcome."""
        start_time = time.time()

        try:
            outcome = self.pipeline.run_taxon(taxon, constraints, verbose)
        except Exception as e:
            self.error_handler.handle_error(e, operation="search_taxon", item_id=taxon.label)
            outcome = TaxonOutcome(taxon=taxon, error=e)

        outcome.duration = time.time() - start_time
        return outcome

    def run(self, taxa: List[TaxonInput], constraints: SearchConstraints,
            verbose: bool = True) -> BatchResult:
        """Run the batch and shape the result.

        A single taxon returns its table directly and re-raises its error.
        Several taxa return ``{label: table}`` with ``None`` for failed taxa.
        """
        outcomes = self.run_all(taxa, constraints, verbose)

        if len(outcomes) == 1:
            outcome = outcomes[0]
            if outcome.error is not None:
                raise outcome.error
            return outcome.result

        return collect_results(outcomes)


def collect_results(outcomes: Iterable[TaxonOutcome]) -> Dict[str, Optional[pd.DataFrame]]:
    """Key results by display label; a repeated label keeps the last outcome."""
    return {outcome.label: outcome.result for outcome in outcomes}


def build_inputs(taxa=None, ids=None) -> List[TaxonInput]:
    """Turn names or taxonomy IDs into TaxonInputs.

    Raises:
        ValueError: If neither or both of taxa and ids are given, or an ID is
            not integer-valued
    """
    if (taxa is None) == (ids is None):
        raise ValueError("Provide exactly one of taxa or ids")

    if taxa is not None:
        values = [taxa] if isinstance(taxa, str) else list(taxa)
        inputs = [TaxonInput.from_name(value) for value in values]
    else:
        values = [ids] if isinstance(ids, (str, int)) else list(ids)
        inputs = [TaxonInput.from_id(value) for value in values]

    if not inputs:
        raise ValueError("No taxa given")

    return inputs


def search_sequences(taxa=None,
                     ids=None,
                     seqrange: str = "1:3000",
                     getrelated: bool = False,
                     limit: int = 500,
                     entrez_query: Optional[str] = None,
                     hypothetical: bool = False,
                     verbose: bool = True,
                     max_workers: int = 1,
                     config: Optional[Config] = None,
                     pipeline: Optional[SequenceSearchPipeline] = None) -> BatchResult:
    """Search NCBI nuccore for sequence records of one or more taxa.

    Args:
        taxa: Taxon name or list of names
        ids: Taxonomy ID or list of IDs (instead of taxa)
        seqrange: Sequence length range, e.g. "1:3000"
        getrelated: Search a parent taxon when a taxon has no records
        limit: Maximum number of records per taxon (NCBI caps at 10000)
        entrez_query: Extra Entrez query ANDed to the search term
        hypothetical: Keep predicted (XM_/XR_) records
        verbose: Narrate progress at INFO instead of DEBUG
        max_workers: Number of taxa searched in parallel
        config: Connection settings; defaults to Config.default() with
            environment variables (NCBI_API_KEY, EMAIL, ...) merged in
        pipeline: Pre-built pipeline, mainly for tests

    Returns:
        A DataFrame with columns taxon, length, gene_desc, acc_no, gi_no for
        a single taxon, or a dict of such DataFrames keyed by input label
        (None where the taxon failed).
    """
    inputs = build_inputs(taxa, ids)

    constraints = SearchConstraints(
        seqrange=seqrange,
        limit=limit,
        entrez_query=entrez_query,
        hypothetical=hypothetical,
        getrelated=getrelated
    )

    if pipeline is None:
        if config is None:
            config = Config.default()
            config.merge_env_vars()
        pipeline = SequenceSearchPipeline(api_config=config.api)

    orchestrator = BatchOrchestrator(pipeline, max_workers=max_workers)
    return orchestrator.run(inputs, constraints, verbose)
