"""Writing batch results to disk."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd

from .models import RESULT_COLUMNS, TaxonOutcome

QUERY_COLUMN = "query"

FORMATS = ['tsv', 'csv', 'json', 'excel']


class OutputFormatter:
    """Combines per-taxon results into one table and writes it."""

    def __init__(self, excel_compatible: bool = True):
        """
        Initialize the formatter.

        Args:
            excel_compatible: Use a UTF-8 BOM for TSV/CSV output
        """
        self.excel_compatible = excel_compatible

    def combine(self, outcomes: List[TaxonOutcome]) -> pd.DataFrame:
        """Stack successful results, tagging rows with their input label."""
        frames = []
        for outcome in outcomes:
            if outcome.success and outcome.result is not None and not outcome.result.empty:
                frame = outcome.result.copy()
                frame.insert(0, QUERY_COLUMN, outcome.label)
                frames.append(frame)

        if not frames:
            return pd.DataFrame(columns=[QUERY_COLUMN] + RESULT_COLUMNS)

        return pd.concat(frames, ignore_index=True)

    def summarize(self, outcomes: List[TaxonOutcome]) -> List[Dict[str, Any]]:
        """One status row per input taxon."""
        rows = []
        for outcome in outcomes:
            rows.append({
                'query': outcome.label,
                'taxonomy_id': outcome.taxonomy_id,
                'searched_id': outcome.searched_id,
                'fallback': outcome.fallback.kind.value if outcome.fallback else None,
                'records': len(outcome.result) if outcome.result is not None else None,
                'error': str(outcome.error) if outcome.error is not None else None,
                'duration': round(outcome.duration, 2)
            })
        return rows

    def write(self, outcomes: List[TaxonOutcome],
              output_path: Union[str, Path],
              format: str = 'tsv') -> pd.DataFrame:
        """
        Write the combined table to a file.

        Args:
            outcomes: Batch outcomes in input order
            output_path: Path to output file
            format: One of 'tsv', 'csv', 'json', 'excel'

        Returns:
            The combined table that was written
        """
        if format not in FORMATS:
            raise ValueError(f"Unsupported format: {format}")

        path = Path(output_path)
        table = self.combine(outcomes)
        encoding = 'utf-8-sig' if self.excel_compatible else 'utf-8'

        if format == 'tsv':
            table.to_csv(path, sep='\t', index=False, encoding=encoding)
        elif format == 'csv':
            table.to_csv(path, index=False, encoding=encoding)
        elif format == 'json':
            self._write_json(table, outcomes, path)
        else:
            self._write_excel(table, outcomes, path)

        return table

    def _write_json(self, table: pd.DataFrame, outcomes: List[TaxonOutcome], path: Path) -> None:
        output = {
            'metadata': {
                'generated': datetime.now().isoformat(),
                'total_records': len(table),
                'columns': [QUERY_COLUMN] + RESULT_COLUMNS
            },
            'taxa': self.summarize(outcomes),
            'results': json.loads(table.to_json(orient='records'))
        }

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(output, f, indent=2, ensure_ascii=False)

    def _write_excel(self, table: pd.DataFrame, outcomes: List[TaxonOutcome], path: Path) -> None:
        with pd.ExcelWriter(path, engine='openpyxl') as writer:
            table.to_excel(writer, sheet_name='Sequences', index=False)
            pd.DataFrame(self.summarize(outcomes)).to_excel(writer, sheet_name='Taxa', index=False)
