"""Reading taxon lists from input files."""

import csv
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd


class InputParser:
    """Parser for taxon list files (text, CSV/TSV, JSON, Excel).

    Every reader returns taxon names or taxonomy IDs as strings, in file
    order. Whether they are names or IDs is decided by the caller.
    """

    ENCODINGS = ['utf-8', 'utf-8-sig', 'latin-1', 'cp1252']

    DELIMITERS = [',', '\t', ';', '|']

    # Header keywords, most specific first
    COLUMN_KEYWORDS = [
        ['taxid', 'tax_id', 'taxonomy_id', 'taxonomy id'],
        ['taxon', 'species', 'organism'],
        ['scientific_name', 'scientific name'],
        ['name']
    ]

    JSON_KEYS = ['taxon', 'name', 'taxid', 'id']

    def __init__(self):
        self.last_format = None
        self.last_encoding = None
        self.last_delimiter = None

    def parse_file(self, file_path: Union[str, Path],
                   encoding: Optional[str] = None,
                   delimiter: Optional[str] = None) -> List[str]:
        """
        Parse a file and return the taxa it lists.

        Args:
            file_path: Path to input file
            encoding: File encoding (auto-detected if None)
            delimiter: Delimiter for CSV files (auto-detected if None)

        Returns:
            List of taxon names or taxonomy IDs

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {file_path}")

        self.last_delimiter = None
        suffix = path.suffix.lower()

        if suffix in ('.xlsx', '.xls'):
            self.last_format, self.last_encoding = 'excel', None
            return self._parse_excel(path)

        self.last_encoding = encoding or self._detect_encoding(path)

        if suffix in ('.csv', '.tsv'):
            self.last_format = 'csv'
            self.last_delimiter = delimiter or self._detect_delimiter(path, self.last_encoding)
            return self._parse_csv(path, self.last_encoding, self.last_delimiter)

        if suffix == '.json':
            self.last_format = 'json'
            return self._parse_json(path, self.last_encoding)

        self.last_format = 'text'
        return self._parse_text(path, self.last_encoding)

    @staticmethod
    def _clean(values: Iterable[Any]) -> List[str]:
        cleaned = []
        for value in values:
            if value is None:
                continue
            text = ' '.join(str(value).split())
            if text:
                cleaned.append(text)
        return cleaned

    def _parse_text(self, path: Path, encoding: str) -> List[str]:
        """One taxon per line; a line holding commas or tabs lists several."""
        taxa = []
        with open(path, 'r', encoding=encoding) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                if '\t' in line:
                    taxa.extend(self._clean(line.split('\t')))
                elif ',' in line:
                    taxa.extend(self._clean(line.split(',')))
                else:
                    taxa.extend(self._clean([line]))
        return taxa

    def _parse_csv(self, path: Path, encoding: str, delimiter: str) -> List[str]:
        """Take the taxon column when there is a header, else the first column."""
        with open(path, 'r', encoding=encoding, newline='') as f:
            rows = [row for row in csv.reader(f, delimiter=delimiter) if row]

        if not rows:
            return []

        column = self._find_taxon_column(rows[0])
        if column is None:
            return self._clean(row[0] for row in rows)

        return self._clean(row[column] for row in rows[1:] if column < len(row))

    def _parse_excel(self, path: Path) -> List[str]:
        """Parse the first sheet of a workbook."""
        df = pd.read_excel(path, sheet_name=0)
        column = self._find_taxon_column(list(df.columns))
        series = df.iloc[:, column if column is not None else 0]
        return self._clean(series.dropna())

    def _parse_json(self, path: Path, encoding: str) -> List[str]:
        """Parse a JSON list, or an object holding a ``taxa`` or ``ids`` list."""
        with open(path, 'r', encoding=encoding) as f:
            data = json.load(f)

        if isinstance(data, dict):
            data = data.get('taxa') or data.get('ids') or []

        values = []
        for item in data:
            if isinstance(item, dict):
                key = next((k for k in self.JSON_KEYS if k in item), None)
                values.append(item[key] if key else None)
            else:
                values.append(item)
        return self._clean(values)

    def _detect_encoding(self, path: Path) -> str:
        """Pick the first encoding that decodes the start of the file."""
        with open(path, 'rb') as f:
            head = f.read(4096)

        if head.startswith(b'\xef\xbb\xbf'):
            return 'utf-8-sig'

        for encoding in self.ENCODINGS:
            try:
                head.decode(encoding)
                return encoding
            except UnicodeDecodeError:
                continue

        return 'utf-8'

    def _detect_delimiter(self, path: Path, encoding: str) -> str:
        """Tab for .tsv, otherwise the most frequent candidate delimiter."""
        if path.suffix.lower() == '.tsv':
            return '\t'

        with open(path, 'r', encoding=encoding) as f:
            sample = f.read(4096)

        best = max(self.DELIMITERS, key=sample.count)
        return best if sample.count(best) else ','

    def _find_taxon_column(self, header_row: List[Any]) -> Optional[int]:
        """Index of the column holding taxa, or None if the row is not a header."""
        cells = [str(cell).lower().strip() if isinstance(cell, str) else '' for cell in header_row]

        for keywords in self.COLUMN_KEYWORDS:
            for index, cell in enumerate(cells):
                if cell and any(keyword in cell for keyword in keywords):
                    return index

        return None

    def get_format_info(self) -> Dict[str, Any]:
        """Get information about the last parsed file."""
        return {
            'format': self.last_format,
            'encoding': self.last_encoding,
            'delimiter': self.last_delimiter
        }
