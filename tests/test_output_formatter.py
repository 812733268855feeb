"""Tests for output formatting."""

import json

import pandas as pd
import pytest

from taxon_seq_tool.models import (
    RESULT_COLUMNS, FallbackKind, RelativeTaxon, SequenceRecord, TaxonInput,
    TaxonOutcome, empty_result, records_to_frame
)
from taxon_seq_tool.output_formatter import QUERY_COLUMN, OutputFormatter


@pytest.fixture
def outcomes():
    ultimum = records_to_frame([
        SequenceRecord("Pythium ultimum", 1800, "18S ribosomal RNA gene", "AY598625", 47002743),
        SequenceRecord("Pythium ultimum", 820, "ITS1, partial sequence", "HQ643396", 323345001),
    ])
    related = records_to_frame([
        SequenceRecord("Pythium sp.", 1100, "28S large subunit", "KF853238", 571031021),
    ])
    return [
        TaxonOutcome(taxon=TaxonInput.from_name("Pythium ultimum"), result=ultimum,
                     taxonomy_id="65071", searched_id="65071", duration=1.234),
        TaxonOutcome(taxon=TaxonInput.from_name("Nonexistus fictus"),
                     error=ValueError("No taxonomy ID found for taxon: Nonexistus fictus")),
        TaxonOutcome(taxon=TaxonInput.from_id("4792"), result=related,
                     taxonomy_id="4792", searched_id="4797",
                     fallback=RelativeTaxon(FallbackKind.ANCESTRY, "4797", "Pythium")),
        TaxonOutcome(taxon=TaxonInput.from_id("101203"), result=empty_result(),
                     taxonomy_id="101203", searched_id="101203"),
    ]


class TestOutputFormatter:
    """Test cases for OutputFormatter."""

    def test_combine(self, outcomes):
        """Rows are tagged with their query and keep input order."""
        table = OutputFormatter().combine(outcomes)

        assert list(table.columns) == [QUERY_COLUMN] + RESULT_COLUMNS
        assert table[QUERY_COLUMN].tolist() == ["Pythium ultimum", "Pythium ultimum", "4792"]

    def test_combine_nothing(self):
        table = OutputFormatter().combine([])

        assert table.empty
        assert list(table.columns) == [QUERY_COLUMN] + RESULT_COLUMNS

    def test_summarize(self, outcomes):
        rows = OutputFormatter().summarize(outcomes)

        assert rows[0]['records'] == 2
        assert rows[0]['duration'] == 1.23
        assert rows[1]['records'] is None
        assert "Nonexistus fictus" in rows[1]['error']
        assert rows[2]['fallback'] == 'ancestry'
        assert rows[3]['records'] == 0

    def test_write_tsv(self, outcomes, tmp_path):
        path = tmp_path / "results.tsv"

        OutputFormatter(excel_compatible=False).write(outcomes, path)

        loaded = pd.read_csv(path, sep='\t')
        assert loaded['acc_no'].tolist() == ["AY598625", "HQ643396", "KF853238"]
        assert loaded['gi_no'].tolist() == [47002743, 323345001, 571031021]

    def test_write_csv_with_bom(self, outcomes, tmp_path):
        path = tmp_path / "results.csv"

        OutputFormatter(excel_compatible=True).write(outcomes, path, format='csv')

        assert path.read_bytes().startswith(b'\xef\xbb\xbf')

    def test_write_json(self, outcomes, tmp_path):
        """Test JSON output with metadata and per-taxon status."""
        path = tmp_path / "results.json"

        OutputFormatter().write(outcomes, path, format='json')

        data = json.loads(path.read_text(encoding='utf-8'))
        assert data['metadata']['total_records'] == 3
        assert len(data['taxa']) == 4
        assert data['results'][0]['taxon'] == "Pythium ultimum"
        assert data['results'][0]['length'] == 1800

    def test_write_excel(self, outcomes, tmp_path):
        path = tmp_path / "results.xlsx"

        OutputFormatter().write(outcomes, path, format='excel')

        sheets = pd.read_excel(path, sheet_name=None)
        assert set(sheets) == {'Sequences', 'Taxa'}
        assert len(sheets['Sequences']) == 3
        assert len(sheets['Taxa']) == 4

    def test_unknown_format(self, outcomes, tmp_path):
        with pytest.raises(ValueError):
            OutputFormatter().write(outcomes, tmp_path / "out.xml", format='xml')
