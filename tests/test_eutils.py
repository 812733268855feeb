"""Tests for the E-utilities client."""

from unittest.mock import Mock, patch

import pytest
import requests

from taxon_seq_tool.config import APIConfig
from taxon_seq_tool.error_handler import RemoteRequestError
from taxon_seq_tool.eutils import POST_ID_THRESHOLD, EutilsClient, create_session
from taxon_seq_tool.summary import SummaryRetriever, parse_summary


def make_response(ok=True, status_code=200, content=b"<eSearchResult/>"):
    response = Mock()
    response.ok = ok
    response.status_code = status_code
    response.content = content
    return response


@pytest.fixture
def session():
    session = Mock()
    session.get.return_value = make_response()
    session.post.return_value = make_response()
    return session


@pytest.fixture
def client(session):
    config = APIConfig(email="lab@example.org", rate_limit_per_second=1000.0)
    return EutilsClient(config, session=session)


class TestEutilsClient:
    """Test cases for EutilsClient."""

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_esearch(self, mock_read, client, session):
        mock_read.return_value = {'Count': '3', 'IdList': ['30', '10', '20']}

        result = client.esearch('nuccore', 'txid4792[Organism:exp] AND 1:3000[SLEN]', retmax=500)

        assert result == {'count': 3, 'ids': ['30', '10', '20']}
        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs['params']
        assert url.endswith('/esearch.fcgi')
        assert params['db'] == 'nuccore'
        assert params['term'] == 'txid4792[Organism:exp] AND 1:3000[SLEN]'
        assert params['retmax'] == 500
        assert params['email'] == 'lab@example.org'
        assert params['tool'] == 'taxon-seq-search'
        assert 'api_key' not in params

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_api_key_sent(self, mock_read, session):
        mock_read.return_value = {'Count': '0', 'IdList': []}
        client = EutilsClient(APIConfig(ncbi_api_key="abc123"), session=session)

        client.esearch('taxonomy', 'Pythium', retmax=20)

        assert session.get.call_args.kwargs['params']['api_key'] == 'abc123'
        assert client.rate == 10.0

    def test_default_rate_without_key(self, session):
        assert EutilsClient(APIConfig(), session=session).rate == 3.0

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_esummary_small_list_uses_get(self, mock_read, client, session):
        mock_read.return_value = [{'Caption': 'AY1'}]

        items = client.esummary('nuccore', ['1', '2', '3'])

        assert items == [{'Caption': 'AY1'}]
        assert session.get.call_args.kwargs['params']['id'] == '1,2,3'
        assert 'retmax' not in session.get.call_args.kwargs['params']
        session.post.assert_not_called()

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_esummary_large_list_uses_post(self, mock_read, client, session):
        mock_read.return_value = []
        ids = [str(i) for i in range(POST_ID_THRESHOLD + 1)]

        client.esummary('nuccore', ids, retmax=len(ids))

        session.get.assert_not_called()
        data = session.post.call_args.kwargs['data']
        assert data['id'].split(',') == ids
        assert data['retmax'] == len(ids)

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_esummary_unexpected_shape(self, mock_read, client):
        mock_read.return_value = {'ERROR': 'Invalid uid'}

        with pytest.raises(RemoteRequestError):
            client.esummary('nuccore', ['1'])

    def test_http_error_status(self, client, session):
        session.get.return_value = make_response(ok=False, status_code=500)

        with pytest.raises(RemoteRequestError) as exc_info:
            client.esearch('nuccore', 'txid1[Organism:exp]', retmax=10)

        assert exc_info.value.status_code == 500
        assert exc_info.value.endpoint == 'esearch.fcgi'

    def test_connection_error(self, client, session):
        session.get.side_effect = requests.ConnectionError("Connection refused")

        with pytest.raises(RemoteRequestError, match="Connection refused"):
            client.esearch('nuccore', 'txid1[Organism:exp]', retmax=10)

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_unparseable_body(self, mock_read, client):
        mock_read.side_effect = RuntimeError("Failed to find tag 'eSearchResult'")

        with pytest.raises(RemoteRequestError, match="Could not parse"):
            client.esearch('nuccore', 'txid1[Organism:exp]', retmax=10)

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_missing_count(self, mock_read, client):
        mock_read.return_value = {'ErrorList': {'PhraseNotFound': ['xyz']}}

        with pytest.raises(RemoteRequestError):
            client.esearch('nuccore', 'xyz', retmax=10)

    @patch('taxon_seq_tool.eutils.Entrez.read')
    def test_efetch(self, mock_read, client, session):
        mock_read.return_value = [{'TaxId': '4792'}]

        records = client.efetch('taxonomy', ['4792'])

        assert records == [{'TaxId': '4792'}]
        params = session.get.call_args.kwargs['params']
        assert params['db'] == 'taxonomy'
        assert params['retmode'] == 'xml'

    def test_context_manager_closes_session(self, session):
        with EutilsClient(APIConfig(), session=session):
            pass

        session.close.assert_called_once()


class TestCreateSession:
    """Test cases for session setup."""

    def test_retry_adapter_mounted(self):
        session = create_session(APIConfig(retry_attempts=5))

        adapter = session.get_adapter("https://eutils.ncbi.nlm.nih.gov/")
        assert adapter.max_retries.total == 5
        assert 429 in adapter.max_retries.status_forcelist


ESEARCH_XML = b"""<?xml version="1.0" encoding="UTF-8" ?>
<!DOCTYPE eSearchResult PUBLIC "-//NLM//DTD esearch 20060628//EN" "https://eutils.ncbi.nlm.nih.gov/eutils/dtd/20060628/esearch.dtd">
<eSearchResult><Count>2</Count><RetMax>2</RetMax><RetStart>0</RetStart><IdList>
<Id>47002743</Id>
<Id>1519244568</Id>
</IdList><TranslationSet/><QueryTranslation>txid4792[Organism:exp] AND 1[SLEN] : 3000[SLEN]</QueryTranslation></eSearchResult>
"""

ESUMMARY_XML = b"""<?xml version="1.0" encoding="UTF-8" ?>
<!DOCTYPE eSummaryResult PUBLIC "-//NLM//DTD esummary v1 20041029//EN" "https://eutils.ncbi.nlm.nih.gov/eutils/dtd/20041029/esummary-v1.dtd">
<eSummaryResult>
<DocSum>
	<Id>47002743</Id>
	<Item Name="Caption" Type="String">AY598625</Item>
	<Item Name="Title" Type="String">Pythium oopapillum 18S ribosomal RNA gene, partial sequence</Item>
	<Item Name="Extra" Type="String">gi|47002743|gb|AY598625.1|[47002743]</Item>
	<Item Name="Gi" Type="Integer">47002743</Item>
	<Item Name="TaxId" Type="Integer">4792</Item>
	<Item Name="Length" Type="Integer">1825</Item>
	<Item Name="Status" Type="String">live</Item>
</DocSum>
<DocSum>
	<Id>1519244568</Id>
	<Item Name="Caption" Type="String">XM_027003111</Item>
	<Item Name="Title" Type="String">Pythium oopapillum hypothetical protein mRNA</Item>
	<Item Name="Extra" Type="String">gi|1519244568|ref|XM_027003111.1|[1519244568]</Item>
	<Item Name="Gi" Type="Integer">1519244568</Item>
	<Item Name="TaxId" Type="Integer">4792</Item>
	<Item Name="Length" Type="Integer">912</Item>
	<Item Name="Status" Type="String">live</Item>
</DocSum>
</eSummaryResult>
"""


class TestRealResponses:
    """E-utilities XML bodies parsed by Bio.Entrez, without patching."""

    def test_esearch_xml(self, client, session):
        session.get.return_value = make_response(content=ESEARCH_XML)

        result = client.esearch('nuccore', 'txid4792[Organism:exp] AND 1:3000[SLEN]', retmax=500)

        assert result == {'count': 2, 'ids': ['47002743', '1519244568']}

    def test_esummary_xml_to_records(self, client, session):
        session.get.return_value = make_response(content=ESUMMARY_XML)

        items = client.esummary('nuccore', ['47002743', '1519244568'])
        records = parse_summary(items)

        assert len(records) == 1
        record = records[0]
        assert record.taxon == "Pythium oopapillum"
        assert record.gene_desc == "18S ribosomal RNA gene, partial sequence"
        assert record.length == 1825
        assert record.acc_no == "AY598625"
        assert record.gi_no == 47002743

    def test_esummary_xml_keeping_predicted(self, client, session):
        session.get.return_value = make_response(content=ESUMMARY_XML)

        records = parse_summary(client.esummary('nuccore', ['47002743', '1519244568']),
                                keep_hypothetical=True)

        assert [r.acc_no for r in records] == ["AY598625", "027003111"]

    def test_retriever_over_client(self, client, session):
        session.get.return_value = make_response(content=ESUMMARY_XML)

        frame = SummaryRetriever(client).fetch_summaries(['47002743', '1519244568'])

        assert frame.to_dict('records') == [{
            'taxon': "Pythium oopapillum",
            'length': 1825,
            'gene_desc': "18S ribosomal RNA gene, partial sequence",
            'acc_no': "AY598625",
            'gi_no': 47002743,
        }]
