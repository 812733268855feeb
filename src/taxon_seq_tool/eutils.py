"""HTTP client for the NCBI E-utilities endpoints."""

import io
from typing import Any, Dict, List, Optional, Sequence
from xml.parsers.expat import ExpatError

import requests
from Bio import Entrez
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import APIConfig
from .error_handler import RemoteRequestError
from .logging_config import LogTimer, get_logger
from .rate_limiter import EUTILS_API, configure_eutils_rate_limit, rate_limit

logger = get_logger('eutils')

# Above this many ids the request goes out as a POST body
POST_ID_THRESHOLD = 200

RETRY_ON_STATUS = [429, 500, 502, 503, 504]


def create_session(config: APIConfig) -> requests.Session:
    """Create a session with retry configuration."""
    session = requests.Session()

    retry_strategy = Retry(
        total=config.retry_attempts,
        backoff_factor=config.backoff_factor,
        status_forcelist=RETRY_ON_STATUS,
        allowed_methods=["GET", "POST"],
        raise_on_status=False
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


class EutilsClient:
    """Thin E-utilities client: builds requests, paces them, parses XML.

    Responses are parsed with ``Bio.Entrez.read`` so fields are looked up by
    their E-utilities names (``Count``, ``IdList``, ``Caption``, ...).
    """

    def __init__(self, config: Optional[APIConfig] = None,
                 session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            config: Connection settings (endpoint, credentials, retries)
            session: Optional pre-built session, mainly for tests
        """
        self.config = config or APIConfig()
        self.session = session or create_session(self.config)
        self.rate = configure_eutils_rate_limit(
            self.config.ncbi_api_key,
            self.config.rate_limit_per_second
        )

    def _common_params(self) -> Dict[str, str]:
        params = {'tool': self.config.tool, 'email': self.config.email}
        if self.config.ncbi_api_key:
            params['api_key'] = self.config.ncbi_api_key
        return params

    def _request(self, endpoint: str, params: Dict[str, Any], post: bool = False) -> Any:
        """Send one request and return the parsed XML body.

        Raises:
            RemoteRequestError: On connection failure, non-success status or
                a body that is not valid E-utilities XML
        """
        url = f"{self.config.base_url.rstrip('/')}/{endpoint}"
        payload = dict(self._common_params(), **params)

        rate_limit(EUTILS_API)

        try:
            with LogTimer(f"{endpoint} {params.get('db', '')}"):
                if post:
                    response = self.session.post(url, data=payload, timeout=self.config.timeout_seconds)
                else:
                    response = self.session.get(url, params=payload, timeout=self.config.timeout_seconds)
        except requests.RequestException as e:
            raise RemoteRequestError(f"{endpoint} request failed: {e}", endpoint=endpoint) from e

        if not response.ok:
            raise RemoteRequestError(
                f"{endpoint} returned HTTP {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code
            )

        try:
            return Entrez.read(io.BytesIO(response.content))
        except (ValueError, RuntimeError, ExpatError) as e:
            raise RemoteRequestError(f"Could not parse {endpoint} response: {e}", endpoint=endpoint) from e

    def esearch(self, db: str, term: str, retmax: int) -> Dict[str, Any]:
        """Run a search and return ``{'count': int, 'ids': [...]}``."""
        record = self._request('esearch.fcgi', {'db': db, 'term': term, 'retmax': retmax})

        try:
            count = int(record['Count'])
            ids = [str(i) for i in record.get('IdList', [])]
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteRequestError(f"Unexpected esearch response: {e}", endpoint='esearch.fcgi') from e

        logger.debug(f"esearch db={db} term={term!r}: {count} hits, {len(ids)} returned")
        return {'count': count, 'ids': ids}

    def esummary(self, db: str, ids: Sequence[str], retmax: Optional[int] = None) -> List[Any]:
        """Fetch document summaries for a list of ids."""
        params: Dict[str, Any] = {'db': db, 'id': ','.join(str(i) for i in ids)}
        if retmax is not None:
            params['retmax'] = retmax

        record = self._request('esummary.fcgi', params, post=len(ids) > POST_ID_THRESHOLD)

        if not isinstance(record, list):
            raise RemoteRequestError("Unexpected esummary response shape", endpoint='esummary.fcgi')

        return record

    def efetch(self, db: str, ids: Sequence[str]) -> Any:
        """Fetch full XML records for a list of ids."""
        return self._request(
            'efetch.fcgi',
            {'db': db, 'id': ','.join(str(i) for i in ids), 'retmode': 'xml'},
            post=len(ids) > POST_ID_THRESHOLD
        )

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
