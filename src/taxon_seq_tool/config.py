"""Configuration management for the taxon sequence search tool."""

import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from .models import SearchConstraints


@dataclass
class APIConfig:
    """E-utilities connection settings."""
    base_url: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
    ncbi_api_key: Optional[str] = None
    email: str = "user@example.com"
    tool: str = "taxon-seq-search"
    timeout_seconds: int = 60
    retry_attempts: int = 3
    backoff_factor: float = 1.0
    rate_limit_per_second: Optional[float] = None  # None: 3/s, or 10/s with an API key


@dataclass
class SearchConfig:
    """Default search constraints."""
    seqrange: str = "1:3000"
    limit: int = 500
    getrelated: bool = False
    hypothetical: bool = False
    entrez_query: Optional[str] = None

    def to_constraints(self) -> SearchConstraints:
        return SearchConstraints(
            seqrange=self.seqrange,
            limit=self.limit,
            entrez_query=self.entrez_query,
            hypothetical=self.hypothetical,
            getrelated=self.getrelated
        )


@dataclass
class BatchConfig:
    """Batch execution settings."""
    max_workers: int = 1
    verbose: bool = True


@dataclass
class OutputConfig:
    """Output configuration settings."""
    format: str = "tsv"
    excel_compatible: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    directory: str = ".taxon_seq_logs"
    file_logging: bool = True


@dataclass
class Config:
    """Main configuration container."""
    api: APIConfig
    search: SearchConfig
    batch: BatchConfig
    output: OutputConfig
    logging: LoggingConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            api=APIConfig(),
            search=SearchConfig(),
            batch=BatchConfig(),
            output=OutputConfig(),
            logging=LoggingConfig()
        )

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from JSON file."""
        if not path.exists():
            return cls.default()

        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            api=APIConfig(**data.get('api', {})),
            search=SearchConfig(**data.get('search', {})),
            batch=BatchConfig(**data.get('batch', {})),
            output=OutputConfig(**data.get('output', {})),
            logging=LoggingConfig(**data.get('logging', {}))
        )

    def to_file(self, path: Path) -> None:
        """Save configuration to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            'api': asdict(self.api),
            'search': asdict(self.search),
            'batch': asdict(self.batch),
            'output': asdict(self.output),
            'logging': asdict(self.logging)
        }

        with open(path, 'w') as f:
            json.dump(data, f, indent=2)

    def merge_env_vars(self) -> None:
        """Merge environment variables into configuration."""
        if os.getenv('NCBI_API_KEY'):
            self.api.ncbi_api_key = os.getenv('NCBI_API_KEY')
        if os.getenv('EMAIL'):
            self.api.email = os.getenv('EMAIL')
        if os.getenv('NCBI_RATE_LIMIT'):
            self.api.rate_limit_per_second = float(os.getenv('NCBI_RATE_LIMIT'))
        if os.getenv('TAXON_SEQ_LOG_DIR'):
            self.logging.directory = os.getenv('TAXON_SEQ_LOG_DIR')

    def merge_cli_args(self, **kwargs) -> None:
        """Merge CLI arguments into configuration; None means not given."""
        if kwargs.get('api_key'):
            self.api.ncbi_api_key = kwargs['api_key']
        if kwargs.get('email'):
            self.api.email = kwargs['email']

        if kwargs.get('seqrange') is not None:
            self.search.seqrange = kwargs['seqrange']
        if kwargs.get('limit') is not None:
            self.search.limit = kwargs['limit']
        if kwargs.get('entrez_query') is not None:
            self.search.entrez_query = kwargs['entrez_query']
        if kwargs.get('getrelated'):
            self.search.getrelated = True
        if kwargs.get('hypothetical'):
            self.search.hypothetical = True

        if kwargs.get('workers') is not None:
            self.batch.max_workers = kwargs['workers']

        if kwargs.get('output_format'):
            self.output.format = kwargs['output_format']

        if kwargs.get('no_log_file'):
            self.logging.file_logging = False


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    locations = [
        Path.home() / '.taxon_seq' / 'config.json',
        Path.home() / '.config' / 'taxon_seq' / 'config.json',
        Path('.taxon_seq.json'),
        Path('taxon_seq.config.json')
    ]

    for path in locations:
        if path.exists():
            return path

    return Path.home() / '.taxon_seq' / 'config.json'


def create_example_config(path: Optional[Path] = None) -> Path:
    """Create an example configuration file."""
    if path is None:
        path = Path('taxon_seq.config.example.json')

    config = Config.default()
    config.api.ncbi_api_key = "your_api_key_here"
    config.api.email = "your_email@example.com"
    config.search.entrez_query = "18S[Title]"

    config.to_file(path)
    return path
