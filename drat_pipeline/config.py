"""
Configuration for the DRAT Pipeline Coordinator

This module contains all configuration settings for the pipeline coordinator,
including backend service endpoints, installation paths, polling parameters,
and the fixed identifiers passed to the external collaborators.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables
load_dotenv()


# ============================================================================
# CONSTANTS
# ============================================================================

# Environment variable locating the backend installation
HOME_ENV_VAR = "DRAT_HOME"

# Default service endpoints
DEFAULT_CATALOG_URL = "http://localhost:9000"
DEFAULT_WORKFLOW_URL = "http://localhost:9001"
DEFAULT_SEARCH_URL = "http://localhost:8080/solr"
DEFAULT_SEARCH_INDEX_NAME = "drat"
DEFAULT_STATUS_URL = "http://localhost:8080/opsui/status"

# Ports that must all be bound for a stage to run (and all free for reset)
SERVICE_PORTS = {
    "catalog": 9000,
    "workflow": 9001,
    "task execution": 9002,
    "search index": 8080,
}

# Fixed arguments for the external collaborators
COLLABORATORS = {
    "extractor_class": "org.apache.oodt.cas.metadata.extractors.CopyAndRewriteExtractor",
    "transfer_factory": "org.apache.oodt.cas.filemgr.datatransfer.InPlaceDataTransferFactory",
    "indexer_class": "org.apache.oodt.cas.filemgr.tools.SolrIndexer",
    "task_namespace": "urn:drat:",
}


@dataclass(frozen=True)
class ServiceEndpoint:
    """One backend service the pipeline depends on."""

    name: str
    port: int


@dataclass(frozen=True)
class PipelineConfig:
    """Pipeline coordinator configuration. Built once, never mutated."""

    # Root of the backend installation (binaries, config, logs, data)
    home: Path

    # Service endpoints
    catalog_url: str = DEFAULT_CATALOG_URL
    workflow_url: str = DEFAULT_WORKFLOW_URL
    search_url: str = DEFAULT_SEARCH_URL
    search_index_name: str = DEFAULT_SEARCH_INDEX_NAME
    status_url: str = DEFAULT_STATUS_URL
    required_ports: Tuple[Tuple[str, int], ...] = tuple(SERVICE_PORTS.items())

    # Timing (seconds)
    settle_delay: float = 3.0
    poll_interval: float = 0.5
    poll_burst: int = 10
    status_timeout: float = 30.0

    # Installation layout (relative to home)
    crawler_launcher: str = "crawler/bin/crawler_launcher"
    extractor_config: str = "extractors/code/default.cpr"
    catalog_lib_dir: str = "filemgr/lib"
    indexer_properties: str = "filemgr/etc/indexer.properties"
    workflow_client: str = "workflow/bin/wmgr-client"
    log_file: str = "logs/pipeline.log"

    workflow_data_dir: str = "data/workflow"
    catalog_data_dir: str = "data/catalog"
    archive_dir: str = "data/archive"

    def __post_init__(self):
        """Ensure home is an absolute Path."""
        object.__setattr__(self, "home", Path(self.home).expanduser().resolve())

    @classmethod
    def from_env(cls, home: Optional[str] = None) -> "PipelineConfig":
        """
        Create PipelineConfig from environment variables.

        Args:
            home: Installation root, overriding DRAT_HOME (optional)

        Returns:
            Configuration with endpoint overrides applied

        Raises:
            ConfigurationError: If no installation root is available
        """
        home = home or os.getenv(HOME_ENV_VAR)
        if not home:
            raise ConfigurationError(
                f"{HOME_ENV_VAR} is not set. Point it at the backend "
                "installation, e.g.:\n"
                f"  export {HOME_ENV_VAR}=/usr/local/drat/deploy"
            )

        return cls(
            home=Path(home),
            catalog_url=os.getenv("DRAT_CATALOG_URL", DEFAULT_CATALOG_URL),
            workflow_url=os.getenv("DRAT_WORKFLOW_URL", DEFAULT_WORKFLOW_URL),
            search_url=os.getenv("DRAT_SEARCH_URL", DEFAULT_SEARCH_URL),
            search_index_name=os.getenv("DRAT_SEARCH_INDEX_NAME", DEFAULT_SEARCH_INDEX_NAME),
            status_url=os.getenv("DRAT_STATUS_URL", DEFAULT_STATUS_URL),
        )

    def get_path(self, relative_path: str) -> Path:
        """Get absolute path for a relative path within home."""
        return self.home / relative_path

    @property
    def search_index_url(self) -> str:
        return f"{self.search_url.rstrip('/')}/{self.search_index_name}"

    @property
    def search_data_dir(self) -> str:
        return f"solr/{self.search_index_name}/data"

    def service_endpoints(self) -> List[ServiceEndpoint]:
        """The backends that must be simultaneously up (or down)."""
        return [ServiceEndpoint(name, port) for name, port in self.required_ports]

    def state_roots(self) -> Dict[str, Path]:
        """
        Persisted state owned by the backend services.

        Returns:
            Mapping of label to absolute path, in deletion order
        """
        return {
            "workflow data": self.get_path(self.workflow_data_dir),
            "catalog data": self.get_path(self.catalog_data_dir),
            "search index data": self.get_path(self.search_data_dir),
            "archived products": self.get_path(self.archive_dir),
        }
