"""Tag-filtered Logseq task queries with structural prerequisite inference."""

from qquery.api import LogseqApi
from qquery.core.database.store import SqliteStore
from qquery.core.query.assembler import assemble
from qquery.core.store.api_store import ApiStore
from qquery.protocols import ApiProtocol, DocumentStore

__all__ = ["ApiProtocol", "ApiStore", "DocumentStore", "LogseqApi", "SqliteStore", "assemble"]
