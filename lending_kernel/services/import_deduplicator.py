"""
ImportDeduplicator -- idempotency gate for bulk loan imports.

Every imported loan carries an import hash.  A hash seen before means the
record was already ingested and the import of that record is rejected.

The check is a read before the write, so two concurrent imports of the same
hash can both pass it.  The unique constraint on ``loans.import_hash`` makes
the second commit fail instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lending_kernel.domain.dtos import LoanFilter
from lending_kernel.exceptions import ImportHashExistentError, ImportHashRequiredError
from lending_kernel.logging_config import get_logger
from lending_kernel.repositories.base import LoanRepository, TransactionHandle
from lending_kernel.utils.hashing import hash_payload

logger = get_logger("services.import_deduplicator")


class ImportDeduplicator:
    """Rejects missing and already-seen import hashes."""

    def __init__(self, loans: LoanRepository):
        self._loans = loans

    def ensure_not_duplicate(
        self,
        import_hash: str | None,
        *,
        session: TransactionHandle | None = None,
    ) -> str:
        """
        Return ``import_hash`` if it may be imported.

        Raises:
            ImportHashRequiredError: If the hash is None, empty, or blank.
            ImportHashExistentError: If a loan already carries the hash.
        """
        if import_hash is None or not import_hash.strip():
            raise ImportHashRequiredError()

        existing = self._loans.count(LoanFilter(import_hash=import_hash), session=session)
        if existing > 0:
            logger.info("import_hash_duplicate", extra={"import_hash": import_hash})
            raise ImportHashExistentError(import_hash)
        return import_hash

    @staticmethod
    def import_hash_for(record: Mapping[str, Any]) -> str:
        """
        Deterministic hash of an external record.

        For sources that do not supply their own idempotency key.  Key order
        and timestamp spelling do not affect the result.
        """
        return hash_payload(dict(record))
