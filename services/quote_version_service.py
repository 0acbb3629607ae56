"""
Quote version history.

Versions are append-only snapshots of a quote header and its items.
Restoring a version first snapshots the current state, so a restore can
itself be undone by restoring the backup.

Version numbers come from max(version_number) + 1. The quote_versions
table has a unique (quote_id, version_number) constraint; a concurrent
writer that claims the same number loses the insert and retries with a
fresh maximum.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.quote import QuoteSnapshot, RestoreResult
from exceptions import (
    DatabaseError,
    EmptySnapshotError,
    QuoteNotFoundError,
    VersionNotFoundError,
)

logger = structlog.get_logger(__name__)

UNIQUE_VIOLATION = "23505"

# Header fields written back on restore
RESTORABLE_QUOTE_FIELDS = (
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_address",
    "pool_config",
    "valid_until",
    "subtotal",
    "discount_percent",
    "discount_amount",
    "total_price",
    "notes",
    "internal_notes",
    "terms_and_conditions",
)

ITEM_FIELDS = (
    "product_id",
    "name",
    "description",
    "category",
    "quantity",
    "unit",
    "unit_price",
    "total_price",
    "sort_order",
)


def is_unique_violation(error: Exception) -> bool:
    """True if a client error is a PostgreSQL unique-constraint violation."""
    return getattr(error, "code", None) == UNIQUE_VIOLATION or "duplicate key" in str(error)


class QuoteVersionService:
    """
    Quote version business logic.

    Handles snapshot, list, get and restore of quote versions.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "quote_versions"
        self.quotes_table = "quotes"
        self.items_table = "quote_items"

    # ===================
    # READ OPERATIONS
    # ===================

    def list_versions(self, quote_id: str) -> list[QuoteSnapshot]:
        """
        Get all versions of a quote, newest first.

        Args:
            quote_id: Quote UUID

        Returns:
            List of QuoteSnapshot
        """
        logger.debug("listing_quote_versions", quote_id=quote_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("quote_id", quote_id)
                .order("version_number", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("list_quote_versions_failed", quote_id=quote_id, error=str(e))
            raise DatabaseError("select", str(e))

        return [QuoteSnapshot.model_validate(row) for row in result.data]

    def get_version(self, quote_id: str, version_id: str) -> QuoteSnapshot:
        """
        Get one version of a quote.

        Raises:
            VersionNotFoundError: No such version on this quote
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", version_id)
                .eq("quote_id", quote_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_quote_version_failed", version_id=version_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise VersionNotFoundError(quote_id, version_id)

        return QuoteSnapshot.model_validate(result.data[0])

    def _get_quote(self, quote_id: str) -> dict:
        try:
            result = (
                self.db.table(self.quotes_table)
                .select("*")
                .eq("id", quote_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_quote_failed", quote_id=quote_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise QuoteNotFoundError(quote_id)

        return result.data[0]

    def _get_items(self, quote_id: str) -> list[dict]:
        try:
            result = (
                self.db.table(self.items_table)
                .select("*")
                .eq("quote_id", quote_id)
                .order("sort_order")
                .execute()
            )
        except Exception as e:
            logger.error("get_quote_items_failed", quote_id=quote_id, error=str(e))
            raise DatabaseError("select", str(e))

        return result.data or []

    def _latest_version_number(self, quote_id: str) -> int:
        try:
            result = (
                self.db.table(self.table)
                .select("version_number")
                .eq("quote_id", quote_id)
                .order("version_number", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_latest_version_failed", quote_id=quote_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return 0
        return result.data[0]["version_number"] or 0

    # ===================
    # WRITE OPERATIONS
    # ===================

    def _insert_version(
        self,
        quote_id: str,
        snapshot: dict,
        notes: Optional[str],
        created_by: Optional[str]
    ) -> QuoteSnapshot:
        """Insert a version under the next free number, retrying on conflicts."""
        attempts = settings.version_insert_max_retries

        for attempt in range(1, attempts + 1):
            version_number = self._latest_version_number(quote_id) + 1
            row = {
                "quote_id": quote_id,
                "version_number": version_number,
                "snapshot": snapshot,
                "notes": notes or f"Version {version_number}",
                "created_by": created_by,
            }

            try:
                result = self.db.table(self.table).insert(row).execute()
            except Exception as e:
                if is_unique_violation(e) and attempt < attempts:
                    logger.warning(
                        "quote_version_number_taken",
                        quote_id=quote_id,
                        version_number=version_number,
                        attempt=attempt
                    )
                    continue
                logger.error(
                    "create_quote_version_failed",
                    quote_id=quote_id,
                    version_number=version_number,
                    error=str(e)
                )
                raise DatabaseError("insert", str(e), {"quote_id": quote_id})

            logger.info(
                "quote_version_created",
                quote_id=quote_id,
                version_number=version_number
            )
            return QuoteSnapshot.model_validate(result.data[0])

        # Unreachable: the last attempt either returns or raises
        raise DatabaseError("insert", "version number retries exhausted", {"quote_id": quote_id})

    def snapshot(
        self,
        quote_id: str,
        notes: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> QuoteSnapshot:
        """
        Record the current state of a quote as a new version.

        Args:
            quote_id: Quote UUID
            notes: Version note (defaults to "Version {n}")
            created_by: User who created the version

        Returns:
            Created QuoteSnapshot

        Raises:
            QuoteNotFoundError: If the quote does not exist
            DatabaseError: If the insert fails
        """
        logger.info("creating_quote_version", quote_id=quote_id)

        quote = self._get_quote(quote_id)
        items = self._get_items(quote_id)

        payload = {
            "quote": quote,
            "items": items,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        return self._insert_version(quote_id, payload, notes, created_by)

    def _insert_items(self, quote_id: str, items: list[dict]) -> None:
        if not items:
            return
        rows = [
            {
                **{field: item.get(field) for field in ITEM_FIELDS},
                "quote_id": quote_id,
                "sort_order": item.get("sort_order", index),
            }
            for index, item in enumerate(items)
        ]
        self.db.table(self.items_table).insert(rows).execute()

    def _rollback_items(self, quote_id: str, backup: QuoteSnapshot) -> None:
        """Put the pre-restore items back from the backup version."""
        try:
            self.db.table(self.items_table).delete().eq("quote_id", quote_id).execute()
            self._insert_items(quote_id, backup.items)
        except Exception as e:
            logger.error(
                "restore_rollback_failed",
                quote_id=quote_id,
                backup_version=backup.version_number,
                error=str(e)
            )

    def restore(self, quote_id: str, version_id: str) -> RestoreResult:
        """
        Restore a quote to an earlier version.

        The current state is saved as a backup version first. Items are
        replaced before the header is updated; if either write fails, the
        previous items are put back and the header is left untouched.

        Args:
            quote_id: Quote UUID
            version_id: Version UUID to restore

        Returns:
            RestoreResult

        Raises:
            VersionNotFoundError: Version missing or on another quote
            EmptySnapshotError: Version has no quote header
            QuoteNotFoundError: Quote no longer exists
            DatabaseError: If any write fails
        """
        logger.info("restoring_quote_version", quote_id=quote_id, version_id=version_id)

        target = self.get_version(quote_id, version_id)
        header = target.header
        if not header:
            raise EmptySnapshotError(version_id)

        backup = self.snapshot(
            quote_id,
            notes=f"Backup before restoring version {target.version_number}"
        )

        restored_header = {
            field: header.get(field)
            for field in RESTORABLE_QUOTE_FIELDS
            if field in header
        }

        # Items are replaced first; the header is only touched once they are in place.
        try:
            self.db.table(self.items_table).delete().eq("quote_id", quote_id).execute()
        except Exception as e:
            logger.error("restore_quote_items_delete_failed", quote_id=quote_id, error=str(e))
            raise DatabaseError(
                "restore",
                str(e),
                {"quote_id": quote_id, "backup_version": backup.version_number}
            )

        try:
            self._insert_items(quote_id, target.items)
            if restored_header:
                self.db.table(self.quotes_table).update(restored_header).eq("id", quote_id).execute()
        except Exception as e:
            logger.error(
                "restore_quote_failed",
                quote_id=quote_id,
                version_id=version_id,
                error=str(e)
            )
            self._rollback_items(quote_id, backup)
            raise DatabaseError(
                "restore",
                str(e),
                {"quote_id": quote_id, "backup_version": backup.version_number}
            )

        logger.info(
            "quote_version_restored",
            quote_id=quote_id,
            restored_version=target.version_number,
            backup_version=backup.version_number,
            items=len(target.items)
        )

        return RestoreResult(
            quote_id=quote_id,
            restored_version=target.version_number,
            backup_version=backup.version_number,
            items_restored=len(target.items),
            message=f"Quote restored to version {target.version_number}"
        )


# Singleton instance
_service: Optional[QuoteVersionService] = None


def get_quote_version_service() -> QuoteVersionService:
    """Get or create QuoteVersionService instance."""
    global _service
    if _service is None:
        _service = QuoteVersionService()
    return _service
