import logging
from typing import List, Optional

from beanie.exceptions import DocumentNotFound
from pymongo.errors import DuplicateKeyError

from fdcatalog.core.config import settings
from fdcatalog.core.exceptions import ConcurrentModification, DuplicateKey, IssuerNotFound
from fdcatalog.database.models.fd_issuer_model import FDIssuer, FDIssuerDocument

logger = logging.getLogger(__name__)


class FDIssuerStore:
    """Persistence for issuer documents (schemes and slabs are embedded).

    ``replace`` writes the whole document. With revision checking enabled it
    only matches the stored document when its revision still equals the one
    the caller loaded, so a concurrent writer cannot be silently overwritten.
    """

    def __init__(self, enforce_revision: Optional[bool] = None):
        self.enforce_revision = settings.ENFORCE_REVISION_CHECK if enforce_revision is None else enforce_revision

    # Lists issuers in insertion order, active ones only unless asked otherwise
    async def list_issuers(self, active_only: bool = True) -> List[FDIssuer]:
        try:
            if active_only:
                documents = await FDIssuerDocument.find(FDIssuerDocument.is_active == True).to_list()  # noqa: E712
            else:
                documents = await FDIssuerDocument.find_all().to_list()
            return [document.to_issuer() for document in documents]
        except Exception as e:
            logger.error(f"Error listing FD issuers: {e}")
            raise

    # Retrieves a single issuer by key
    async def get(self, issuer_key: str) -> Optional[FDIssuer]:
        try:
            document = await FDIssuerDocument.find_one(FDIssuerDocument.issuer_key == issuer_key)
            return document.to_issuer() if document else None
        except Exception as e:
            logger.error(f"Error retrieving FD issuer {issuer_key}: {e}")
            raise

    async def exists(self, issuer_key: str) -> bool:
        count = await FDIssuerDocument.find({"issuer_key": issuer_key}).count()
        return count > 0

    # Persists a new issuer document; the unique index rejects duplicate keys
    async def insert(self, issuer: FDIssuer) -> FDIssuer:
        document = FDIssuerDocument.from_issuer(issuer)
        try:
            await document.insert()
        except DuplicateKeyError:
            logger.warning(f"Insert rejected, issuer key already exists: {issuer.issuer_key}")
            raise DuplicateKey(issuer.issuer_key)
        except Exception as e:
            logger.error(f"Error inserting FD issuer {issuer.issuer_key}: {e}")
            raise
        logger.info(f"FD issuer {issuer.issuer_key} inserted")
        return document.to_issuer()

    # Replaces the whole issuer document, guarded by the loaded revision
    async def replace(self, issuer: FDIssuer, expected_revision: Optional[int] = None) -> FDIssuer:
        query = {"issuer_key": issuer.issuer_key}
        if self.enforce_revision and expected_revision is not None:
            query["revision"] = expected_revision

        document = FDIssuerDocument.from_issuer(issuer)
        try:
            result = await FDIssuerDocument.find_one(query).replace_one(document)
        except DocumentNotFound:
            result = None
        except Exception as e:
            logger.error(f"Error replacing FD issuer {issuer.issuer_key}: {e}")
            raise

        if result is None or result.matched_count == 0:
            if await self.exists(issuer.issuer_key):
                logger.warning(
                    f"Replace of FD issuer {issuer.issuer_key} lost a race (expected revision {expected_revision})"
                )
                raise ConcurrentModification(issuer.issuer_key, expected_revision)
            logger.warning(f"FD issuer {issuer.issuer_key} disappeared before replace")
            raise IssuerNotFound(issuer.issuer_key)

        logger.info(f"FD issuer {issuer.issuer_key} replaced (revision {issuer.revision})")
        return issuer

    # Deletes an issuer by key; returns False when it does not exist
    async def delete(self, issuer_key: str) -> bool:
        try:
            document = await FDIssuerDocument.find_one(FDIssuerDocument.issuer_key == issuer_key)
            if not document:
                return False
            await document.delete()
            logger.info(f"FD issuer {issuer_key} deleted")
            return True
        except Exception as e:
            logger.error(f"Error deleting FD issuer {issuer_key}: {e}")
            raise

    # Truncates the collection and bulk-inserts the given issuers
    async def replace_all(self, issuers: List[FDIssuer]) -> int:
        await FDIssuerDocument.delete_all()
        if not issuers:
            return 0
        await FDIssuerDocument.insert_many([FDIssuerDocument.from_issuer(issuer) for issuer in issuers])
        logger.info(f"Imported {len(issuers)} FD issuers")
        return len(issuers)


fd_issuer_store = FDIssuerStore()
