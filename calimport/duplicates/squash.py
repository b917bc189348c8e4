"""Merging of duplicate records into a chosen master record.

The engine keeps no state and takes no locks. Callers must serialize squash
requests whose master or duplicate sets overlap.
"""

import logging
from typing import Any, Optional

from .exceptions import (
    RecordNotFoundError,
    SquashPrecondition,
    SquashValidationError,
    StoreError,
)
from .models import RecordId, SquashRequest, SquashResult
from .store import RecordStore

logger = logging.getLogger(__name__)


class SquashEngine:
    """Repoints references from duplicates to a master, then deletes the duplicates."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def validate(self, request: SquashRequest) -> Any:
        """Check a request before anything is changed.

        Args:
            request: Squash request to check

        Returns:
            The master record

        Raises:
            SquashValidationError: Naming the first failed precondition
        """
        singular = request.kind.singular
        master = (
            self.store.find_by_id(request.kind, request.master_id)
            if request.master_id is not None
            else None
        )

        if master is None:
            raise SquashValidationError(
                f"A master {singular} must be selected.", SquashPrecondition.MASTER_EXISTS
            )
        if not request.duplicate_ids:
            raise SquashValidationError(
                f"At least one duplicate {singular} must be selected.",
                SquashPrecondition.DUPLICATES_GIVEN,
            )
        if request.master_id in request.duplicate_ids:
            raise SquashValidationError(
                f"The master {singular} could not be squashed into itself.",
                SquashPrecondition.MASTER_NOT_DUPLICATE,
            )
        return master

    def squash(self, request: SquashRequest) -> SquashResult:
        """Merge every duplicate in ``request`` into its master.

        Duplicates are processed in the order given. One that does not
        resolve, or that the store fails on with StoreError, is skipped and
        left out of the result; the rest of the batch still runs. Any other
        store error propagates, leaving earlier duplicates squashed.

        Args:
            request: Validated or unvalidated squash request

        Returns:
            SquashResult listing the removed duplicates in processing order

        Raises:
            SquashValidationError: If the request fails validation
        """
        master = self.validate(request)
        result = SquashResult(kind=request.kind, master_id=master.id)

        for duplicate_id in request.duplicate_ids:
            try:
                duplicate, rewritten = self._squash_one(request, duplicate_id, master.id)
            except RecordNotFoundError as e:
                logger.info(f"Skipping duplicate: {e}")
                continue
            except StoreError as e:
                logger.warning(f"Failed to squash {request.kind.value} {duplicate_id}: {e}")
                continue
            except Exception:
                logger.exception(
                    f"Squash of {request.kind.plural} into {master.id} aborted at {duplicate_id}, "
                    f"already squashed: {result.squashed_ids}"
                )
                raise

            result.squashed.append(duplicate)
            result.rewritten += rewritten
            result.redirects[str(duplicate_id)] = master.id

        logger.info(result.message())
        return result

    def _squash_one(
        self, request: SquashRequest, duplicate_id: RecordId, master_id: RecordId
    ) -> tuple[Any, int]:
        duplicate: Optional[Any] = self.store.find_by_id(request.kind, duplicate_id)
        if duplicate is None:
            raise RecordNotFoundError(request.kind.value, duplicate_id)

        rewritten = self.store.rewrite_references(request.kind, duplicate_id, master_id)
        try:
            self.store.delete(request.kind, duplicate_id)
        except StoreError:
            logger.error(
                f"{request.kind.value} {duplicate_id} kept after {rewritten} references were "
                f"repointed to {master_id}; no redirect recorded"
            )
            raise
        logger.debug(
            f"Squashed {request.kind.value} {duplicate_id} into {master_id} "
            f"({rewritten} references rewritten)"
        )
        return duplicate, rewritten


def squash(request: SquashRequest, store: RecordStore) -> SquashResult:
    """Squash ``request`` against ``store``.

    Raises:
        SquashValidationError: If the request fails validation
    """
    return SquashEngine(store).squash(request)
