"""
Batch Cleaner - Removes messages in fixed-size batches

Batches are submitted with batchDelete until Gmail answers with
403 insufficientPermissions, which means the token only carries the
gmail.modify scope. From then on every batch, including the one that was
refused, is moved to Trash with batchModify instead.
"""

import time
import logging
from typing import Dict, Iterator, List, Optional, Callable

from googleapiclient.errors import HttpError

from sender_purge.errors import TRANSPORT_ERRORS, http_error_details
from sender_purge.models import BatchAction, BatchResult, ProcessingMode, PurgeConfig, PurgeStats


logger = logging.getLogger(__name__)

TRASH_LABELS = {'addLabelIds': ['TRASH'], 'removeLabelIds': ['INBOX']}


def is_permission_denied(error: Exception) -> bool:
    """True when Gmail refused the call because the token lacks the delete scope"""
    if not isinstance(error, HttpError):
        return False
    return error.resp.status == 403 and b"insufficientPermissions" in (error.content or b"")


def next_mode(
    mode: ProcessingMode,
    error: Optional[Exception],
    permission_denied: Callable[[Exception], bool] = is_permission_denied
) -> ProcessingMode:
    """Mode for the remaining batches after a delete attempt ended with `error`"""
    if mode is ProcessingMode.TRASH_ONLY:
        return mode
    if error is not None and permission_denied(error):
        return ProcessingMode.TRASH_ONLY
    return mode


class BatchCleaner:
    """Deletes or trashes message ids batch by batch"""

    def __init__(
        self,
        service,  # Gmail API service object
        config: PurgeConfig,
        progress_callback: Optional[Callable] = None,
        batch_http=None,
        permission_denied: Callable[[Exception], bool] = is_permission_denied,
        sleep: Optional[Callable[[float], None]] = None
    ):
        self.service = service
        self.config = config
        self.progress_callback = progress_callback
        self.batch_http = batch_http
        self.permission_denied = permission_denied
        self.sleep = sleep or time.sleep
        self.mode = ProcessingMode.DELETE_FIRST

    # === Main Entry Point ===

    def cleanup(self, message_ids: List[str]) -> PurgeStats:
        """Process every id, returns counters for the run"""
        stats = PurgeStats(mode=self.mode)
        if not message_ids:
            logger.debug("No message IDs provided for cleanup")
            return stats

        total_batches = self.batch_count(len(message_ids), self.config.batch_size)
        self._report_progress("purge_started", {
            "total_messages": len(message_ids),
            "batch_size": self.config.batch_size,
            "total_batches": total_batches
        })
        logger.debug(f"First message IDs: {' '.join(message_ids[:3])}")

        for number, batch in enumerate(self.chunk(message_ids, self.config.batch_size), 1):
            result = self._process_batch(number, batch)
            stats.results.append(result)
            stats.batches += 1

            if result.success:
                stats.processed += result.size
            else:
                stats.failed += result.size

            self._report_progress("batch_completed", {
                "batch": number,
                "size": result.size,
                "action": result.action.value,
                "success": result.success,
                "status": result.status,
                "error": result.error,
                "processed": stats.processed,
                "failed": stats.failed
            })

            if number < total_batches:
                self.sleep(self.config.pause_seconds)

        stats.mode = self.mode
        self._report_progress("purge_completed", {
            "processed": stats.processed,
            "failed": stats.failed,
            "batches": stats.batches,
            "mode": stats.mode.value
        })
        return stats

    # === Batch Processing ===

    def _process_batch(self, number: int, batch: List[str]) -> BatchResult:
        """Submit one batch according to the current mode"""
        if self.mode is ProcessingMode.TRASH_ONLY:
            self._report_progress("batch_started", {"batch": number, "size": len(batch), "action": BatchAction.TRASH.value})
            logger.debug(f"Using trash-only mode for {len(batch)} messages")
            return self._trash_batch(number, batch)

        self._report_progress("batch_started", {"batch": number, "size": len(batch), "action": BatchAction.DELETE.value})
        error = self._delete_batch(batch)
        if error is None:
            return BatchResult(number=number, size=len(batch), action=BatchAction.DELETE, success=True)

        self.mode = next_mode(self.mode, error, self.permission_denied)
        if self.mode is ProcessingMode.TRASH_ONLY:
            logger.debug(f"Batch {number}: delete permission denied, switching to trash mode")
            self._report_progress("permission_fallback", {"batch": number, "size": len(batch)})
            result = self._trash_batch(number, batch)
            result.fell_back = True
            return result

        status, body = http_error_details(error)
        return BatchResult(
            number=number,
            size=len(batch),
            action=BatchAction.DELETE,
            success=False,
            status=status,
            error=body
        )

    def _delete_batch(self, batch: List[str]) -> Optional[Exception]:
        """Permanently delete a batch, returns the error if the call failed"""
        logger.debug(f"Sending batch delete request for {len(batch)} messages")
        request = self.service.users().messages().batchDelete(userId='me', body={'ids': batch})
        return self._execute(request)

    def _trash_batch(self, number: int, batch: List[str]) -> BatchResult:
        """Move a batch to Trash by relabeling it"""
        logger.debug(f"Sending batch modify request for {len(batch)} messages")
        request = self.service.users().messages().batchModify(
            userId='me',
            body={'ids': batch, **TRASH_LABELS}
        )
        error = self._execute(request)
        if error is None:
            return BatchResult(number=number, size=len(batch), action=BatchAction.TRASH, success=True)

        status, body = http_error_details(error)
        return BatchResult(
            number=number,
            size=len(batch),
            action=BatchAction.TRASH,
            success=False,
            status=status,
            error=body
        )

    def _execute(self, request) -> Optional[Exception]:
        """Run a batch request with the batch timeout"""
        try:
            if self.batch_http is not None:
                request.execute(http=self.batch_http)
            else:
                request.execute()
        except (HttpError, *TRANSPORT_ERRORS) as error:
            status, _ = http_error_details(error)
            logger.debug(f"Batch request failed with HTTP {status}: {error}")
            return error
        return None

    # === Helpers ===

    @staticmethod
    def chunk(message_ids: List[str], size: int) -> Iterator[List[str]]:
        """Yield contiguous slices of at most `size` ids"""
        for start in range(0, len(message_ids), size):
            yield message_ids[start:start + size]

    @staticmethod
    def batch_count(total: int, size: int) -> int:
        return (total + size - 1) // size

    def _report_progress(self, event: str, data: Dict) -> None:
        """Send progress update if callback is set"""
        if self.progress_callback:
            self.progress_callback(event, data)
