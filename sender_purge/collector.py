"""
Message Collector - Enumerates message ids from one sender
"""

import json
import logging
from typing import Dict, List, Optional, Callable, Tuple

from googleapiclient.errors import HttpError

from sender_purge.errors import (
    EnumerationError,
    PaginationLimitExceeded,
    TRANSPORT_ERRORS,
    http_error_details,
)
from sender_purge.models import PurgeConfig


logger = logging.getLogger(__name__)


class MessageCollector:
    """Pages through messages.list for a sender query"""

    def __init__(
        self,
        service,  # Gmail API service object
        config: PurgeConfig,
        progress_callback: Optional[Callable] = None
    ):
        self.service = service
        self.config = config
        self.progress_callback = progress_callback

    # === Main Entry Point ===

    def collect(self, sender: str) -> List[str]:
        """Return every message id matching the sender, in server order"""
        query = self.build_query(sender)
        logger.debug(f"Search query: {query}")

        self._report_progress("collection_started", {"sender": sender, "query": query})

        message_ids: List[str] = []
        page_token = None
        page = 0

        while True:
            if page >= self.config.max_pages:
                logger.warning(f"Stopping enumeration after {page} pages, server still returning page tokens")
                raise PaginationLimitExceeded(self.config.max_pages, len(message_ids))

            page += 1
            logger.debug(f"Fetching page {page}")
            page_ids, page_token = self._fetch_page(query, page_token, page)

            message_ids.extend(page_ids)
            if page_ids:
                logger.debug(f"Sample message IDs: {' '.join(page_ids[:3])}")
            else:
                logger.debug(f"Page {page}: No messages found")

            self._report_progress("page_fetched", {
                "page": page,
                "count": len(page_ids),
                "total": len(message_ids)
            })

            if not page_token:
                break

        self._report_progress("collection_completed", {"total": len(message_ids), "pages": page})
        logger.debug(f"Collected {len(message_ids)} message IDs across {page} pages")

        return message_ids

    # === Page Fetching ===

    def _fetch_page(self, query: str, page_token: Optional[str], page: int) -> Tuple[List[str], Optional[str]]:
        """Fetch one page of ids, raising EnumerationError on any failure"""
        try:
            results = self.service.users().messages().list(
                userId='me',
                q=query,
                maxResults=self.config.page_size,
                pageToken=page_token
            ).execute()
        except (HttpError, *TRANSPORT_ERRORS) as error:
            status, body = http_error_details(error)
            logger.debug(f"Page {page} failed with HTTP {status}")
            raise EnumerationError(
                f"Gmail API returned HTTP {status}" if status else f"Search request failed: {body}",
                status=status,
                body=body
            ) from error

        if results.get('error'):
            body = json.dumps(results['error'])
            logger.debug(f"Page {page} returned an error object")
            raise EnumerationError("Error from Gmail API", body=body)

        messages = results.get('messages') or []
        page_ids = [message['id'] for message in messages if message.get('id')]
        return page_ids, results.get('nextPageToken') or None

    # === Helpers ===

    @staticmethod
    def build_query(sender: str) -> str:
        """Gmail search query for messages from the sender"""
        return f"from:{sender.strip()}"

    def _report_progress(self, event: str, data: Dict) -> None:
        """Send progress update if callback is set"""
        if self.progress_callback:
            self.progress_callback(event, data)
