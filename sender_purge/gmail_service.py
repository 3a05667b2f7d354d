#!/usr/bin/env python3
"""
Gmail Service - Facade for Gmail operations
Builds the API client from a bearer token and delegates to specialized classes
"""

import logging
from typing import Dict, List, Optional, Callable

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from sender_purge.cleaner import BatchCleaner
from sender_purge.collector import MessageCollector
from sender_purge.errors import InvalidCredentialsError, TRANSPORT_ERRORS, http_error_details, status_label
from sender_purge.models import PurgeConfig, PurgeStats


logger = logging.getLogger(__name__)


class GmailService:
    """Facade for Gmail operations - holds the API client and delegates to specialized classes"""

    def __init__(
        self,
        access_token: str,
        config: Optional[PurgeConfig] = None,
        service=None,
        batch_http=None
    ):
        self.config = config or PurgeConfig()
        self.credentials = Credentials(token=access_token)

        # Reads share one client; batch writes get a connection with a longer timeout
        if service is None:
            read_http = self._authorized_http(self.config.read_timeout)
            service = build('gmail', 'v1', http=read_http, cache_discovery=False)
            batch_http = self._authorized_http(self.config.batch_timeout)
        self.service = service
        self.batch_http = batch_http

        # Progress callback
        self.progress_callback: Optional[Callable] = None

    def _authorized_http(self, timeout: float) -> AuthorizedHttp:
        """Bearer-token transport; a bare token cannot be refreshed, so 401 comes back as an HttpError"""
        return AuthorizedHttp(
            self.credentials,
            http=httplib2.Http(timeout=timeout),
            refresh_status_codes=()
        )

    def set_progress_callback(self, callback: Callable[[str, Dict], None]):
        """Set callback for progress updates"""
        self.progress_callback = callback

    # === Authentication ===

    def validate_credentials(self) -> Dict:
        """Confirm the token is accepted, returns the mailbox profile"""
        logger.debug("Testing access token validity...")
        try:
            profile = self.service.users().getProfile(userId='me').execute()
        except (HttpError, *TRANSPORT_ERRORS) as error:
            status, body = http_error_details(error)
            logger.debug(f"Profile lookup failed with HTTP {status}")
            raise InvalidCredentialsError(
                f"Access token appears to be invalid or expired ({status_label(status)})",
                status=status,
                body=body
            ) from error

        logger.debug(f"Access token is valid for {profile.get('emailAddress', 'unknown mailbox')}")
        return profile

    # === Collection (delegates to MessageCollector) ===

    def collect_message_ids(self, sender: str) -> List[str]:
        """Collect ids of every message from the sender"""
        collector = MessageCollector(self.service, self.config, self.progress_callback)
        return collector.collect(sender)

    # === Cleanup (delegates to BatchCleaner) ===

    def purge(self, message_ids: List[str]) -> PurgeStats:
        """Delete, or trash when delete is not permitted, every given message"""
        cleaner = BatchCleaner(
            self.service,
            self.config,
            self.progress_callback,
            batch_http=self.batch_http
        )
        return cleaner.cleanup(message_ids)
