#!/usr/bin/env python3
"""
Gmail Sender Purge
Delete every Gmail message from one sender, falling back to Trash when the
access token is not allowed to delete permanently
"""

import os
import sys
import logging
import argparse
from typing import Dict, List, Optional, Callable, Protocol

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from sender_purge.errors import EnumerationError, InvalidCredentialsError, PaginationLimitExceeded, status_label
from sender_purge.gmail_service import GmailService
from sender_purge.models import PurgeConfig, PurgeStats


logger = logging.getLogger(__name__)

console = Console(soft_wrap=True)

CONFIRM_PROMPT = "Are you sure you want to delete all these messages? (yes/no): "
TOKEN_HELP_URL = "https://developers.google.com/oauthplayground/"

USAGE = f"""Usage: gmail-sender-purge <sender_email> <access_token>

Example: gmail-sender-purge spam@example.com ya29.a0AfH6SMB...

To get an access token:
1. Go to {TOKEN_HELP_URL}
2. Select 'Gmail API v1' and authorize ONE of these scopes:
   Option A: https://www.googleapis.com/auth/gmail.modify
             (Moves messages to Trash - safer, limited permissions)
   Option B: https://mail.google.com/
             (Permanently deletes messages - full Gmail access)
3. Click 'Exchange authorization code for tokens'
4. Copy the 'Access token' value

Set DEBUG=1 to enable verbose logging: DEBUG=1 gmail-sender-purge ..."""


def configure_logging():
    """DEBUG=1 turns on diagnostics on stderr, otherwise LOG_LEVEL (default WARNING)"""
    if os.getenv("DEBUG", "0") == "1":
        level = logging.DEBUG
    else:
        level = getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


# === Confirmation ===

class ConfirmationProvider(Protocol):
    """Anything that can put a yes/no question to the user"""

    def ask(self, prompt: str) -> str:
        ...


class TerminalConfirmation:
    """Reads the answer from the terminal"""

    def __init__(self, console: Console):
        self.console = console

    def ask(self, prompt: str) -> str:
        try:
            return self.console.input(prompt)
        except EOFError:
            return ""


def is_confirmed(answer: Optional[str]) -> bool:
    """Only an exact, case-sensitive 'yes' confirms"""
    return (answer or "").strip() == "yes"


# === Progress Reporting ===

class ConsoleReporter:
    """Renders collector and cleaner progress events as terminal lines"""

    def __init__(self, console: Console):
        self.console = console

    def __call__(self, event: str, data: Dict):
        handler = getattr(self, f"_on_{event}", None)
        if handler:
            handler(data)

    def _on_page_fetched(self, data: Dict):
        if data["count"]:
            self.console.print(f"  Found {data['count']} messages on page {data['page']}")

    def _on_purge_started(self, data: Dict):
        self.console.print(f"Deleting messages in batches of {data['batch_size']}...")
        self.console.print(f"Total batches to process: {data['total_batches']}")

    def _on_batch_started(self, data: Dict):
        self.console.print(f"Processing batch {data['batch']}...")
        if data["action"] == "trash":
            self.console.print(f"  Moving batch {data['batch']} to Trash ({data['size']} messages)...")
        else:
            self.console.print(f"  Deleting batch {data['batch']} ({data['size']} messages)...")

    def _on_permission_fallback(self, data: Dict):
        self.console.print(
            "    [yellow]⚠ Delete permission denied, switching to Trash mode for all remaining batches...[/yellow]"
        )

    def _on_batch_completed(self, data: Dict):
        trashed = data["action"] == "trash"
        if data["success"]:
            verb = "moved" if trashed else "deleted"
            suffix = " to Trash" if trashed else ""
            self.console.print(
                f"    [green]✓ Successfully {verb} {data['size']} messages{suffix}[/green] "
                f"(Total processed: {data['processed']})"
            )
            return

        what = "move to Trash" if trashed else "delete batch"
        self.console.print(f"    [red]✗ Failed to {what} ({status_label(data['status'])})[/red]")
        if data["error"]:
            self.console.print(f"    Error: {escape(data['error'])}")


def print_summary(console: Console, stats: PurgeStats):
    """Print final counts"""
    console.print()
    console.print("[bold green]Operation complete![/bold green]")
    console.print(f"Successfully processed: {stats.processed}")
    console.print(f"Failed: {stats.failed}")
    console.print()
    console.print("Note: If messages were moved to Trash instead of deleted,")
    console.print("you can permanently delete them from Gmail's Trash folder.")


# === Entry Point ===

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='gmail-sender-purge',
        description='Delete all Gmail messages from a specific sender'
    )
    parser.add_argument('sender_email', nargs='?', help='Sender address to purge')
    parser.add_argument('access_token', nargs='?', help='OAuth access token for the Gmail API')
    return parser


def run(
    argv: Optional[List[str]] = None,
    confirmation: Optional[ConfirmationProvider] = None,
    service_factory: Callable[..., GmailService] = GmailService,
    console: Console = console
) -> int:
    """Run the purge, returns the process exit code"""
    args, extra = build_parser().parse_known_args(argv)
    if extra:
        logger.debug(f"Ignoring extra arguments: {extra}")
    if not args.sender_email or not args.access_token:
        console.print(escape(USAGE))
        return 1

    sender = args.sender_email
    try:
        config = PurgeConfig.from_env()
    except ValueError as error:
        console.print(f"[red]Error: invalid MAX_PAGES setting ({escape(str(error))})[/red]")
        return 1

    confirmation = confirmation or TerminalConfirmation(console)
    gmail = service_factory(args.access_token, config)
    gmail.set_progress_callback(ConsoleReporter(console))

    try:
        gmail.validate_credentials()
    except InvalidCredentialsError as error:
        console.print(f"[red]Error: {escape(str(error))}[/red]")
        if error.body:
            console.print(f"API Response: {escape(error.body)}")
        console.print()
        console.print(f"Please get a new access token from: {TOKEN_HELP_URL}")
        return 1

    console.print(f"Searching for emails from: {escape(sender)}")
    console.print("Fetching message list...")

    try:
        message_ids = gmail.collect_message_ids(sender)
    except PaginationLimitExceeded as error:
        console.print(f"[red]Error: {escape(str(error))}[/red]")
        console.print("Raise MAX_PAGES if the mailbox really holds that many messages from this sender.")
        return 1
    except EnumerationError as error:
        console.print(f"[red]Error: {escape(str(error))}[/red]")
        if error.body:
            console.print(f"Response: {escape(error.body)}")
        return 1

    if not message_ids:
        console.print(f"No messages found from {escape(sender)}")
        return 0

    console.print()
    console.print(f"Found {len(message_ids)} total messages to delete")
    console.print()

    if not is_confirmed(confirmation.ask(CONFIRM_PROMPT)):
        console.print("Deletion cancelled")
        return 0

    stats = gmail.purge(message_ids)
    print_summary(console, stats)
    logger.debug(f"Finished in {stats.mode.value} mode after {stats.batches} batches")
    return 0


def main():
    """Main entry point"""
    load_dotenv()
    configure_logging()
    sys.exit(run())


if __name__ == "__main__":
    main()
