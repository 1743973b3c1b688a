"""CLI commands for the Maileroo client."""

import json
import logging
import sys
from datetime import datetime
from email.utils import parseaddr
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml

from .attachment import Attachment
from .client import MailerooClient
from .config import Settings, load_settings
from .exceptions import ConfigurationError, MailerooError
from .logging import setup_logging
from .models import (
    BasicEmailData,
    BulkEmailData,
    BulkMessage,
    EmailAddress,
    TemplatedEmailData,
)
from .reference_id import generate_reference_id

logger = logging.getLogger(__name__)


def parse_address(value: str) -> EmailAddress:
    """Parse ``"Name <user@example.com>"`` or a bare address."""
    name, address = parseaddr(value)
    if not address:
        raise click.BadParameter(f"Invalid address: {value}")
    return EmailAddress(address, name)


def parse_pairs(values: Tuple[str, ...], label: str) -> Optional[Dict[str, str]]:
    """Parse repeated ``KEY=VALUE`` options into a dict."""
    if not values:
        return None

    result = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep:
            raise click.BadParameter(f"{label} must be KEY=VALUE, got: {item}")
        result[key.strip()] = value
    return result


def load_data_file(path: str) -> Any:
    """Load a JSON or YAML file."""
    with open(path, "r") as f:
        if path.endswith(".json"):
            return json.load(f)
        return yaml.safe_load(f)


def _address_list(values) -> List[EmailAddress]:
    if not values:
        return []
    if isinstance(values, (str, dict)):
        values = [values]
    return [_address_from_data(v) for v in values]


def _address_from_data(value) -> EmailAddress:
    if isinstance(value, dict):
        return EmailAddress(value.get("address", ""), value.get("display_name"))
    return parse_address(str(value))


def bulk_request_from_data(data: Dict[str, Any]) -> BulkEmailData:
    """Build a bulk request from a decoded request file.

    The file mirrors the API payload: ``subject``, ``html``/``plain`` or
    ``template_id``, optional ``tracking``/``tags``/``headers``/``attachments``
    (file paths) and a ``messages`` list.
    """
    if not isinstance(data, dict):
        raise click.BadParameter("Bulk request file must contain a mapping")

    messages = []
    for i, message in enumerate(data.get("messages") or []):
        if not isinstance(message, dict):
            raise click.BadParameter(f"messages[{i}] must be a mapping")
        messages.append(
            BulkMessage(
                from_address=_address_from_data(message.get("from", "")),
                to=_address_list(message.get("to")),
                cc=_address_list(message.get("cc")),
                bcc=_address_list(message.get("bcc")),
                reply_to=_address_list(message.get("reply_to")),
                reference_id=message.get("reference_id"),
                template_data=message.get("template_data"),
            )
        )

    return BulkEmailData(
        subject=data.get("subject", ""),
        messages=messages,
        html=data.get("html"),
        plain=data.get("plain"),
        template_id=data.get("template_id"),
        tracking=data.get("tracking"),
        tags=data.get("tags"),
        headers=data.get("headers"),
        attachments=[Attachment.from_file(p) for p in data.get("attachments") or []],
    )


def create_client(settings: Settings, api_key: Optional[str] = None) -> MailerooClient:
    """Create a client from settings, with an optional key override.

    Raises:
        ConfigurationError: If no API key is configured
    """
    api_key = api_key or settings.api_key
    if not api_key:
        raise ConfigurationError(
            "Maileroo API key not provided. Set MAILEROO_API_KEY or pass --api-key"
        )
    return MailerooClient(api_key, settings.timeout, base_url=settings.base_url)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _client_from_context(ctx: click.Context) -> MailerooClient:
    return create_client(ctx.obj["settings"], ctx.obj["api_key"])


address_options = [
    click.option("--from", "from_", required=True, help="Sender, e.g. 'Name <a@b.com>'"),
    click.option("--to", multiple=True, required=True, help="Recipient (repeatable)"),
    click.option("--cc", multiple=True, help="CC recipient (repeatable)"),
    click.option("--bcc", multiple=True, help="BCC recipient (repeatable)"),
    click.option("--reply-to", multiple=True, help="Reply-To address (repeatable)"),
    click.option("--subject", required=True, help="Subject line"),
    click.option("--attach", multiple=True, type=click.Path(exists=True, dir_okay=False), help="File to attach (repeatable)"),
    click.option("--tag", multiple=True, help="Tag as KEY=VALUE (repeatable)"),
    click.option("--header", multiple=True, help="Custom header as KEY=VALUE (repeatable)"),
    click.option("--tracking/--no-tracking", default=None, help="Enable or disable tracking"),
    click.option("--schedule", type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M"]), help="Send at this UTC time"),
    click.option("--reference-id", help="Reference id (generated if omitted)"),
]


def with_address_options(func):
    for option in reversed(address_options):
        func = option(func)
    return func


def _common_fields(
    from_: str,
    to: Tuple[str, ...],
    cc: Tuple[str, ...],
    bcc: Tuple[str, ...],
    reply_to: Tuple[str, ...],
    subject: str,
    attach: Tuple[str, ...],
    tag: Tuple[str, ...],
    header: Tuple[str, ...],
    tracking: Optional[bool],
    schedule: Optional[datetime],
    reference_id: Optional[str],
) -> Dict[str, Any]:
    return {
        "from_address": parse_address(from_),
        "to": [parse_address(v) for v in to],
        "cc": [parse_address(v) for v in cc],
        "bcc": [parse_address(v) for v in bcc],
        "reply_to": [parse_address(v) for v in reply_to],
        "subject": subject,
        "attachments": [Attachment.from_file(path) for path in attach],
        "tags": parse_pairs(tag, "--tag"),
        "headers": parse_pairs(header, "--header"),
        "tracking": tracking,
        "scheduled_at": schedule,
        "reference_id": reference_id,
    }


@click.group()
@click.option("--env-file", type=click.Path(exists=True), help=".env file path")
@click.option("--config", type=click.Path(exists=True), help="Config file path (YAML/JSON)")
@click.option("--api-key", envvar="MAILEROO_API_KEY", help="Maileroo sending key")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, env_file: Optional[str], config: Optional[str], api_key: Optional[str], verbose: bool):
    """Send email through the Maileroo API."""
    try:
        settings = load_settings(env_file=env_file, config_file=config)
    except ConfigurationError as e:
        _fail(str(e))

    setup_logging(settings.logging, level="DEBUG" if verbose else None)
    ctx.obj = {"settings": settings, "api_key": api_key}


@main.command()
@with_address_options
@click.option("--html", help="HTML body")
@click.option("--html-file", type=click.Path(exists=True, dir_okay=False), help="Read the HTML body from a file")
@click.option("--plain", help="Plain-text body")
@click.pass_context
def send(ctx: click.Context, html: Optional[str], html_file: Optional[str], plain: Optional[str], **fields):
    """Send a single email."""
    try:
        if html_file:
            html = Path(html_file).read_text(encoding="utf-8")

        data = BasicEmailData(html=html, plain=plain, **_common_fields(**fields))

        with _client_from_context(ctx) as client:
            reference_id = client.send_basic_email(data)

        click.echo(f"Reference ID: {reference_id}")
    except MailerooError as e:
        _fail(str(e))


@main.command("send-template")
@with_address_options
@click.option("--template-id", type=int, required=True, help="Stored template id")
@click.option("--data", "data_file", type=click.Path(exists=True, dir_okay=False), help="Template data (JSON/YAML)")
@click.pass_context
def send_template(ctx: click.Context, template_id: int, data_file: Optional[str], **fields):
    """Send a single email rendered from a stored template."""
    try:
        template_data = load_data_file(data_file) if data_file else None

        data = TemplatedEmailData(
            template_id=template_id,
            template_data=template_data,
            **_common_fields(**fields),
        )

        with _client_from_context(ctx) as client:
            reference_id = client.send_templated_email(data)

        click.echo(f"Reference ID: {reference_id}")
    except (MailerooError, yaml.YAMLError, json.JSONDecodeError) as e:
        _fail(str(e))


@main.command("send-bulk")
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", type=click.Path(), help="Write the reference ids to this file (JSON)")
@click.pass_context
def send_bulk(ctx: click.Context, request_file: str, output: Optional[str]):
    """Send a bulk request described in a YAML/JSON file."""
    try:
        data = bulk_request_from_data(load_data_file(request_file))
        click.echo(f"Loaded {len(data.messages)} messages")

        with _client_from_context(ctx) as client:
            reference_ids = client.send_bulk_emails(data)

        click.echo(f"Accepted {len(reference_ids)} messages")
        for reference_id in reference_ids:
            click.echo(f"  {reference_id}")

        if output:
            with open(output, "w") as f:
                json.dump(reference_ids, f, indent=2)
            click.echo(f"\nReference ids saved to: {output}")
    except click.BadParameter as e:
        _fail(e.format_message())
    except (MailerooError, yaml.YAMLError, json.JSONDecodeError) as e:
        _fail(str(e))


@main.command()
@click.option("--page", type=int, default=1, show_default=True, help="Page number")
@click.option("--per-page", type=int, default=10, show_default=True, help="Results per page (max 100)")
@click.option("--json", "as_json", is_flag=True, help="Print the raw listing as JSON")
@click.pass_context
def scheduled(ctx: click.Context, page: int, per_page: int, as_json: bool):
    """List scheduled emails."""
    try:
        with _client_from_context(ctx) as client:
            listing = client.get_scheduled_emails(page, per_page)

        if as_json:
            click.echo(json.dumps(listing.model_dump(), indent=2, default=str))
            return

        click.echo(
            f"Page {listing.page}/{listing.total_pages} "
            f"({listing.total_count} scheduled emails)"
        )
        for item in listing.results:
            if isinstance(item, dict):
                click.echo(
                    f"  - {item.get('reference_id', '?')}: {item.get('subject', '')} "
                    f"at {item.get('scheduled_at', '?')}"
                )
            else:
                click.echo(f"  - {item}")
    except MailerooError as e:
        _fail(str(e))


@main.command("delete-scheduled")
@click.argument("reference_id")
@click.pass_context
def delete_scheduled(ctx: click.Context, reference_id: str):
    """Cancel a scheduled email."""
    try:
        with _client_from_context(ctx) as client:
            client.delete_scheduled_email(reference_id)
        click.echo(f"Deleted scheduled email {reference_id}")
    except MailerooError as e:
        _fail(str(e))


@main.command("reference-id")
@click.option("--count", type=click.IntRange(min=1), default=1, show_default=True, help="How many ids to print")
def reference_id(count: int):
    """Print freshly generated reference ids."""
    for _ in range(count):
        click.echo(generate_reference_id())


if __name__ == "__main__":
    main()
