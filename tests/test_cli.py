"""Tests for the command line interface."""

import json
from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from maileroo.cli import bulk_request_from_data, main, parse_address, parse_pairs
from maileroo.exceptions import APIError
from maileroo.models import ScheduledEmailsResponse


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def mock_client():
    """Client double returned by create_client."""
    client = MagicMock()
    client.__enter__.return_value = client
    with patch("maileroo.cli.MailerooClient", return_value=client):
        yield client


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Leave the root logger alone during CLI runs."""
    with patch("maileroo.cli.setup_logging"):
        yield


@pytest.fixture(autouse=True)
def no_api_key_env(monkeypatch):
    """Keep the real environment out of the CLI."""
    monkeypatch.setenv("MAILEROO_API_KEY", "")
    monkeypatch.delenv("MAILEROO_API_KEY")


class TestHelpers:
    """Tests for CLI parsing helpers."""

    def test_parse_address_with_name(self):
        """Test a named address is parsed."""
        address = parse_address("Alice <alice@example.com>")

        assert address.address == "alice@example.com"
        assert address.display_name == "Alice"

    def test_parse_bare_address(self):
        """Test a bare address is parsed."""
        address = parse_address("bob@example.com")

        assert address.to_dict() == {"address": "bob@example.com"}

    def test_parse_pairs(self):
        """Test KEY=VALUE pairs are parsed."""
        assert parse_pairs(("a=1", "b=x=y"), "--tag") == {"a": "1", "b": "x=y"}
        assert parse_pairs((), "--tag") is None

    def test_bulk_request_from_data(self):
        """Test a bulk request is built from file data."""
        data = bulk_request_from_data(
            {
                "subject": "News",
                "template_id": 4,
                "messages": [
                    {
                        "from": "Team <team@example.com>",
                        "to": [{"address": "a@example.com", "display_name": "A"}],
                        "template_data": {"name": "A"},
                    }
                ],
            }
        )

        assert data.subject == "News"
        assert data.template_id == 4
        assert data.messages[0].from_address.display_name == "Team"
        assert data.messages[0].to[0].address == "a@example.com"
        assert data.messages[0].template_data == {"name": "A"}


class TestSendCommand:
    """Tests for the send command."""

    def test_send(self, runner, mock_client):
        """Test sending a basic email."""
        mock_client.send_basic_email.return_value = "a" * 24

        result = runner.invoke(
            main,
            [
                "--api-key", "key",
                "send",
                "--from", "Sender <s@example.com>",
                "--to", "a@b.com",
                "--subject", "Hi",
                "--html", "<p>x</p>",
                "--tag", "campaign=spring",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "a" * 24 in result.output
        data = mock_client.send_basic_email.call_args.args[0]
        assert data.subject == "Hi"
        assert data.to[0].address == "a@b.com"
        assert data.tags == {"campaign": "spring"}
        assert data.tracking is None

    def test_send_with_attachment(self, runner, mock_client, tmp_path):
        """Test attachments are read from disk."""
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF-1.4")
        mock_client.send_basic_email.return_value = "a" * 24

        result = runner.invoke(
            main,
            [
                "--api-key", "key",
                "send",
                "--from", "s@example.com",
                "--to", "a@b.com",
                "--subject", "Report",
                "--plain", "attached",
                "--attach", str(path),
            ],
        )

        assert result.exit_code == 0, result.output
        data = mock_client.send_basic_email.call_args.args[0]
        assert data.attachments[0].file_name == "report.pdf"
        assert data.attachments[0].content_type == "application/pdf"

    def test_send_api_error(self, runner, mock_client):
        """Test API errors exit with status 1."""
        mock_client.send_basic_email.side_effect = APIError("Invalid sender", status_code=400)

        result = runner.invoke(
            main,
            ["--api-key", "key", "send", "--from", "s@example.com", "--to", "a@b.com", "--subject", "Hi", "--html", "x"],
        )

        assert result.exit_code == 1
        assert "Invalid sender" in result.output

    def test_missing_api_key(self, runner, tmp_path):
        """Test a missing API key is reported."""
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(
                main,
                ["send", "--from", "s@example.com", "--to", "a@b.com", "--subject", "Hi", "--html", "x"],
            )

        assert result.exit_code == 1
        assert "API key not provided" in result.output


class TestSendTemplateCommand:
    """Tests for the send-template command."""

    def test_send_template(self, runner, mock_client, tmp_path):
        """Test template data is loaded from a file."""
        data_file = tmp_path / "data.json"
        data_file.write_text(json.dumps({"name": "Alice"}))
        mock_client.send_templated_email.return_value = "b" * 24

        result = runner.invoke(
            main,
            [
                "--api-key", "key",
                "send-template",
                "--from", "s@example.com",
                "--to", "a@b.com",
                "--subject", "Welcome",
                "--template-id", "12",
                "--data", str(data_file),
            ],
        )

        assert result.exit_code == 0, result.output
        data = mock_client.send_templated_email.call_args.args[0]
        assert data.template_id == 12
        assert data.template_data == {"name": "Alice"}

    def test_malformed_data_file(self, runner, mock_client, tmp_path):
        """Test an unparsable data file exits with status 1."""
        data_file = tmp_path / "data.yaml"
        data_file.write_text("name: [unclosed\n")

        result = runner.invoke(
            main,
            [
                "--api-key", "key",
                "send-template",
                "--from", "s@example.com",
                "--to", "a@b.com",
                "--subject", "Welcome",
                "--template-id", "12",
                "--data", str(data_file),
            ],
        )

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not isinstance(result.exception, yaml.YAMLError)
        mock_client.send_templated_email.assert_not_called()


class TestSendBulkCommand:
    """Tests for the send-bulk command."""

    def test_send_bulk(self, runner, mock_client, tmp_path):
        """Test a bulk request file is sent and ids are saved."""
        request_file = tmp_path / "bulk.yaml"
        request_file.write_text(
            yaml.safe_dump(
                {
                    "subject": "News",
                    "html": "<p>News</p>",
                    "messages": [
                        {"from": "s@example.com", "to": ["x@example.com"]},
                        {"from": "s@example.com", "to": ["y@example.com"]},
                    ],
                }
            )
        )
        output = tmp_path / "ids.json"
        mock_client.send_bulk_emails.return_value = ["1" * 24, "2" * 24]

        result = runner.invoke(
            main, ["--api-key", "key", "send-bulk", str(request_file), "--output", str(output)]
        )

        assert result.exit_code == 0, result.output
        assert "Accepted 2 messages" in result.output
        assert json.loads(output.read_text()) == ["1" * 24, "2" * 24]
        assert len(mock_client.send_bulk_emails.call_args.args[0].messages) == 2

    def test_message_must_be_mapping(self, runner, mock_client, tmp_path):
        """Test a message entry that isn't a mapping exits with status 1."""
        request_file = tmp_path / "bulk.yaml"
        request_file.write_text(
            yaml.safe_dump({"subject": "News", "html": "<p>x</p>", "messages": ["a@b.com"]})
        )

        result = runner.invoke(main, ["--api-key", "key", "send-bulk", str(request_file)])

        assert result.exit_code == 1
        assert "messages[0] must be a mapping" in result.output
        mock_client.send_bulk_emails.assert_not_called()


class TestScheduledCommands:
    """Tests for the scheduled email commands."""

    def test_list(self, runner, mock_client):
        """Test listing scheduled emails."""
        mock_client.get_scheduled_emails.return_value = ScheduledEmailsResponse(
            page=1,
            per_page=10,
            total_count=1,
            total_pages=1,
            results=[{"reference_id": "c" * 24, "subject": "Later", "scheduled_at": "2030-01-01T00:00:00Z"}],
        )

        result = runner.invoke(main, ["--api-key", "key", "scheduled", "--per-page", "10"])

        assert result.exit_code == 0, result.output
        assert "Page 1/1" in result.output
        assert "c" * 24 in result.output
        mock_client.get_scheduled_emails.assert_called_once_with(1, 10)

    def test_list_json(self, runner, mock_client):
        """Test the JSON listing output."""
        mock_client.get_scheduled_emails.return_value = ScheduledEmailsResponse(page=1, results=[])

        result = runner.invoke(main, ["--api-key", "key", "scheduled", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["page"] == 1

    def test_delete(self, runner, mock_client):
        """Test deleting a scheduled email."""
        result = runner.invoke(
            main, ["--api-key", "key", "delete-scheduled", "0123456789abcdef01234567"]
        )

        assert result.exit_code == 0, result.output
        mock_client.delete_scheduled_email.assert_called_once_with("0123456789abcdef01234567")


class TestReferenceIdCommand:
    """Tests for the reference-id command."""

    def test_generates_ids(self, runner, tmp_path):
        """Test generated ids are printed one per line."""
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["reference-id", "--count", "3"])

        assert result.exit_code == 0, result.output
        lines = result.output.split()
        assert len(lines) == 3
        assert all(len(line) == 24 for line in lines)
