"""
Tests for running a report across dealers and delivering it.
"""

import csv
import io
from contextlib import contextmanager
from datetime import datetime
from unittest.mock import Mock, patch

import pymysql
import pytest

from shared.config import Settings
from shared.dealers import DealerConnectionInfo
from shared.errors import ConfigurationError, CredentialLookupError, DealerQueryError
from shared.jobs import ReportJob
from shared.reports import RECALL_BDC, VIDEO, ReportDefinition
from shared.runner import (
    ReportResult,
    collect_dealer_rows,
    deliver,
    required_env,
    resolve_dealers,
    run_report,
    validate_job,
)

SETTINGS = Settings(
    index_db_host="index", index_db_user="u", index_db_password="p",
    api_token="tok", api_base_url="https://api.example.com/",
    reports_bucket="reports", sendgrid_api_key="SG.key",
)
BDC_JOB = ReportJob(
    integralink_codes=["61540", "99999"],
    start_date=datetime(2021, 12, 1), end_date=datetime(2021, 12, 31, 23, 59, 59),
    reply_to="https://hook.example.com/r/1",
)
VIDEO_JOB = ReportJob(
    dealer_ids=["d1"], email_recipients=["one@example.com"],
    start_date=datetime(2021, 5, 18), end_date=datetime(2021, 6, 18, 23, 59, 59),
)
LEXUS = DealerConnectionInfo(dealer_code="61540", dealer_name="Dealership 61540", host="10.0.0.1")
TOYOTA = DealerConnectionInfo(dealer_code="99999", dealer_name="Dealership 99999", host="10.0.0.2")


@contextmanager
def fake_connection(info, timeout):
    yield Mock(host=info["host"])


class TestValidation:
    """Tests for payload and environment requirements."""

    def test_bdc_needs_codes_and_reply_to(self):
        """BDC jobs need integralink codes and a webhook."""
        with pytest.raises(ConfigurationError, match="dealershipIntegralinkCode"):
            validate_job(RECALL_BDC, BDC_JOB.model_copy(update={"integralink_codes": []}))
        with pytest.raises(ConfigurationError, match="replyTo"):
            validate_job(RECALL_BDC, BDC_JOB.model_copy(update={"reply_to": None}))

    def test_video_needs_dealers_and_recipients(self):
        """Video jobs need dealer ids and email recipients."""
        with pytest.raises(ConfigurationError, match="dealerID"):
            validate_job(VIDEO, VIDEO_JOB.model_copy(update={"dealer_ids": []}))
        with pytest.raises(ConfigurationError, match="emailRecipient"):
            validate_job(VIDEO, VIDEO_JOB.model_copy(update={"email_recipients": []}))

    @patch("shared.db.pymysql.connect")
    def test_bad_dealer_id_rejected_before_connecting(self, mock_connect):
        """A malformed dealer id fails the job before the index database is opened."""
        job = VIDEO_JOB.model_copy(update={"dealer_ids": ["x' OR 1=1 --"]})
        with pytest.raises(ConfigurationError, match="dealerIDs"):
            run_report(VIDEO, job, SETTINGS)
        mock_connect.assert_not_called()

    @patch("shared.runner.UnotifiApiClient")
    def test_bad_integralink_code_rejected_before_api_call(self, mock_client_cls):
        """A malformed integralink code fails the job before the dealers API is called."""
        job = BDC_JOB.model_copy(update={"integralink_codes": ["61540; DROP"]})
        with pytest.raises(ConfigurationError, match="dealershipIntegralinkCodes"):
            run_report(RECALL_BDC, job, SETTINGS)
        mock_client_cls.assert_not_called()

    def test_required_env(self):
        """Each credential source pulls in its own variables."""
        assert required_env(RECALL_BDC, BDC_JOB) == [
            "UNOTIFI_API_TOKEN", "UNOTIFI_API_CLIENT_BASE_URL", "UNOTIFI_REPORTS_BUCKET"
        ]
        assert required_env(VIDEO, VIDEO_JOB) == [
            "UNOTIFI_COM_INDEX_DB_HOST", "UNOTIFI_COM_INDEX_DB_USER", "UNOTIFI_COM_INDEX_DB_PASS",
            "UNOTIFI_REPORTS_BUCKET", "SENDGRID_API_KEY",
        ]


class TestResolveDealers:
    """Tests for credential lookup dispatch."""

    @patch("shared.runner.UnotifiApiClient")
    def test_api_source(self, mock_client_cls):
        """Integralink codes are resolved through the dealers API."""
        mock_client_cls.return_value.get_dealer_connections.return_value = [LEXUS]
        assert resolve_dealers(RECALL_BDC, BDC_JOB, SETTINGS) == [LEXUS]
        mock_client_cls.assert_called_once_with("https://api.example.com/", "tok")

    @patch("shared.runner.lookup_dealers")
    @patch("shared.runner.db.connection", side_effect=fake_connection)
    def test_index_source(self, mock_connection, mock_lookup):
        """Dealer ids are resolved through the index database."""
        mock_lookup.return_value = [LEXUS]
        assert resolve_dealers(VIDEO, VIDEO_JOB, SETTINGS) == [LEXUS]
        assert mock_connection.call_args.args[0]["database"] == "unotifi_com_index"
        assert mock_lookup.call_args.args[1] == ["d1"]

    @patch("shared.runner.db.connection")
    def test_index_unreachable(self, mock_connection):
        """An unreachable index database aborts the report."""
        mock_connection.side_effect = pymysql.err.OperationalError(2003, "Can't connect")
        with pytest.raises(CredentialLookupError):
            resolve_dealers(VIDEO, VIDEO_JOB, SETTINGS)


class TestCollectDealerRows:
    """Tests for the per-dealer failure policy."""

    def failing_report(self):
        collect = Mock(side_effect=pymysql.err.OperationalError(2013, "Lost connection"))
        return ReportDefinition("t", "T", "t", RECALL_BDC.schema, "api", collect)

    @patch("shared.runner.db.connection", side_effect=fake_connection)
    def test_isolate_returns_zeroed_row(self, _):
        """Under 'isolate' a failing dealer contributes its identity row."""
        rows = collect_dealer_rows(self.failing_report(), LEXUS, BDC_JOB, SETTINGS)
        assert rows == [LEXUS.constants()]

    @patch("shared.runner.db.connection", side_effect=fake_connection)
    def test_abort_raises(self, _):
        """Under 'abort' the failure stops the report."""
        settings = SETTINGS.model_copy(update={"dealer_failure_policy": "abort"})
        with pytest.raises(DealerQueryError, match="Dealership 61540"):
            collect_dealer_rows(self.failing_report(), LEXUS, BDC_JOB, settings)

    @patch("shared.runner.db.connection")
    def test_connect_failure_is_isolated(self, mock_connection):
        """A dealer whose database can't be reached is treated like a failed query."""
        mock_connection.side_effect = pymysql.err.OperationalError(2003, "Can't connect")
        rows = collect_dealer_rows(RECALL_BDC, LEXUS, BDC_JOB, SETTINGS)
        assert rows == [LEXUS.constants()]


class TestRunReport:
    """End-to-end report building with mocked dealers."""

    @patch("shared.runner.resolve_dealers")
    @patch("shared.runner.db.connection", side_effect=fake_connection)
    @patch("shared.reports.run_queries")
    def test_bdc_report(self, mock_run_queries, _, mock_resolve):
        """Each dealer gets its own connection; a failing dealer still shows up zeroed."""
        mock_resolve.return_value = [LEXUS, TOYOTA]

        def queries_for(conn, issued):
            if conn.host == "10.0.0.2":
                raise pymysql.err.OperationalError(2013, "Lost connection")
            return [
                [{"autoCampaignName": "A", "totalOpportunities": 10}],
                [],
                [{"autoCampaignName": "A", "totalAppointments": 3}],
                [],
            ]

        mock_run_queries.side_effect = queries_for
        result = run_report(RECALL_BDC, BDC_JOB, SETTINGS)

        assert isinstance(result, ReportResult)
        assert result.extension == "csv"
        assert result.rows[0]["autoCampaignName"] == "A"
        assert result.rows[0]["totalOpportunities"] == 10
        assert result.rows[0]["totalAppointments"] == 3
        assert result.rows[0]["totalOpportunitiesContacted"] == 0
        assert result.rows[1] == {
            "dealerName": "Dealership 99999", "autoCampaignName": "",
            **{key: 0 for key in RECALL_BDC.schema.keys[2:]},
        }
        lines = list(csv.reader(io.StringIO(result.body.decode("utf-8"))))
        assert lines[0] == RECALL_BDC.schema.titles
        assert len(lines) == 3

    @patch("shared.runner.resolve_dealers", return_value=[])
    def test_no_dealers(self, _):
        """No dealers found still renders a header-only file."""
        result = run_report(RECALL_BDC, BDC_JOB, SETTINGS)
        assert result.rows == []
        assert result.body.decode("utf-8").strip() == ",".join(RECALL_BDC.schema.titles)


class TestDeliver:
    """Tests for upload and notification."""

    result = ReportResult([{"a": 1}], b"a\n1\n", "text/csv", "csv")

    @patch("shared.runner.notify")
    def test_reply_to(self, mock_notify):
        """BDC reports are uploaded and the webhook gets the key."""
        s3 = Mock()
        delivery = deliver(RECALL_BDC, BDC_JOB, self.result, SETTINGS, s3=s3)
        assert delivery.bucket == "reports"
        assert delivery.key.startswith("recall_bdc_reports/")
        assert delivery.row_count == 1
        s3.put_object.assert_called_once()
        mock_notify.reply_to.assert_called_once_with("https://hook.example.com/r/1", "reports", delivery.key)
        mock_notify.send_report_email.assert_not_called()

    @patch("shared.runner.notify")
    def test_email(self, mock_notify):
        """Video reports email a signed link."""
        s3 = Mock()
        s3.generate_presigned_url.return_value = "https://signed"
        delivery = deliver(VIDEO, VIDEO_JOB, self.result, SETTINGS, s3=s3)
        assert delivery.link == "https://signed"
        args = mock_notify.send_report_email.call_args.args
        assert args[2] == ["one@example.com"]
        assert args[4] == "https://signed"
        mock_notify.reply_to.assert_not_called()
