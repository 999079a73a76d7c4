import smtplib
import sys
import unittest
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from visacheck.integrations import email as email_integration  # noqa: E402
from visacheck.schemas.evaluation import UploadedDocumentMeta  # noqa: E402
from visacheck.services.reporting import render_text_report  # noqa: E402
from tests.factories import make_record  # noqa: E402


class TextReportTests(unittest.TestCase):
    def test_report_sections(self):
        record = make_record("report-1")
        report = render_text_report(record)

        self.assertIn("Applicant: Ada Lovelace", report)
        self.assertIn("Visa: O-1A Visa (US)", report)
        self.assertIn("Score: 68/100 - Moderate fit", report)
        self.assertIn("  Experience       50/100", report)
        self.assertIn("Strengths:\n  - Excellent specialization match for O-1A Visa", report)
        self.assertIn("Areas to improve:", report)
        self.assertNotIn("Documents reviewed:", report)

    def test_report_lists_documents(self):
        record = make_record("report-2").model_copy(
            update={
                "uploaded_documents": [
                    UploadedDocumentMeta(
                        document_type="resume",
                        file_name="cv.pdf",
                        file_size=1200,
                        parse_success=False,
                    )
                ]
            }
        )
        self.assertIn("  - cv.pdf (resume, not readable)", render_text_report(record))


class EmailDeliveryTests(unittest.TestCase):
    def setUp(self):
        self.settings = replace(
            email_integration.settings,
            smtp_host="smtp.example.com",
            smtp_port=587,
            smtp_user="mailer@example.com",
            smtp_password="abcd efgh",
            smtp_from="results@example.com",
            smtp_use_tls=True,
            smtp_fallback_ssl=True,
        )

    def test_not_configured(self):
        unconfigured = replace(self.settings, smtp_host=None)
        with patch.object(email_integration, "settings", unconfigured):
            self.assertFalse(email_integration.smtp_ready())
            self.assertFalse(email_integration.send_evaluation_results(make_record(), "ada@example.com"))

    def test_starttls_delivery(self):
        server = MagicMock()
        smtp = MagicMock()
        smtp.return_value.__enter__.return_value = server
        with patch.object(email_integration, "settings", self.settings), patch.object(
            email_integration.smtplib, "SMTP", smtp
        ):
            self.assertTrue(email_integration.send_evaluation_results(make_record(), "ada@example.com"))

        smtp.assert_called_once_with("smtp.example.com", 587, timeout=15)
        server.login.assert_called_once_with("mailer@example.com", "abcdefgh")
        message = server.send_message.call_args.args[0]
        self.assertEqual(message["To"], "ada@example.com")
        self.assertEqual(message["Subject"], "Your Visa Evaluation Results - O-1A Visa")
        self.assertIn("Score: 68/100", message.get_content())

    def test_ssl_fallback(self):
        server = MagicMock()
        smtp_ssl = MagicMock()
        smtp_ssl.return_value.__enter__.return_value = server
        failing_smtp = MagicMock(side_effect=smtplib.SMTPConnectError(421, b"unavailable"))
        with patch.object(email_integration, "settings", self.settings), patch.object(
            email_integration.smtplib, "SMTP", failing_smtp
        ), patch.object(email_integration.smtplib, "SMTP_SSL", smtp_ssl):
            with self.assertLogs("visacheck.integrations.email", level="ERROR"):
                self.assertTrue(email_integration.send_evaluation_results(make_record(), "ada@example.com"))

        self.assertEqual(smtp_ssl.call_args.args[:2], ("smtp.example.com", 465))
        server.send_message.assert_called_once()


if __name__ == "__main__":
    unittest.main()
