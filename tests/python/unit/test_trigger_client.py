import datetime as _dt
import io
import json
import os
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

import httpx
from typer.testing import CliRunner

from deploy_trigger.client import (
    EXIT_DEPLOY_FAILED,
    EXIT_REQUEST_FAILED,
    EXIT_SUCCESS,
    TriggerOutcome,
    build_payload,
    interpret_response,
    report,
    send_trigger,
)
from deploy_trigger.config import TriggerConfig, load_trigger_config


def _capture(outcome: TriggerOutcome, site_url=None):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = report(outcome, site_url=site_url)
    return code, out.getvalue() + err.getvalue()


class TestInterpretResponse(unittest.TestCase):
    def test_success_body(self) -> None:
        outcome = interpret_response(
            200,
            json.dumps({"success": True, "message": "Deployment completed successfully", "output": "ok"}),
        )

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.message, "Deployment completed successfully")
        self.assertEqual(outcome.output, "ok")

    def test_failure_body(self) -> None:
        outcome = interpret_response(
            500, json.dumps({"success": False, "error": "build failed", "stderr": "npm ERR!"})
        )

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.kind, "failed")
        self.assertEqual(outcome.error, "build failed")
        self.assertEqual(outcome.stderr, "npm ERR!")

    def test_malformed_bodies(self) -> None:
        for body in ("<html>502 Bad Gateway</html>", "[]", '{"success": "yes"}', ""):
            outcome = interpret_response(502, body)
            self.assertEqual(outcome.kind, "malformed_response", body)
            self.assertFalse(outcome.success)
            self.assertEqual(outcome.raw_body, body)


class TestSendTrigger(unittest.TestCase):
    def test_posts_trigger_marker_and_timestamp(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers.get("content-type")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"success": True, "message": "done", "output": ""}
            )

        cfg = TriggerConfig(url="https://deploy.example:3001/deploy", timeout_seconds=5)
        outcome = send_trigger(cfg, transport=httpx.MockTransport(handler))

        self.assertTrue(outcome.success)
        self.assertEqual(seen["method"], "POST")
        self.assertEqual(seen["url"], "https://deploy.example:3001/deploy")
        self.assertEqual(seen["content_type"], "application/json")
        self.assertEqual(seen["body"]["trigger"], "deploy")
        self.assertTrue(seen["body"]["timestamp"].endswith("Z"))

    def test_connection_refused_is_request_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        outcome = send_trigger(
            TriggerConfig(url="https://deploy.example/deploy"),
            transport=httpx.MockTransport(handler),
        )

        self.assertEqual(outcome.kind, "request_failed")
        self.assertFalse(outcome.success)
        self.assertIn("Connection refused", outcome.error)

    def test_timeout_is_request_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        outcome = send_trigger(
            TriggerConfig(url="https://deploy.example/deploy"),
            transport=httpx.MockTransport(handler),
        )

        self.assertEqual(outcome.kind, "request_failed")

    def test_invalid_url_is_request_failure(self) -> None:
        outcome = send_trigger(TriggerConfig(url="https://[::1/deploy"))

        self.assertEqual(outcome.kind, "request_failed")
        self.assertTrue(outcome.error)
        code, _text = _capture(outcome)
        self.assertEqual(code, EXIT_REQUEST_FAILED)

    def test_build_payload_uses_given_time(self) -> None:
        now = _dt.datetime(2026, 3, 1, 12, 30, tzinfo=_dt.timezone.utc)

        self.assertEqual(
            build_payload(now), {"trigger": "deploy", "timestamp": "2026-03-01T12:30:00Z"}
        )


class TestReport(unittest.TestCase):
    def test_request_failure_is_distinct_and_never_successful(self) -> None:
        code, text = _capture(
            TriggerOutcome(kind="request_failed", error="Connection refused")
        )

        self.assertEqual(code, EXIT_REQUEST_FAILED)
        self.assertIn("Deployment request failed: Connection refused", text)
        self.assertNotIn("successful", text)

    def test_failed_deployment_prints_error(self) -> None:
        code, text = _capture(
            TriggerOutcome(kind="failed", error="build failed", stderr="npm ERR! missing script")
        )

        self.assertEqual(code, EXIT_DEPLOY_FAILED)
        self.assertIn("Deployment failed: build failed", text)
        self.assertIn("npm ERR! missing script", text)
        self.assertNotIn("successful", text)

    def test_malformed_response_prints_raw_body(self) -> None:
        code, text = _capture(
            TriggerOutcome(kind="malformed_response", status_code=502, raw_body="Bad Gateway")
        )

        self.assertEqual(code, EXIT_REQUEST_FAILED)
        self.assertIn("Bad Gateway", text)
        self.assertNotIn("successful", text)

    def test_success_prints_output_and_site(self) -> None:
        code, text = _capture(
            TriggerOutcome(kind="succeeded", message="Deployment completed successfully", output="built"),
            site_url="https://site.example",
        )

        self.assertEqual(code, EXIT_SUCCESS)
        self.assertIn("Deployment successful!", text)
        self.assertIn("built", text)
        self.assertIn("https://site.example", text)


class TestTriggerConfig(unittest.TestCase):
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self) -> None:
        cfg = load_trigger_config()

        self.assertTrue(cfg.url.startswith("https://"))
        self.assertTrue(cfg.url.endswith("/deploy"))
        self.assertTrue(cfg.verify_tls)

    @patch.dict(
        os.environ,
        {
            "DEPLOY_TRIGGER_URL": "https://other.example/deploy",
            "DEPLOY_TRIGGER_TIMEOUT_SECONDS": "30",
            "DEPLOY_SITE_URL": "",
            "DEPLOY_TRIGGER_VERIFY_TLS": "false",
        },
        clear=True,
    )
    def test_env_overrides(self) -> None:
        cfg = load_trigger_config()

        self.assertEqual(cfg.url, "https://other.example/deploy")
        self.assertEqual(cfg.timeout_seconds, 30.0)
        self.assertIsNone(cfg.site_url)
        self.assertFalse(cfg.verify_tls)

    @patch.dict(os.environ, {"DEPLOY_TRIGGER_TIMEOUT_SECONDS": "later"}, clear=True)
    def test_bad_timeout(self) -> None:
        with self.assertRaises(ValueError):
            load_trigger_config()


class TestTriggerCli(unittest.TestCase):
    def test_cli_exit_code_follows_outcome(self) -> None:
        from deploy_trigger.__main__ import app  # noqa: WPS433

        runner = CliRunner()
        cases = (
            (TriggerOutcome(kind="succeeded", message="ok"), EXIT_SUCCESS),
            (TriggerOutcome(kind="failed", error="build failed"), EXIT_DEPLOY_FAILED),
            (TriggerOutcome(kind="request_failed", error="refused"), EXIT_REQUEST_FAILED),
        )
        for outcome, expected in cases:
            with patch("deploy_trigger.__main__.send_trigger", return_value=outcome) as m_send:
                result = runner.invoke(app, ["--url", "https://cli.example/deploy"])

            self.assertEqual(result.exit_code, expected, result.output)
            self.assertEqual(m_send.call_args.args[0].url, "https://cli.example/deploy")

    def test_cli_reports_invalid_url_as_request_failure(self) -> None:
        from deploy_trigger.__main__ import app  # noqa: WPS433

        result = CliRunner().invoke(app, ["--url", "https://[::1/deploy"])

        self.assertEqual(result.exit_code, EXIT_REQUEST_FAILED, result.output)
        self.assertIsInstance(result.exception, SystemExit)
