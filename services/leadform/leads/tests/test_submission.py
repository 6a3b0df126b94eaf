from datetime import datetime, timezone as dt_timezone

from ._shared import *  # noqa: F401,F403
from ..services.errors import ConfigurationError, NetworkError, ServerError
from ..services.submission import (
    REQUEST_TYPE_HEADER,
    STATUS_FAILED,
    STATUS_IDLE,
    STATUS_SUBMITTING,
    STATUS_SUCCEEDED,
    SubmissionState,
    build_payload,
    classify_response,
)


def _fixed_clock():
    return datetime(2024, 5, 1, 12, 30, tzinfo=dt_timezone.utc)


class BuildPayloadTests(SimpleTestCase):
    def test_omits_empty_fields_and_adds_metadata(self):
        payload = build_payload(
            fields={"name": "Ada Lovelace", "email": "ada@example.org", "cpf": "", "city": None, "state": "  "},
            files=[_accepted("a.jpg", "image/jpeg", b"a"), _accepted("b.pdf", "application/pdf", b"b")],
            origin="instagram",
            submission_id="sub-1",
            clock=_fixed_clock,
        )
        self.assertEqual(
            payload.data,
            {
                "name": "Ada Lovelace",
                "email": "ada@example.org",
                "origin": "instagram",
                "registered_at": "2024-05-01T12:30:00.000+00:00",
                "submission_id": "sub-1",
                "timestamp": "2024-05-01T12:30:00.000+00:00",
            },
        )
        self.assertEqual(
            payload.files,
            [
                ("file_0", ("a.jpg", b"a", "image/jpeg")),
                ("file_1", ("b.pdf", b"b", "application/pdf")),
            ],
        )

    def test_part_names_rename_fields_and_metadata(self):
        payload = build_payload(
            fields={"name": "Ada", "zip_code": "01310-100"},
            files=[_accepted()],
            origin="direto",
            submission_id="sub-1",
            clock=_fixed_clock,
            part_names={
                "origin": "origem",
                "registered_at": "data_cadastro",
                "submission_id": "submissionId",
                "zip_code": "zipCode",
            },
        )
        self.assertEqual(
            payload.data,
            {
                "name": "Ada",
                "zipCode": "01310-100",
                "origem": "direto",
                "data_cadastro": "2024-05-01T12:30:00.000+00:00",
                "submissionId": "sub-1",
                "timestamp": "2024-05-01T12:30:00.000+00:00",
            },
        )
        self.assertEqual([name for name, _ in payload.files], ["file_0"])


class ClassifyResponseTests(SimpleTestCase):
    def test_json_body_is_parsed(self):
        self.assertEqual(classify_response(_json_response(200, {"id": 7})), {"id": 7})

    def test_plain_text_body_is_opaque_success(self):
        self.assertEqual(classify_response(httpx.Response(202, text="Accepted")), "Accepted")

    def test_malformed_json_does_not_downgrade_success(self):
        response = httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})
        with self.assertLogs("leads.services.submission", level="WARNING"):
            self.assertEqual(classify_response(response), "{not json")

    def test_status_codes_map_to_reasons(self):
        cases = {413: "payload too large", 429: "rate limited", 500: "server error", 404: "server error"}
        for status, reason in cases.items():
            with self.assertRaises(ServerError) as exc:
                classify_response(httpx.Response(status))
            self.assertEqual(exc.exception.reason, reason)
            self.assertEqual(exc.exception.status_code, status)


class ErrorTaxonomyTests(SimpleTestCase):
    def test_reasons(self):
        self.assertEqual(ConfigurationError("x").reason, "configuration")
        self.assertEqual(NetworkError("x").reason, "network")
        self.assertEqual(NetworkError(timed_out=True).reason, "timeout")
        self.assertEqual(ServerError(502, "Bad Gateway").status_text, "Bad Gateway")


class SubmissionControllerTests(SimpleTestCase):
    def _controller(self, webhook=None, **kwargs):
        webhook = webhook or _RecordingWebhook()
        controller = SubmissionController(
            submission_id="sub-42",
            transport=webhook.transport,
            clock=_fixed_clock,
            **kwargs,
        )
        return controller, webhook

    def _submit(self, controller, *, files=None, destination=WEBHOOK_URL, fields=None):
        return controller.submit(
            fields=fields if fields is not None else {"name": "Ada", "email": "ada@example.org", "phone": "11987654321"},
            files=[_accepted()] if files is None else files,
            origin="direct",
            destination=destination,
        )

    def test_initial_state_is_idle(self):
        controller, _ = self._controller()
        self.assertEqual(controller.state, SubmissionState(status=STATUS_IDLE))

    def test_success_with_json_body(self):
        controller, webhook = self._controller(_RecordingWebhook(lambda r: _json_response(200, {"ok": 1})))
        state = self._submit(controller)
        self.assertEqual(state.status, STATUS_SUCCEEDED)
        self.assertEqual(state.response_body, {"ok": 1})
        self.assertEqual(len(webhook.requests), 1)
        request = webhook.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), WEBHOOK_URL)
        self.assertEqual(request.headers[REQUEST_TYPE_HEADER], "form-submission")
        self.assertTrue(request.headers["content-type"].startswith("multipart/form-data"))
        body = request.content
        self.assertIn(b'name="file_0"; filename="bill.pdf"', body)
        self.assertIn(b'name="submission_id"', body)
        self.assertIn(b"sub-42", body)
        self.assertNotIn(b'name="cpf"', body)

    def test_part_names_applied_on_the_wire(self):
        controller, webhook = self._controller(part_names={"submission_id": "submissionId"})
        self._submit(controller)
        body = webhook.requests[0].content
        self.assertIn(b'name="submissionId"\r\n\r\nsub-42', body)
        self.assertNotIn(b'name="submission_id"', body)

    def test_missing_files_never_calls_network(self):
        controller, webhook = self._controller()
        state = self._submit(controller, files=[])
        self.assertEqual(state.status, STATUS_FAILED)
        self.assertEqual(state.reason, "missing required files")
        self.assertEqual(webhook.requests, [])

    def test_missing_or_malformed_destination_is_configuration_failure(self):
        for destination in ("", None, "not a url", "ftp://example.org/x", "https://"):
            controller, webhook = self._controller()
            with self.assertLogs("leads.services.submission", level="ERROR"):
                state = self._submit(controller, destination=destination)
            self.assertEqual(state.reason, "configuration")
            self.assertEqual(webhook.requests, [])
            self.assertNotIn("url", state.message.lower())

    def test_payload_too_large(self):
        controller, _ = self._controller(_RecordingWebhook(lambda r: httpx.Response(413)))
        state = self._submit(controller)
        self.assertEqual((state.status, state.reason), (STATUS_FAILED, "payload too large"))

    def test_rate_limited(self):
        controller, _ = self._controller(_RecordingWebhook(lambda r: httpx.Response(429)))
        state = self._submit(controller)
        self.assertEqual(state.reason, "rate limited")

    def test_server_error_includes_status_text(self):
        controller, _ = self._controller(_RecordingWebhook(lambda r: httpx.Response(503)))
        state = self._submit(controller)
        self.assertEqual(state.reason, "server error")
        self.assertEqual(state.detail, "Service Unavailable")
        self.assertIn("Service Unavailable", state.message)

    def test_transport_failure_is_network(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        controller, _ = self._controller(_RecordingWebhook(refuse))
        with self.assertLogs("leads.services.submission", level="WARNING"):
            state = self._submit(controller)
        self.assertEqual(state.reason, "network")

    def test_timeout_aborts_call_with_distinct_reason(self):
        progress = []

        async def slow(request):
            progress.append("started")
            await asyncio.sleep(2)
            progress.append("finished")
            return _json_response()

        controller = SubmissionController(
            submission_id="sub-42",
            transport=httpx.MockTransport(slow),
            timeout_seconds=0.05,
        )
        state = self._submit(controller)
        self.assertEqual((state.status, state.reason), (STATUS_FAILED, "timeout"))
        self.assertEqual(progress, ["started"])
        self.assertNotEqual(state.message, SubmissionState(status=STATUS_FAILED, reason="network").message)
        self.assertIs(controller.state, state)

    def test_failed_is_not_sticky(self):
        responses = iter([httpx.Response(500), _json_response()])
        controller, webhook = self._controller(_RecordingWebhook(lambda r: next(responses)))
        self.assertEqual(self._submit(controller).status, STATUS_FAILED)
        self.assertEqual(self._submit(controller).status, STATUS_SUCCEEDED)
        self.assertEqual(len(webhook.requests), 2)
        # The submission id is stable across retries.
        self.assertTrue(all(b"sub-42" in request.content for request in webhook.requests))

    def test_succeeded_is_terminal(self):
        controller, webhook = self._controller()
        self._submit(controller)
        state = self._submit(controller)
        self.assertEqual(state.status, STATUS_SUCCEEDED)
        self.assertEqual(len(webhook.requests), 1)

    def test_concurrent_submit_is_ignored(self):
        nested = []

        def reenter(request):
            nested.append(self._submit(controller).status)
            return _json_response()

        controller, webhook = self._controller(_RecordingWebhook(reenter))
        state = self._submit(controller)
        self.assertEqual(nested, [STATUS_SUBMITTING])
        self.assertEqual(state.status, STATUS_SUCCEEDED)
        self.assertEqual(len(webhook.requests), 1)
