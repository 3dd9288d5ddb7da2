import unittest
from unittest.mock import patch

from fake_upstream import API_KEY, ENDPOINT, FakeUpstream, chat_body

from relayprobe.detector.client import ProbeClient
from relayprobe.detector.config import DetectorConfig
from relayprobe.detector.errors import TokenCountError
from relayprobe.detector.probes import (
    MAX_TOKENS_BOUND,
    STOP_MARKER,
    check_logprobs,
    check_max_tokens,
    check_multiple_responses,
    check_stop_sequence,
)


class ProbeTestCase(unittest.TestCase):
    def setUp(self):
        self.config = DetectorConfig(endpoint=ENDPOINT, api_key=API_KEY, model="gpt-4o-mini")
        patcher = patch("relayprobe.detector.probes.count_tokens", return_value=17)
        self.count_tokens = patcher.start()
        self.addCleanup(patcher.stop)

    def client_for(self, upstream: FakeUpstream) -> ProbeClient:
        client = ProbeClient(transport=upstream.transport())
        self.addCleanup(client.close)
        return client


class MaxTokensProbeTests(ProbeTestCase):
    def test_completion_tokens_within_bound_passes(self):
        upstream = FakeUpstream(
            max_tokens_body=chat_body("short", usage={"completion_tokens": 8, "total_tokens": 30})
        )
        outcome = check_max_tokens(self.client_for(upstream), self.config)

        self.assertTrue(outcome.passed)
        self.assertIsNone(outcome.error)
        self.assertEqual(outcome.tokens.local, 17)
        self.assertEqual(outcome.tokens.completion, 8)
        self.assertEqual(outcome.tokens.total, 30)

    def test_completion_tokens_over_bound_fails(self):
        upstream = FakeUpstream(
            max_tokens_body=chat_body("long answer", usage={"completion_tokens": 15, "total_tokens": 40})
        )
        outcome = check_max_tokens(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIsNone(outcome.error)
        self.assertEqual(outcome.tokens.completion, 15)

    def test_request_carries_bound_and_auth(self):
        upstream = FakeUpstream()
        check_max_tokens(self.client_for(upstream), self.config)

        request, payload = upstream.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.headers["Authorization"], f"Bearer {API_KEY}")
        self.assertEqual(request.headers["Content-Type"], "application/json")
        self.assertEqual(payload["max_tokens"], MAX_TOKENS_BOUND)
        self.assertEqual(payload["model"], "gpt-4o-mini")
        self.assertEqual(payload["messages"][0]["role"], "user")

    def test_missing_usage_falls_back_to_local_count_of_content(self):
        upstream = FakeUpstream(max_tokens_body=chat_body("a few words only"))
        self.count_tokens.side_effect = lambda text: 4 if text == "a few words only" else 17

        outcome = check_max_tokens(self.client_for(upstream), self.config)

        self.assertTrue(outcome.passed)
        self.assertEqual(outcome.tokens.completion, 4)
        self.assertEqual(outcome.tokens.total, 0)

    def test_missing_usage_with_long_content_fails(self):
        upstream = FakeUpstream(max_tokens_body=chat_body("an essay " * 50))
        self.count_tokens.side_effect = lambda text: 17 if text.startswith("#") else 100

        outcome = check_max_tokens(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIsNone(outcome.error)
        self.assertEqual(outcome.tokens.completion, 100)

    def test_no_usage_and_no_content_is_an_error(self):
        upstream = FakeUpstream(max_tokens_body={"choices": []})
        outcome = check_max_tokens(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIn("neither usage.completion_tokens nor message content", outcome.error)

    def test_local_count_failure_is_recorded_as_minus_one(self):
        self.count_tokens.side_effect = TokenCountError("offline")
        upstream = FakeUpstream()

        outcome = check_max_tokens(self.client_for(upstream), self.config)

        self.assertTrue(outcome.passed)
        self.assertEqual(outcome.tokens.local, -1)

    def test_http_error_is_a_probe_error_with_truncated_body(self):
        upstream = FakeUpstream(status=502, raw_text="x" * 2000)
        outcome = check_max_tokens(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIn("HTTP 502", outcome.error)
        self.assertIn("x" * 500 + "...", outcome.error)
        self.assertNotIn("x" * 501, outcome.error)
        self.assertEqual(outcome.tokens.local, 17)

    def test_non_finite_usage_is_treated_as_missing(self):
        upstream = FakeUpstream(
            raw_text='{"choices": [{"message": {"content": "Artificial"}}], '
            '"usage": {"completion_tokens": NaN, "total_tokens": Infinity}}'
        )

        outcome = check_max_tokens(self.client_for(upstream), self.config)

        # Falls back to the local count of the content, patched to 17 here.
        self.assertIsNone(outcome.error)
        self.assertFalse(outcome.passed)
        self.assertEqual(outcome.tokens.completion, 17)
        self.assertEqual(outcome.tokens.total, 0)


class LogprobsProbeTests(ProbeTestCase):
    def test_missing_logprobs_key_fails(self):
        upstream = FakeUpstream(logprobs_body=chat_body("Paris"))
        outcome = check_logprobs(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIsNone(outcome.error)

    def test_empty_logprobs_object_passes(self):
        upstream = FakeUpstream(logprobs_body=chat_body("Paris", with_logprobs=True, logprobs={}))
        outcome = check_logprobs(self.client_for(upstream), self.config)

        self.assertTrue(outcome.passed)

    def test_null_logprobs_fails(self):
        upstream = FakeUpstream(logprobs_body=chat_body("Paris", with_logprobs=True, logprobs=None))
        outcome = check_logprobs(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)

    def test_request_asks_for_top_logprobs(self):
        upstream = FakeUpstream()
        check_logprobs(self.client_for(upstream), self.config)

        _, payload = upstream.requests[0]
        self.assertIs(payload["logprobs"], True)
        self.assertEqual(payload["top_logprobs"], 5)

    def test_no_choices_is_an_error(self):
        upstream = FakeUpstream(logprobs_body={"object": "chat.completion"})
        outcome = check_logprobs(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIn("no choices", outcome.error)


class MultipleResponsesProbeTests(ProbeTestCase):
    def test_single_choice_fails(self):
        upstream = FakeUpstream(multiple_body=chat_body("only one"))
        outcome = check_multiple_responses(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIsNone(outcome.error)

    def test_three_choices_pass(self):
        upstream = FakeUpstream(multiple_body=chat_body("a", "b", "c"))
        outcome = check_multiple_responses(self.client_for(upstream), self.config)

        self.assertTrue(outcome.passed)

    def test_request_asks_for_three_samples(self):
        upstream = FakeUpstream()
        check_multiple_responses(self.client_for(upstream), self.config)

        _, payload = upstream.requests[0]
        self.assertEqual(payload["n"], 3)
        self.assertEqual(payload["temperature"], 1.0)

    def test_invalid_json_is_a_decode_error(self):
        upstream = FakeUpstream(raw_text="<html>gateway</html>")
        outcome = check_multiple_responses(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIn("invalid JSON", outcome.error)
        self.assertIn("<html>gateway</html>", outcome.error)


class StopSequenceProbeTests(ProbeTestCase):
    def test_content_with_marker_fails(self):
        upstream = FakeUpstream(stop_body=chat_body(f"The fox slept. {STOP_MARKER}"))
        outcome = check_stop_sequence(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIsNone(outcome.error)

    def test_content_without_marker_passes(self):
        upstream = FakeUpstream(stop_body=chat_body("The fox slept."))
        outcome = check_stop_sequence(self.client_for(upstream), self.config)

        self.assertTrue(outcome.passed)

    def test_request_sets_stop_parameter(self):
        upstream = FakeUpstream()
        check_stop_sequence(self.client_for(upstream), self.config)

        _, payload = upstream.requests[0]
        self.assertEqual(payload["stop"], [STOP_MARKER])
        self.assertIn(STOP_MARKER, payload["messages"][0]["content"])

    def test_missing_content_is_an_error(self):
        upstream = FakeUpstream(stop_body={"choices": [{"message": {"role": "assistant"}}]})
        outcome = check_stop_sequence(self.client_for(upstream), self.config)

        self.assertFalse(outcome.passed)
        self.assertIn("no message content", outcome.error)


if __name__ == "__main__":
    unittest.main()
