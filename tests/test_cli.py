import json
import unittest
from unittest.mock import patch

from typer.testing import CliRunner

from fake_upstream import API_KEY, ENDPOINT, FakeUpstream, chat_body

from relayprobe import __version__
from relayprobe.cli import app
from relayprobe.detector import Detector


def _json_output(output: str) -> dict:
    return json.loads(output[output.index("{"):])


class CliTests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        for patcher in (
            patch("relayprobe.detector.probes.count_tokens", return_value=17),
            patch("relayprobe.utils.settings.load_dotenv"),
            patch("relayprobe.cli.detect_cmds.setup_logging"),
            patch.dict("os.environ", {}, clear=True),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

    def _detect(self, upstream, *args):
        def build(config):
            return Detector(config, transport=upstream.transport())

        with patch("relayprobe.cli.detect_cmds.Detector", side_effect=build):
            return self.runner.invoke(
                app,
                ["detect", "--endpoint", ENDPOINT, "--api-key", API_KEY, "--json", *args],
            )

    def test_version(self):
        result = self.runner.invoke(app, ["version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    def test_detect_requires_endpoint(self):
        result = self.runner.invoke(app, ["detect", "--api-key", API_KEY])
        self.assertEqual(result.exit_code, 1)

    def test_detect_requires_api_key(self):
        result = self.runner.invoke(app, ["detect", "--endpoint", ENDPOINT])
        self.assertEqual(result.exit_code, 1)

    def test_detect_genuine_endpoint(self):
        result = self._detect(FakeUpstream())

        self.assertEqual(result.exit_code, 0, result.output)
        data = _json_output(result.stdout)
        self.assertTrue(data["is_real_api"])
        self.assertEqual(data["endpoint"], ENDPOINT)
        self.assertIsNone(data["raw_response"])

    def test_detect_relay_exits_with_relay_code(self):
        upstream = FakeUpstream(logprobs_body=chat_body("Hello", usage={"completion_tokens": 1}))

        result = self._detect(upstream, "--raw")

        self.assertEqual(result.exit_code, 2, result.output)
        data = _json_output(result.stdout)
        self.assertFalse(data["is_real_api"])
        self.assertFalse(data["logprobs_ok"])
        self.assertTrue(data["max_tokens_ok"])
        self.assertTrue(data["raw_response"])


if __name__ == "__main__":
    unittest.main()
