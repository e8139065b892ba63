import json
import subprocess
import unittest
from unittest import mock

import httpx

from src.common.errors import EvaluationError
from src.recommender.queries import OpaCliQuery, OpaServerQuery


class OpaCliQueryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.query = OpaCliQuery(query="data.recommender.pods.result", paths=["/policies/pods.rego"])
        self.commands = []

    def _stub(self, stdout: str) -> None:
        def fake_command(command, stdin):
            self.commands.append((tuple(command), json.loads(stdin)))
            return stdout

        self.query._run_command = fake_command  # type: ignore[method-assign]

    def test_builds_eval_command_and_returns_result_sets(self) -> None:
        payload = {"result": [{"expressions": [{"value": {"ALLOW": True}, "text": "data.x"}]}]}
        self._stub(json.dumps(payload))
        results = self.query.eval({"metadata": {"name": "web"}})
        self.assertEqual(results, payload["result"])
        command, stdin = self.commands[0]
        self.assertEqual(
            command,
            (
                "opa",
                "eval",
                "--format",
                "json",
                "--stdin-input",
                "--data",
                "/policies/pods.rego",
                "data.recommender.pods.result",
            ),
        )
        self.assertEqual(stdin, {"metadata": {"name": "web"}})

    def test_undefined_query_returns_no_result_sets(self) -> None:
        self._stub("{}")
        self.assertEqual(self.query.eval({}), [])

    def test_invalid_json_raises(self) -> None:
        self._stub("not json")
        with self.assertRaises(EvaluationError):
            self.query.eval({})

    def test_missing_binary_raises_evaluation_error(self) -> None:
        query = OpaCliQuery(query="data.x", opa_cmd="opa-missing")
        with mock.patch("src.recommender.queries.subprocess.run", side_effect=FileNotFoundError()):
            with self.assertRaises(EvaluationError) as ctx:
                query.eval({})
        self.assertIn("opa-missing", str(ctx.exception))

    def test_failed_eval_surfaces_stderr(self) -> None:
        error = subprocess.CalledProcessError(2, ["opa"], output="", stderr="rego_parse_error")
        with mock.patch("src.recommender.queries.subprocess.run", side_effect=error):
            with self.assertRaises(EvaluationError) as ctx:
                OpaCliQuery(query="data.x").eval({})
        self.assertIn("rego_parse_error", str(ctx.exception))


class OpaServerQueryTests(unittest.TestCase):
    def _query(self, handler) -> OpaServerQuery:
        return OpaServerQuery(
            base_url="http://opa.local:8181/",
            path="/recommender/pods/result",
            transport=httpx.MockTransport(handler),
        )

    def test_defined_document_becomes_single_result_set(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"result": {"ALLOW": True}})

        results = self._query(handler).eval({"metadata": {"name": "web"}})
        self.assertEqual(results, [{"expressions": [{"value": {"ALLOW": True}, "text": "/recommender/pods/result"}]}])
        self.assertEqual(str(requests[0].url), "http://opa.local:8181/v1/data/recommender/pods/result")
        self.assertEqual(json.loads(requests[0].content), {"input": {"metadata": {"name": "web"}}})

    def test_undefined_document_returns_no_result_sets(self) -> None:
        results = self._query(lambda request: httpx.Response(200, json={})).eval({})
        self.assertEqual(results, [])

    def test_http_errors_raise_evaluation_error(self) -> None:
        query = self._query(lambda request: httpx.Response(500, json={"code": "internal_error"}))
        with self.assertRaises(EvaluationError):
            query.eval({})


if __name__ == "__main__":
    unittest.main()
