"""
Unit tests for the workflow task status reader
"""

import tempfile
import unittest
from unittest import mock

import requests

from drat_pipeline.errors import StatusQueryError
from drat_pipeline.status import TaskStatusReader

from fakes import FakeResponse, make_config


class TestTaskStatusReader(unittest.TestCase):
    """Test cases for TaskStatusReader."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.config = make_config(self._tmp.name)
        self.session = mock.Mock()

    def reader_returning(self, response):
        self.session.get.return_value = response
        return TaskStatusReader(self.config, session=self.session)

    def test_text_listing_filters_kind_and_finished(self):
        """Test that finished and other-kind lines are excluded."""
        listing = "\n".join([
            "urn:drat:RatCodeAudit  inst-1  STARTED",
            "urn:drat:RatCodeAudit  inst-2  FINISHED",
            "urn:drat:MimePartitioner  inst-3  STARTED",
            "",
            "urn:drat:RatCodeAudit  inst-4  QUEUED",
        ])
        reader = self.reader_returning(FakeResponse(listing))

        running = reader.running()

        self.assertEqual(len(running), 2)
        self.assertTrue(all("inst-2" not in t.raw for t in running))
        self.session.get.assert_called_once_with(
            "http://localhost:8080/opsui/status", timeout=30.0
        )

    def test_json_listing(self):
        """Test structured listings with name/status or kind/state keys."""
        listing = {"instances": [
            {"name": "RatCodeAudit", "status": "STARTED"},
            {"kind": "RatCodeAudit", "state": "FINISHED"},
            {"kind": "RatCodeAudit", "state": "queued"},
            {"name": "RatAggregator", "status": "STARTED"},
        ]}
        reader = self.reader_returning(FakeResponse(listing, "application/json"))

        running = reader.running()

        self.assertEqual([t.status for t in running], ["STARTED", "queued"])

    def test_nothing_running(self):
        """Test an empty listing."""
        reader = self.reader_returning(FakeResponse([], "application/json"))
        self.assertEqual(reader.running(), [])

    def test_json_namespaced_kind(self):
        """Test that namespaced task names match their kind."""
        listing = [
            {"name": "urn:drat:RatCodeAudit", "status": "STARTED"},
            {"name": "urn:drat:RatCodeAudit", "status": "finished"},
            {"name": "urn:drat:MimePartitioner", "status": "STARTED"},
        ]
        reader = self.reader_returning(FakeResponse(listing, "application/json"))

        running = reader.running()

        self.assertEqual([(t.name, t.status) for t in running],
                         [("urn:drat:RatCodeAudit", "STARTED")])

    def test_text_lowercase_finished(self):
        """Test that the finished marker is recognized in any case."""
        listing = "\n".join([
            "urn:drat:RatCodeAudit  inst-1  Finished",
            "urn:drat:RatCodeAudit  inst-2  finished",
            "urn:drat:RatCodeAudit  inst-3  STARTED",
        ])
        reader = self.reader_returning(FakeResponse(listing))

        running = reader.running()

        self.assertEqual([t.raw for t in running], ["urn:drat:RatCodeAudit  inst-3  STARTED"])

    def test_same_listing_in_both_formats(self):
        """Test that JSON and text listings of the same tasks agree."""
        tasks = [
            ("urn:drat:RatCodeAudit", "STARTED"),
            ("urn:drat:RatCodeAudit", "Finished"),
        ]
        json_reader = self.reader_returning(FakeResponse(
            [{"name": name, "status": status} for name, status in tasks],
            "application/json",
        ))
        json_count = len(json_reader.running())

        text_reader = self.reader_returning(FakeResponse(
            "\n".join(f"{name} {status}" for name, status in tasks)
        ))
        text_count = len(text_reader.running())

        self.assertEqual(json_count, 1)
        self.assertEqual(text_count, 1)

    def test_json_object_without_instances(self):
        """Test that an object with no instance listing is not read as idle."""
        listing = {"workflowInstances": [{"name": "RatCodeAudit", "status": "STARTED"}]}
        reader = self.reader_returning(FakeResponse(listing, "application/json"))

        with self.assertRaises(StatusQueryError):
            reader.running()

    def test_json_error_object(self):
        """Test that an error body is a failed query."""
        reader = self.reader_returning(FakeResponse({"error": "unavailable"}, "application/json"))

        with self.assertRaises(StatusQueryError):
            reader.running()

    def test_each_call_queries_again(self):
        """Test that results are not cached between calls."""
        reader = self.reader_returning(FakeResponse(""))
        reader.running()
        reader.running()
        self.assertEqual(self.session.get.call_count, 2)

    def test_connection_error(self):
        """Test that an unreachable status UI raises StatusQueryError."""
        self.session.get.side_effect = requests.exceptions.ConnectionError("refused")
        reader = TaskStatusReader(self.config, session=self.session)

        with self.assertRaises(StatusQueryError):
            reader.running()

    def test_http_error(self):
        """Test that an error response raises StatusQueryError."""
        reader = self.reader_returning(FakeResponse("oops", status_code=500))
        with self.assertRaises(StatusQueryError):
            reader.running()

    def test_malformed_json(self):
        """Test that JSON that is not a listing raises StatusQueryError."""
        reader = self.reader_returning(FakeResponse('"just a string"', "application/json"))
        with self.assertRaises(StatusQueryError):
            reader.running()


if __name__ == "__main__":
    unittest.main()
