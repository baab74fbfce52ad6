import io
import json
import logging
import unittest
from contextlib import redirect_stdout

import structlog

from leaselock.logging import setup_logging

class SetupLoggingTests(unittest.TestCase):
    def tearDown(self):
        logging.getLogger().handlers.clear()
        structlog.reset_defaults()

    def test_json_events_on_stdout(self):
        out = io.StringIO()
        with redirect_stdout(out):
            setup_logging(level="DEBUG", fmt="json")
            structlog.get_logger().debug("lock_acquired", lock_name="report", via="insert")
        event = json.loads(out.getvalue().strip().splitlines()[-1])
        self.assertEqual(event["event"], "lock_acquired")
        self.assertEqual(event["lock_name"], "report")
        self.assertEqual(event["level"], "debug")
        self.assertIn("timestamp", event)

    def test_level_filters_events(self):
        out = io.StringIO()
        with redirect_stdout(out):
            setup_logging(level="WARNING", fmt="console")
            structlog.get_logger().info("lock_not_acquired", lock_name="report")
            structlog.get_logger().warning("lock_extend_failed", lock_name="report")
        text = out.getvalue()
        self.assertNotIn("lock_not_acquired", text)
        self.assertIn("lock_extend_failed", text)

if __name__ == "__main__":
    unittest.main()
