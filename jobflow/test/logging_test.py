import logging
import os
import tempfile
import unittest

from mock import MagicMock

from jobflow.logging import DEBUG_LOG_FILE_NAME, getLogger, setup, setupFromConfig


class TestLoggingSetup(unittest.TestCase):
    def setUp(self):
        # Reset logging configuration before each test
        self._handlers = logging.root.handlers
        self._level = logging.root.level
        logging.root.handlers = []
        logging.root.setLevel(logging.WARNING)

    def tearDown(self):
        for handler in logging.root.handlers:
            handler.close()
        logging.root.handlers = self._handlers
        logging.root.setLevel(self._level)

    def test_setup_no_debug(self):
        """Test setup with debug=False logs errors to stderr"""
        with tempfile.TemporaryDirectory() as tmpdir:
            setup(tmpdir, "jobflow-debug.log", debug=False)
            self.assertEqual(logging.ERROR, logging.root.level)
            self.assertTrue(
                any(
                    isinstance(h, logging.StreamHandler)
                    for h in logging.root.handlers
                )
            )
            self.assertFalse(os.path.exists(os.path.join(tmpdir, "jobflow-debug.log")))

    def test_setup_debug_true(self):
        """Test setup with debug=True uses the default log file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            setup(tmpdir, "jobflow-debug.log", debug=True)
            self.assertEqual(logging.DEBUG, logging.root.level)
            self.assertTrue(
                any(
                    isinstance(h, logging.FileHandler) for h in logging.root.handlers
                )
            )
            getLogger("jobflow.test").debug("status changed")
            for handler in logging.root.handlers:
                handler.flush()
            expected_file = os.path.join(tmpdir, "jobflow-debug.log")
            with open(expected_file) as logFile:
                self.assertIn("status changed", logFile.read())

    def test_setup_debug_with_custom_file(self):
        """Test setup with debug=/path/to/file uses that file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            custom_log = os.path.join(tmpdir, "custom-debug.log")
            setup(tmpdir, "default-debug.log", debug=custom_log)
            self.assertTrue(os.path.exists(custom_log))
            default_file = os.path.join(tmpdir, "default-debug.log")
            self.assertFalse(os.path.exists(default_file))

    def test_setup_from_config(self):
        """Test loggers named in debugLevel are raised to DEBUG"""
        workflowLogger = logging.getLogger("jobflow.workflow")
        oldLevel = workflowLogger.level
        try:
            with tempfile.TemporaryDirectory() as tmpdir:
                cfg = MagicMock()
                cfg.logDir = tmpdir
                cfg.debugLevel = ["jobflow.workflow"]
                setupFromConfig(cfg)
                self.assertEqual(logging.ERROR, logging.root.level)
                self.assertEqual(logging.DEBUG, workflowLogger.level)
                self.assertFalse(
                    os.path.exists(os.path.join(tmpdir, DEBUG_LOG_FILE_NAME)))
        finally:
            workflowLogger.setLevel(oldLevel)
