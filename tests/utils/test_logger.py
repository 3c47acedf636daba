"""Tests for Logger."""

import logging
import sys

from storage_mcp.utils.logger import Logger


class TestLogger:
    """Test Logger."""
    
    def test_logger_creation(self):
        """Should create logger instance."""
        logger = Logger("test", level="INFO")
        assert logger is not None
    
    def test_logger_levels(self):
        """Should support different log levels."""
        logger_debug = Logger("test", level="DEBUG")
        assert logger_debug.logger.level == logging.DEBUG
        
        logger_error = Logger("test", level="ERROR")
        assert logger_error.logger.level == logging.ERROR
    
    def test_logs_to_stderr_only(self):
        """Diagnostics must never reach stdout, which carries protocol frames."""
        logger = Logger("test-stderr")
        
        streams = [h.stream for h in logger.logger.handlers if isinstance(h, logging.StreamHandler)]
        assert streams == [sys.stderr]
    
    def test_logger_methods(self):
        """Should have logging methods."""
        logger = Logger("test")
        
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.error("Error with traceback", exc_info=True)
