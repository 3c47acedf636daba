"""
Logger
Structured logging for the Storage MCP server.

Everything goes to stderr; stdout carries protocol frames only.
"""

import logging
import sys
from typing import Optional


class Logger:
    """Simple logger wrapper with structured logging support."""
    
    def __init__(self, name: str = "storage-mcp", level: str = "DEBUG"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper(), logging.DEBUG))
        
        # Only add handler if none exist
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(getattr(logging, level.upper(), logging.DEBUG))
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        else:
            for handler in self.logger.handlers:
                handler.setLevel(getattr(logging, level.upper(), logging.DEBUG))
    
    def debug(self, message: str, extra: Optional[dict] = None):
        self.logger.debug(message, extra=extra)
    
    def info(self, message: str, extra: Optional[dict] = None):
        self.logger.info(message, extra=extra)
    
    def warning(self, message: str, extra: Optional[dict] = None):
        self.logger.warning(message, extra=extra)
    
    def error(self, message: str, extra: Optional[dict] = None, exc_info: bool = False):
        self.logger.error(message, extra=extra, exc_info=exc_info)
    
    def isEnabledFor(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)
