"""
Structured operation logging for the store, the vector pipeline and the
background maintenance task.
"""

import logging
from typing import Any, Dict, Sequence

class StructuredLogger:
    """Structured logger for store, vector and maintenance operations."""
    
    def __init__(self, name: str = "vectorkv"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)
        
        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_level(self, level: int) -> None:
        """Change the logger threshold (e.g. logging.DEBUG)."""
        self.logger.setLevel(level)
    
    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"
        
        if status == "failed":
            self.logger.error(message)
        else:
            self.logger.info(message)

    def log_batch_insert(self, record_count: int, status: str = "success", details: Dict[str, Any] = None):
        """Log a batch insertion."""
        log_details = {"record_count": record_count}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation("records.insert_batch", status, log_details)

    def log_scan_record(self, vector: Sequence[float], value: str):
        """Log one stored record: leading key components and the value."""
        head = [float(x) for x in list(vector)[:3]]
        self.logger.info(f"Inserted key[:3]={head}, value={sanitize_payload(value)}")

    def is_debug_enabled(self) -> bool:
        """True when debug records would be emitted."""
        return self.logger.isEnabledFor(logging.DEBUG)

    def log_rank(self, position: int, score: float, vector: Sequence[float]):
        """Log one entry of a ranked result list."""
        head = [float(x) for x in list(vector)[:4]]
        self.logger.debug(f"Rank {position}: {score:f} {head}")

    def log_lookup(self, query: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a nearest-neighbour lookup."""
        log_details = {"query": sanitize_payload(query)}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation("resolver.find_nearest", status, log_details)

    def log_maintenance_pass(self, operation: str, passes: int, status: str = "success", details: Dict[str, Any] = None):
        """Log a space reclamation cycle."""
        log_details = {"passes": passes}
        if details:
            log_details.update(details)

        self.log_operation(f"maintenance.{operation}", status, log_details)

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        self.log_operation(f"heartbeat.{task_name}", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Payload sanitization utility
def sanitize_payload(payload: Any, max_length: int = 100) -> Any:
    """Truncate long strings (recursively) before they reach the log."""
    if isinstance(payload, dict):
        return {k: sanitize_payload(v, max_length) for k, v in payload.items()}
    elif isinstance(payload, str):
        return payload[:max_length] + "..." if len(payload) > max_length else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, max_length) for item in payload]
    else:
        return payload

# Global logger instance
logger = StructuredLogger()
