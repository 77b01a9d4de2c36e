import logging

HEALTH_ENDPOINT_PATHS: tuple[str, ...] = ("/healthz", "/readyz")


class HealthEndpointFilter(logging.Filter):
    """Drop access-log lines for successful health checks."""

    def __init__(self, name: str = "", paths: tuple[str, ...] = HEALTH_ENDPOINT_PATHS) -> None:
        super().__init__(name)
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if any(path in message for path in self.paths):
            return " 200 " not in message
        return True
