class ResqueExporterError(Exception):
    """Base class for all resque exporter errors."""


class ConfigurationError(ResqueExporterError):
    """Invalid startup configuration: bad Redis URL, unknown scheme, bad listen address."""


class BackendError(ResqueExporterError):
    """
    Failure talking to Redis or parsing one of its replies during a scrape.
    Raised by the backend client, handled by the collector.
    """

    def __init__(self, msg: str, key: str = ""):
        self.msg = msg
        self.key = key
        super().__init__(msg)

    def __str__(self) -> str:
        if self.key:
            return f"{self.msg} (key={self.key})"
        return self.msg
