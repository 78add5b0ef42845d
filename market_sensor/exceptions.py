class MarketSensorError(Exception):
    """Base error for collaborator failures (network, parsing, storage)."""


class WebsiteNotFoundError(MarketSensorError):
    pass


class ScrapeError(MarketSensorError):
    pass


class NotFoundError(MarketSensorError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key
