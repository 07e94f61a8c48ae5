# catalog/errors.py
"""Domain exceptions raised by the service layer and mapped to HTTP in routes."""


class CatalogError(Exception):
    """Base class for catalog errors."""


class ConfigError(CatalogError, RuntimeError):
    """Missing or invalid configuration."""


class ProductNotFound(CatalogError):
    def __init__(self, product_id=None):
        super().__init__("Product not found")
        self.product_id = product_id


class ProductConflict(CatalogError):
    """A unique column (contentful_id or sku) already holds this value."""


class InvalidReportRange(CatalogError, ValueError):
    pass


class SyncAlreadyRunning(CatalogError):
    def __init__(self, source):
        super().__init__(f"Sync for {source} is already running")
        self.source = source
