"""Exceptions raised by the epidash loaders and module launcher."""


class EpiDashError(Exception):
    """Base class for all epidash errors."""


class FetchError(EpiDashError, OSError):
    """A remote or local resource could not be retrieved."""


class ConfigurationError(EpiDashError, ValueError):
    """A module configuration does not fit the data it is launched with."""


class DataParseError(ConfigurationError):
    """Content was retrieved but could not be parsed (CSV, archive, dates)."""
