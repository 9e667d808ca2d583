class DataUnavailable(Exception):
    """A data resource could not be fetched or parsed."""


class DataNotFound(DataUnavailable):
    """The data source reports the resource does not exist."""


class NoDeveloperData(Exception):
    """No data source produced any developers at all."""
