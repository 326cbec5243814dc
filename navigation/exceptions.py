class GatewayError(Exception):
    """Base class for failures raised by a persistence gateway."""


class RecordNotFound(GatewayError):
    pass


class InvalidRecord(GatewayError):
    """The request was rejected before anything was written."""


class DuplicateFloor(InvalidRecord):
    pass


class InvalidUpdate(InvalidRecord):
    pass
