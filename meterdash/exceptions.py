class DashError(Exception): ...


class IngestError(DashError): ...


class ConfigurationError(DashError): ...


class SelectionError(DashError): ...


class ModelError(DashError): ...


def require(condition: bool, message: str, exc: type[DashError] = DashError):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
