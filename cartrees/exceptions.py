"""Exceptions raised by cartrees."""


class CARTreesError(Exception):
    """Base class for errors raised by cartrees."""


class InvalidConfigurationError(CARTreesError, ValueError):
    """Hyperparameters of a tree or estimator are out of range.

    Raised at construction time, so no partially configured object is ever returned. When the check was performed
    by a parameter model, the original ``pydantic.ValidationError`` is available as ``__cause__``.
    """
