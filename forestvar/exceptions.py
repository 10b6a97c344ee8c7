"""
Exceptions raised by forestvar.

Configuration problems are ``ValueError`` subclasses so callers that
already guard argument validation with ``except ValueError`` keep working.
"""


class InvalidConfigurationError(ValueError):
    """An estimator was configured with an unusable parameter."""


class InsufficientDataError(ValueError):
    """
    Not enough non-empty data to form a variance estimate.

    Raised when no CI group is free of empty leaves, rather than letting a
    division by zero produce a non-finite variance.

    Parameters
    ----------
    message : str
        Description of the failure.
    num_nodes : int, optional
        Number of rows in the table that was examined.
    ci_group_size : int, optional
        Group size used to partition the table.
    """

    def __init__(self, message, num_nodes=None, ci_group_size=None):
        super().__init__(message)
        self.num_nodes = num_nodes
        self.ci_group_size = ci_group_size


class UnsupportedPredictionError(NotImplementedError):
    """An operation is not available for this kind of prediction."""

    def __init__(self, operation: str, prediction_kind: str):
        super().__init__(
            f"{operation} is not supported for {prediction_kind} predictions"
        )
        self.operation = operation
        self.prediction_kind = prediction_kind
