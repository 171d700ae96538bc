"""
Custom exceptions for the dopri package.
"""


class DopriError(Exception):
    """Base exception for dopri errors.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class ConfigurationError(DopriError, ValueError):
    """Raised when an integration is requested with malformed arguments.

    Covers wrong output-time shapes, an initial step whose sign disagrees
    with the integration direction and invalid option values. Always raised
    before any step is taken.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class DegenerateIntervalError(ConfigurationError):
    """Raised when the integration interval has zero length."""

    def __init__(self, t_start: float, t_end: float):
        self.t_start = t_start
        self.t_end = t_end
        super().__init__(f"Zero time span: t_start == t_end == {t_start!r}")


class DomainError(DopriError):
    """Raised by a right-hand side evaluated outside the domain of the system.

    Inside a step the driver turns it into a forced rejection with maximal
    step shrink. Raised while evaluating the initial state it propagates.
    """

    def __init__(self, message: str):
        super().__init__(message)


class IntegrationError(DopriError):
    """Raised when the driver loop stops before reaching the end point.

    Parameters
    ----------
    message : str
        The error message.
    partial : object
        Solution object holding everything produced up to the failure.
    """

    def __init__(self, message: str, partial=None):
        self.partial = partial
        super().__init__(message)


class StepSizeUnderflow(IntegrationError):
    """Raised when a rejected step would shrink below ``min_step``."""


class StepLimitExceeded(IntegrationError):
    """Raised when the number of attempted steps exceeds ``max_steps``."""


class OutOfRangeError(DopriError, ValueError):
    """Raised when a dense solution is evaluated outside its interval.

    Parameters
    ----------
    t : float
        Requested time.
    t_start, t_end : float
        Integrated interval.
    """

    def __init__(self, t: float, t_start: float, t_end: float):
        self.t = t
        self.t_start = t_start
        self.t_end = t_end
        super().__init__(
            f"Time {t!r} lies outside the integrated interval [{t_start!r}, {t_end!r}]"
        )
