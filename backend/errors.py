"""Suraksha Backend — Fatal pipeline errors.

Only these reach the caller of an assessment; every other upstream problem
degrades the result instead of failing it.
"""


class ConfigurationError(RuntimeError):
    """A required credential (the weather API key) is not configured."""


class WeatherFetchError(RuntimeError):
    """The weather provider timed out, was unreachable, or returned garbage."""
